# shot_annote/workflow.py
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Protocol, Tuple

from .domain import (
    DEFAULT_SHOT_TYPE,
    AnnotationRecord,
    NotifyLevel,
    ResolutionChoice,
    TimeCode,
    ValidationFailure,
)
from .persistence import AnnotationStore, PersistError
from .resolver import resolve_collision


logger = logging.getLogger(__name__)

MSG_DESCRIPTION_REQUIRED = "Description is required. Annotation not saved."
MSG_RESOLUTION_PENDING = "Resolve the pending annotation conflict before saving again."


class WorkflowState(Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    AWAITING_RESOLUTION = "awaiting_resolution"
    PERSISTED = "persisted"
    CANCELLED = "cancelled"


class AnnotationHost(Protocol):
    """What the save workflow needs from the player/UI around it."""

    def get_current_timestamp(self) -> TimeCode:
        """Playback position; 00:00:00 when nothing is playing."""
        ...

    def present_collision(
        self, existing: AnnotationRecord, incoming: AnnotationRecord
    ) -> Optional[ResolutionChoice]:
        """
        Show the conflict. Return the user's choice right away (blocking hosts),
        or None and call SaveWorkflow.resolve() later (event-driven hosts).
        """
        ...

    def notify(self, level: NotifyLevel, message: str) -> None:
        ...


class SaveWorkflow:
    """
    One save session against one sidecar file:

        IDLE -> VALIDATING -> PERSISTED
                           -> AWAITING_RESOLUTION -> PERSISTED | CANCELLED

    The sidecar is re-read on every save() and rewritten in full on success.
    Failures are reported through host.notify(); nothing is raised to the host
    except for misuse (resolve() without a pending conflict).
    """

    def __init__(
        self,
        sidecar_path: str,
        host: AnnotationHost,
        default_shot_type: str = DEFAULT_SHOT_TYPE,
    ):
        self.sidecar_path = sidecar_path
        self.host = host
        self.default_shot_type = default_shot_type or DEFAULT_SHOT_TYPE

        self.state: WorkflowState = WorkflowState.IDLE
        self.last_saved: Optional[AnnotationRecord] = None

        # Pending conflict (AWAITING_RESOLUTION only)
        self._store: Optional[AnnotationStore] = None
        self._existing: Optional[AnnotationRecord] = None
        self._incoming: Optional[AnnotationRecord] = None

    # ---------------- Public API ----------------

    @property
    def is_awaiting_resolution(self) -> bool:
        return self.state is WorkflowState.AWAITING_RESOLUTION

    @property
    def pending(self) -> Optional[Tuple[AnnotationRecord, AnnotationRecord]]:
        """(existing, incoming) while a conflict waits for the user."""
        if not self.is_awaiting_resolution:
            return None
        return (self._existing, self._incoming)

    def save(
        self,
        description: Optional[str],
        shot_type: Optional[str] = None,
        timestamp: Optional[TimeCode] = None,
    ) -> WorkflowState:
        """
        Saves one annotation. When timestamp is None the host's current
        playback position is used.
        """
        if self.is_awaiting_resolution:
            self._notify(NotifyLevel.WARNING, MSG_RESOLUTION_PENDING)
            return self.state

        self.state = WorkflowState.VALIDATING
        ts = timestamp if timestamp is not None else self._current_timestamp()
        try:
            candidate = AnnotationRecord.build(ts, description, shot_type, self.default_shot_type)
        except ValidationFailure:
            self._notify(NotifyLevel.WARNING, MSG_DESCRIPTION_REQUIRED)
            self.state = WorkflowState.IDLE
            return self.state

        store = AnnotationStore.load(self.sidecar_path)
        result = store.insert_if_absent(candidate)
        if result.inserted:
            self._persist(store, candidate)
            return self.state

        logger.info(
            "Annotation already exists at %s: %r", candidate.timestamp, result.existing.to_line()
        )
        self._begin_resolution(store, result.existing, candidate)
        return self._present()

    def resolve(self, choice: ResolutionChoice) -> WorkflowState:
        """Applies the user's answer to the pending conflict."""
        if not self.is_awaiting_resolution:
            raise RuntimeError(f"no pending annotation conflict (state={self.state.value})")
        if not self._apply(choice):
            return self.state
        return self._present()

    def abandon(self) -> None:
        """Drops a pending conflict without writing anything."""
        if self.is_awaiting_resolution:
            logger.info("Pending annotation at %s abandoned", self._incoming.timestamp)
            self._finish(WorkflowState.CANCELLED)

    # ---------------- Internals ----------------

    def _current_timestamp(self) -> TimeCode:
        try:
            ts = self.host.get_current_timestamp()
        except Exception:
            logger.exception("Could not read playback position; using 00:00:00")
            return TimeCode.zero()
        return ts if ts is not None else TimeCode.zero()

    def _notify(self, level: NotifyLevel, message: str) -> None:
        logger.log(level.log_level, message)
        try:
            self.host.notify(level, message)
        except Exception:
            logger.exception("Host failed to display notification")

    def _begin_resolution(
        self, store: AnnotationStore, existing: AnnotationRecord, incoming: AnnotationRecord
    ) -> None:
        self._store = store
        self._existing = existing
        self._incoming = incoming
        self.state = WorkflowState.AWAITING_RESOLUTION

    def _finish(self, state: WorkflowState) -> None:
        self._store = None
        self._existing = None
        self._incoming = None
        self.state = state

    def _present(self) -> WorkflowState:
        """Asks the host until the conflict is settled or the host answers later."""
        while self.is_awaiting_resolution:
            try:
                choice = self.host.present_collision(self._existing, self._incoming)
            except Exception:
                logger.exception("Host failed to present annotation conflict")
                self._notify(NotifyLevel.ERROR, "Could not show the overwrite warning. Annotation not saved.")
                self.abandon()
                break
            if choice is None:
                break
            if not self._apply(choice):
                break
        return self.state

    def _apply(self, choice: ResolutionChoice) -> bool:
        """Returns False when the write failed and the conflict is still pending."""
        final = resolve_collision(self._existing, self._incoming, choice, self._current_timestamp)
        if final is None:
            logger.info("Kept existing annotation at %s", self._existing.timestamp)
            self._finish(WorkflowState.CANCELLED)
            return True

        # work on a copy so a failed write can be retried from the loaded state
        store = AnnotationStore(self._store.path, self._store.records)

        if choice is ResolutionChoice.PROCEED:
            store.upsert_no_collision_check(final)
            return self._persist(store, final)

        result = store.insert_if_absent(final)
        if result.collision:
            logger.info("Refreshed timestamp %s is also taken", final.timestamp)
            self._begin_resolution(self._store, result.existing, final)
            return True
        return self._persist(store, final)

    def _persist(self, store: AnnotationStore, record: AnnotationRecord) -> bool:
        try:
            path = store.persist()
        except PersistError as e:
            logger.debug("persist failed: %s", e.reason)
            self._notify(NotifyLevel.ERROR, f"Failed to open file for writing: {e.path}")
            return False
        self.last_saved = record
        self._finish(WorkflowState.PERSISTED)
        self._notify(NotifyLevel.INFO, f"Annotation saved and file sorted: {path}")
        return True

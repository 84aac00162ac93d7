# shot_annote/resolver.py
from __future__ import annotations

from typing import Callable, Optional

from .domain import AnnotationRecord, ResolutionChoice, TimeCode


def resolve_collision(
    existing: AnnotationRecord,
    incoming: AnnotationRecord,
    choice: ResolutionChoice,
    refresh_timestamp: Callable[[], TimeCode],
) -> Optional[AnnotationRecord]:
    """
    Decides which record to write after a timestamp collision.

      PROCEED             -> incoming as-is; it replaces existing
      REFRESH_AND_PROCEED -> incoming re-stamped with refresh_timestamp(), called now;
                             existing stays in the file
      CANCEL              -> None, nothing is written

    The refreshed record can collide again; checking that is up to the caller.
    """
    if existing.timestamp != incoming.timestamp:
        raise ValueError(
            f"not a collision: existing {existing.timestamp} vs incoming {incoming.timestamp}"
        )

    if choice is ResolutionChoice.PROCEED:
        return incoming
    if choice is ResolutionChoice.REFRESH_AND_PROCEED:
        return incoming.with_timestamp(refresh_timestamp())
    if choice is ResolutionChoice.CANCEL:
        return None
    raise ValueError(f"unknown resolution choice: {choice!r}")

# shot_annote/persistence.py
from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from .domain import AnnotationRecord, TimeCode


logger = logging.getLogger(__name__)

SIDECAR_EXTENSION = ".txt"


class PersistError(OSError):
    """Writing the sidecar file failed; the previous file content is untouched."""

    def __init__(self, path: str, reason: str = ""):
        super().__init__(f"Failed to open file for writing: {path}" + (f" ({reason})" if reason else ""))
        self.path = path
        self.reason = reason


# -----------------------------
# Atomic file helpers
# -----------------------------

def _atomic_write_text(path: str, text: str, encoding: str = "utf-8") -> None:
    d = os.path.dirname(os.path.abspath(path))
    os.makedirs(d, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".tmp_", dir=d)
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        if os.path.exists(path):
            # mkstemp creates 0600; keep the permissions the file already had
            shutil.copymode(path, tmp_path)
        os.replace(tmp_path, path)
    finally:
        try:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
        except OSError:
            pass


def _atomic_write_json(path: str, payload: Dict) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    _atomic_write_text(path, text + "\n")


def _read_json(path: str) -> Dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


# -----------------------------
# Sidecar path
# -----------------------------

def sidecar_path_for(media_path: str, extension: str = SIDECAR_EXTENSION) -> str:
    """
    /videos/clip.mp4 -> /videos/clip.txt
    Only the last extension is replaced; a path without one just gets the suffix.
    """
    if not media_path:
        raise ValueError("media_path is required")
    base, _ext = os.path.splitext(media_path)
    return base + (extension or SIDECAR_EXTENSION)


# -----------------------------
# Annotation store
# -----------------------------

@dataclass(frozen=True)
class InsertResult:
    inserted: bool
    existing: Optional[AnnotationRecord] = None

    @property
    def collision(self) -> bool:
        return not self.inserted


class AnnotationStore:
    """
    All annotations of one sidecar file, loaded fresh for each save.

    Records keep insertion order while loaded; they are sorted by timestamp
    only when rendered for writing. At most one record exists per timestamp.
    """

    def __init__(self, path: str, records: Optional[List[AnnotationRecord]] = None):
        self.path = path
        self._records: List[AnnotationRecord] = []
        self.skipped_lines = 0
        for rec in records or []:
            self.upsert_no_collision_check(rec)

    @classmethod
    def load(cls, path: str) -> "AnnotationStore":
        """
        Reads the sidecar file. A missing or unreadable file gives an empty store.
        Lines without a leading HH:MM:SS are dropped and counted in skipped_lines.
        """
        store = cls(path)
        if not path or not os.path.exists(path):
            return store

        try:
            with open(path, "r", encoding="utf-8", newline="") as f:
                raw = f.read().split("\n")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read %s, starting with no annotations: %s", path, e)
            return store
        # records end at "\n" only; other separators belong to the text
        if raw and raw[-1] == "":
            raw.pop()

        for line in raw:
            rec = AnnotationRecord.parse_line(line)
            if rec is None:
                store.skipped_lines += 1
                continue
            # hand-edited files may repeat a timestamp; last one wins
            store.upsert_no_collision_check(rec)

        if store.skipped_lines:
            logger.info("Skipped %d non-annotation line(s) in %s", store.skipped_lines, path)
        return store

    # ---------------- Queries ----------------

    @property
    def records(self) -> List[AnnotationRecord]:
        return list(self._records)

    @property
    def records_by_timestamp(self) -> Dict[TimeCode, AnnotationRecord]:
        return {rec.timestamp: rec for rec in self._records}

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[AnnotationRecord]:
        return iter(list(self._records))

    def find_by_timestamp(self, timestamp: TimeCode) -> Optional[AnnotationRecord]:
        for rec in self._records:
            if rec.timestamp == timestamp:
                return rec
        return None

    # ---------------- Mutations ----------------

    def upsert_no_collision_check(self, record: AnnotationRecord) -> None:
        """Replaces whatever sits at record.timestamp. Callers resolve collisions first."""
        self._records = [r for r in self._records if r.timestamp != record.timestamp]
        self._records.append(record)

    def insert_if_absent(self, record: AnnotationRecord) -> InsertResult:
        existing = self.find_by_timestamp(record.timestamp)
        if existing is not None:
            return InsertResult(inserted=False, existing=existing)
        self._records.append(record)
        return InsertResult(inserted=True)

    # ---------------- Output ----------------

    def sorted_records(self) -> List[AnnotationRecord]:
        return sorted(self._records, key=lambda r: r.timestamp)

    def render(self) -> str:
        return "".join(rec.to_line() + "\n" for rec in self.sorted_records())

    def persist(self) -> str:
        """
        Writes the sorted records over the sidecar file. Returns the written path.
        Raises PersistError; on failure the file on disk keeps its old content.
        """
        text = self.render()
        try:
            _atomic_write_text(self.path, text)
        except OSError as e:
            raise PersistError(self.path, str(e)) from e
        logger.debug("Wrote %d annotation(s) to %s", len(self._records), self.path)
        return self.path

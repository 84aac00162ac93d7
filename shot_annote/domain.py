# shot_annote/domain.py
from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Optional


# Stored in the third column when the user leaves the shot type blank.
DEFAULT_SHOT_TYPE = "N/A"

FIELD_SEPARATOR = "\t"

# Largest value that still formats as exactly 8 characters.
MAX_TOTAL_SECONDS = 99 * 3600 + 59 * 60 + 59

_TIMESTAMP_PREFIX_RE = re.compile(r"^([0-9]{2}):([0-9]{2}):([0-9]{2})")


class ValidationFailure(ValueError):
    """Raised when a candidate annotation cannot be saved (empty description)."""


# -----------------------------
# Enums
# -----------------------------

class ResolutionChoice(Enum):
    PROCEED = "proceed"
    REFRESH_AND_PROCEED = "refresh_and_proceed"
    CANCEL = "cancel"


class NotifyLevel(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def log_level(self) -> int:
        return _LOG_LEVELS[self]


_LOG_LEVELS: Dict[NotifyLevel, int] = {
    NotifyLevel.INFO: logging.INFO,
    NotifyLevel.WARNING: logging.WARNING,
    NotifyLevel.ERROR: logging.ERROR,
}


# -----------------------------
# Core Dataclasses
# -----------------------------

@dataclass(frozen=True, order=True)
class TimeCode:
    """
    Elapsed media time at whole-second resolution.

    Field order (hours, minutes, seconds) gives numeric ordering, which matches
    lexicographic ordering of the zero-padded text form.

    Each field is two digits (0-99). from_seconds always normalizes minutes and
    seconds below 60; parse_prefix keeps hand-written values such as 00:75:00
    as they are, so those lines survive a rewrite.
    """
    hours: int = 0
    minutes: int = 0
    seconds: int = 0

    def __post_init__(self) -> None:
        if self.hours < 0 or self.minutes < 0 or self.seconds < 0:
            raise ValueError("TimeCode fields must be non-negative")
        if self.hours > 99 or self.minutes > 99 or self.seconds > 99:
            raise ValueError("TimeCode fields must fit in two digits")

    @staticmethod
    def zero() -> "TimeCode":
        return TimeCode(0, 0, 0)

    @staticmethod
    def from_seconds(total_seconds: Optional[float]) -> "TimeCode":
        """Floor to whole seconds. None, NaN and negatives become 00:00:00."""
        if total_seconds is None:
            return TimeCode.zero()
        try:
            sec = float(total_seconds)
        except (TypeError, ValueError):
            return TimeCode.zero()
        if math.isnan(sec) or sec <= 0:
            return TimeCode.zero()
        s = min(int(math.floor(sec)), MAX_TOTAL_SECONDS)
        return TimeCode(
            hours=s // 3600,
            minutes=(s % 3600) // 60,
            seconds=s % 60,
        )

    @staticmethod
    def parse_prefix(line: Optional[str]) -> Optional["TimeCode"]:
        """
        Reads the leading HH:MM:SS of a line.
        Returns None when the line does not start with a valid timestamp.
        """
        if not line:
            return None
        m = _TIMESTAMP_PREFIX_RE.match(line)
        if not m:
            return None
        h, mi, s = (int(x) for x in m.groups())
        return TimeCode(hours=h, minutes=mi, seconds=s)

    @property
    def total_seconds(self) -> int:
        return self.hours * 3600 + self.minutes * 60 + self.seconds

    def format(self) -> str:
        return f"{self.hours:02d}:{self.minutes:02d}:{self.seconds:02d}"

    def __str__(self) -> str:
        return self.format()


def _single_line(text: str) -> str:
    # tabs/newlines would break the one-record-per-line format
    return str(text).replace("\r", " ").replace("\n", " ").replace("\t", " ")


@dataclass(frozen=True)
class AnnotationRecord:
    """
    One line of the sidecar file: timestamp, description, shot type.
    Records are never edited in place; a collision produces a new record.
    """
    timestamp: TimeCode
    description: str
    shot_type: str = DEFAULT_SHOT_TYPE

    @staticmethod
    def build(
        timestamp: TimeCode,
        description: str,
        shot_type: Optional[str] = None,
        default_shot_type: str = DEFAULT_SHOT_TYPE,
    ) -> "AnnotationRecord":
        """
        Creates a record from user input, keeping the text as typed.
        Only an empty description is rejected; an empty shot type becomes
        default_shot_type.
        """
        if not description:
            raise ValidationFailure("description is required")
        desc = _single_line(description)
        shot = _single_line(shot_type or "")
        return AnnotationRecord(
            timestamp=timestamp,
            description=desc,
            shot_type=shot or default_shot_type or DEFAULT_SHOT_TYPE,
        )

    @staticmethod
    def parse_line(line: Optional[str]) -> Optional["AnnotationRecord"]:
        """
        Parses `HH:MM:SS<TAB>description<TAB>shot_type`.
        Returns None for lines that are not records (no valid timestamp prefix).
        """
        if line is None:
            return None
        line = line.rstrip("\r\n")
        ts = TimeCode.parse_prefix(line)
        if ts is None:
            return None

        rest = line[8:]
        if not rest.startswith(FIELD_SEPARATOR):
            return None

        parts = rest[1:].split(FIELD_SEPARATOR, 1)
        description = parts[0]
        shot_type = parts[1] if len(parts) > 1 else DEFAULT_SHOT_TYPE
        return AnnotationRecord(timestamp=ts, description=description, shot_type=shot_type)

    def to_line(self) -> str:
        return FIELD_SEPARATOR.join([self.timestamp.format(), self.description, self.shot_type])

    def with_timestamp(self, timestamp: TimeCode) -> "AnnotationRecord":
        return replace(self, timestamp=timestamp)

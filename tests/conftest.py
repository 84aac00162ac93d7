"""Pytest configuration for tests."""

import sys
from pathlib import Path
from typing import List, Optional, Tuple

import pytest

# Add the parent directory to the path so we can import shot_annote
parent_dir = Path(__file__).parent.parent
if str(parent_dir) not in sys.path:
    sys.path.insert(0, str(parent_dir))

from shot_annote.domain import AnnotationRecord, NotifyLevel, ResolutionChoice, TimeCode


class FakeHost:
    """AnnotationHost double: scripted clock and answers, records everything shown."""

    def __init__(self, now: str = "00:00:00", choices: Optional[List[Optional[ResolutionChoice]]] = None):
        self.times: List[TimeCode] = [TimeCode.parse_prefix(now)]
        self.choices = list(choices or [])
        self.presented: List[Tuple[AnnotationRecord, AnnotationRecord]] = []
        self.notifications: List[Tuple[NotifyLevel, str]] = []

    def set_now(self, *stamps: str) -> None:
        """Successive get_current_timestamp() calls return these; the last one repeats."""
        self.times = [TimeCode.parse_prefix(s) for s in stamps]

    def get_current_timestamp(self) -> TimeCode:
        if len(self.times) > 1:
            return self.times.pop(0)
        return self.times[0]

    def present_collision(self, existing, incoming):
        self.presented.append((existing, incoming))
        if not self.choices:
            return None
        return self.choices.pop(0)

    def notify(self, level, message):
        self.notifications.append((level, message))

    def levels(self) -> List[NotifyLevel]:
        return [lvl for lvl, _ in self.notifications]


@pytest.fixture
def host():
    return FakeHost()


@pytest.fixture
def sidecar(tmp_path):
    """Sidecar path next to a (non-existent) clip.mp4."""
    return tmp_path / "clip.txt"


@pytest.fixture
def existing_sidecar(sidecar):
    """Sidecar already holding one annotation at 00:01:00."""
    sidecar.write_text("00:01:00\tA\tX\n", encoding="utf-8")
    return sidecar


def tc(text: str) -> TimeCode:
    return TimeCode.parse_prefix(text)

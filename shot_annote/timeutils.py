# shot_annote/timeutils.py
from __future__ import annotations

from typing import Optional

from .domain import TimeCode


# -----------------------------
# Time formatting / conversion
# -----------------------------

def ms_to_timecode(ms: Optional[int]) -> TimeCode:
    if ms is None:
        ms = 0
    ms = max(0, int(ms))
    return TimeCode.from_seconds(ms // 1000)


def timecode_to_ms(tc: TimeCode) -> int:
    return int(tc.total_seconds) * 1000


def ms_to_time_str(ms: Optional[int]) -> str:
    """Clock label text for the player bar."""
    return ms_to_timecode(ms).format()

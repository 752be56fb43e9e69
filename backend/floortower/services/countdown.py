"""Countdown derivation: absolute deadlines -> remaining seconds for display.

Everything here is pure apart from :func:`utcnow`, which is the single clock
read by the rest of the app (tests replace it).
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DerivedTimers:
    remaining: int = 0
    floor_remaining: int = 0

    def to_dict(self):
        return {
            'remaining': self.remaining,
            'floor_remaining': self.floor_remaining,
            'display': format_time(self.remaining),
            'floor_display': format_time(self.floor_remaining),
        }


def remaining_seconds(now: datetime, end: Optional[datetime]) -> int:
    """Whole seconds left until ``end``, never negative."""
    if end is None:
        return 0
    return max(0, math.floor((end - now).total_seconds()))


def derive_timers(state, now: datetime) -> DerivedTimers:
    """Remaining time for both countdowns; a stopped countdown is pinned to 0."""
    if state is None:
        return DerivedTimers()
    remaining = remaining_seconds(now, state.end_time) if state.is_running else 0
    floor_remaining = remaining_seconds(now, state.floor_end_time) if state.floor_is_running else 0
    return DerivedTimers(remaining=remaining, floor_remaining=floor_remaining)


def format_time(seconds: int) -> str:
    # 125 -> "2:05"
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes}:{secs:02d}"

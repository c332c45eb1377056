# backend/fitbook/domain/slots.py
"""
Slot generation.

Windows are tiled contiguously into fixed-length slots starting at the
window start. A trailing remainder shorter than the duration is dropped.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Protocol

import pytz

from .availability import TimeWindow


class IntervalLike(Protocol):
    start_time: datetime
    end_time: datetime


@dataclass(frozen=True)
class Slot:
    """A bookable interval; ``start``/``end`` are timezone-aware."""

    start: datetime
    end: datetime
    rule_id: str

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and self.end > start


def _localize(tz: pytz.BaseTzInfo, naive: datetime) -> datetime:
    return tz.normalize(tz.localize(naive))


def tile_window(
    window: TimeWindow,
    target: date,
    duration_minutes: int,
    tz: pytz.BaseTzInfo = pytz.UTC,
) -> List[Slot]:
    """
    Cut one window into back-to-back slots of ``duration_minutes``.

    09:00-11:30 at 60 minutes yields 09:00-10:00 and 10:00-11:00.
    """
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")

    step = timedelta(minutes=duration_minutes)
    window_end = datetime.combine(target, window.end)

    slots: List[Slot] = []
    cursor = datetime.combine(target, window.start)
    while cursor + step <= window_end:
        slots.append(
            Slot(
                start=_localize(tz, cursor),
                end=_localize(tz, cursor + step),
                rule_id=window.rule_id,
            )
        )
        cursor += step
    return slots


def generate_slots(
    windows: Iterable[TimeWindow],
    target: date,
    duration_minutes: int,
    tz: pytz.BaseTzInfo = pytz.UTC,
) -> List[Slot]:
    """Slots from every window, concatenated and sorted by start."""
    slots: List[Slot] = []
    for window in windows:
        slots.extend(tile_window(window, target, duration_minutes, tz))
    slots.sort(key=lambda s: (s.start, s.end))
    return slots


def remove_taken_slots(
    slots: Iterable[Slot],
    bookings: Iterable[IntervalLike],
    now: Optional[datetime] = None,
) -> List[Slot]:
    """
    Drop slots that overlap an active booking or start before ``now``.

    ``bookings`` must already be filtered to active ones.
    """
    busy = [(b.start_time, b.end_time) for b in bookings]
    free: List[Slot] = []
    for slot in slots:
        if now is not None and slot.start < now:
            continue
        if any(slot.overlaps(start, end) for start, end in busy):
            continue
        free.append(slot)
    return free

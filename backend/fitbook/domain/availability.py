# backend/fitbook/domain/availability.py
"""
Pure availability resolution.

Given a trainer's raw rules and exceptions, compute the bookable windows
for a calendar date. No I/O happens here; callers load the rows and pass
them in, which keeps the logic usable for a single date as well as for a
whole range of dates.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Iterable, List, Optional, Protocol, Sequence, Set, Tuple


class RuleLike(Protocol):
    id: str
    day_of_week: int
    start_time: time
    end_time: time
    is_recurring: Optional[bool]
    specific_date: Optional[date]
    is_available: bool


class ExceptionLike(Protocol):
    exception_date: date
    original_slot_id: str


@dataclass(frozen=True)
class TimeWindow:
    """A resolved ``[start, end)`` window on one date, traced back to its rule."""

    start: time
    end: time
    rule_id: str

    def contains(self, start: time, end: time) -> bool:
        return self.start <= start and end <= self.end


def weekday_index(target: date) -> int:
    """0=Sunday .. 6=Saturday."""
    return (target.weekday() + 1) % 7


def is_recurring_rule(rule: RuleLike) -> bool:
    # Legacy rows predate the flag and are weekly
    return rule.is_recurring is None or bool(rule.is_recurring)


def rule_applies_on(rule: RuleLike, target: date) -> bool:
    """Recurring rules match on weekday; one-off rules match on their date only."""
    if not rule.is_available:
        return False
    if is_recurring_rule(rule):
        return rule.day_of_week == weekday_index(target)
    return rule.specific_date == target


def exception_keys(exceptions: Iterable[ExceptionLike]) -> Set[Tuple[date, str]]:
    return {(exc.exception_date, str(exc.original_slot_id)) for exc in exceptions}


def is_exception_for(
    exceptions: Iterable[ExceptionLike], rule_id: str, target: date
) -> bool:
    """True iff some exception suppresses ``rule_id`` on ``target``."""
    rule_id = str(rule_id)
    return any(
        exc.exception_date == target and str(exc.original_slot_id) == rule_id
        for exc in exceptions
    )


def resolve_windows(
    rules: Sequence[RuleLike],
    exceptions: Iterable[ExceptionLike],
    target: date,
) -> List[TimeWindow]:
    """
    Windows valid on ``target``, sorted by start then end.

    Overlapping windows are returned as-is; merging is left to callers.
    Exceptions pointing at rules that no longer exist simply never match.
    """
    suppressed = exception_keys(exceptions)
    windows = [
        TimeWindow(start=rule.start_time, end=rule.end_time, rule_id=str(rule.id))
        for rule in rules
        if rule_applies_on(rule, target) and (target, str(rule.id)) not in suppressed
    ]
    windows.sort(key=lambda w: (w.start, w.end))
    return windows


def fits_in_windows(windows: Iterable[TimeWindow], start: time, end: time) -> bool:
    """Whether ``[start, end)`` lies entirely inside one window."""
    return any(window.contains(start, end) for window in windows)

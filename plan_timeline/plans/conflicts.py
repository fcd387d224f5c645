"""Interval conflict detection and interactive drag clamping.

Operates on same-day half-open minute intervals [start, end) with
0 <= start < end <= 1440. Touching endpoints do not conflict.

Every function here is pure and allocation-light: clamp_cursor runs on each
pointer-move event of a drag and must never block.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from plan_timeline.plans.errors import SelectionConflictError
from plan_timeline.plans.types import MinuteInterval


def overlaps(a: MinuteInterval, b: MinuteInterval) -> bool:
    """Check if two half-open intervals overlap.

    Standard range overlap check: a.start < b.end AND a.end > b.start.
    """
    return a.start < b.end and a.end > b.start


def conflicts(candidate: MinuteInterval, existing: Iterable[MinuteInterval]) -> bool:
    """True if candidate overlaps any existing interval."""
    return any(overlaps(candidate, interval) for interval in existing)


def conflicting_intervals(
    candidate: MinuteInterval,
    existing: Iterable[MinuteInterval],
) -> list[MinuteInterval]:
    """Return every existing interval that candidate overlaps."""
    return [interval for interval in existing if overlaps(candidate, interval)]


def clamp_cursor(anchor: int, cursor: int, existing: Iterable[MinuteInterval]) -> int:
    """Clamp a drag cursor so the selection stops at the first busy boundary.

    Forward (cursor >= anchor):
        - anchor inside a busy interval (start <= anchor < end) -> anchor
        - otherwise the smallest busy start in (anchor, cursor], if any
    Backward (cursor < anchor):
        - anchor inside a busy interval (start < anchor <= end) -> anchor
        - otherwise the largest busy end in [cursor, anchor), if any

    Args:
        anchor: Fixed minute where the drag began
        cursor: Current minute under the pointer
        existing: Busy intervals of the day

    Returns:
        Reachable cursor minute
    """
    if cursor == anchor:
        return cursor

    if cursor > anchor:
        boundary = cursor
        for interval in existing:
            if interval.start <= anchor < interval.end:
                return anchor
            if anchor < interval.start < boundary:
                boundary = interval.start
        return boundary

    boundary = cursor
    for interval in existing:
        if interval.start < anchor <= interval.end:
            return anchor
        if boundary < interval.end < anchor:
            boundary = interval.end
    return boundary


def is_valid_selection(start: int, end: int, existing: Iterable[MinuteInterval]) -> bool:
    """A finished selection is valid iff it is non-empty and conflict-free.

    start and end may be given in drag order; they are normalised first.
    """
    if start == end:
        return False
    return not conflicts(MinuteInterval(min(start, end), max(start, end)), existing)


@dataclass(frozen=True)
class Selection:
    """Live state of a timeline drag selection.

    Attributes:
        anchor: Minute where the drag began
        cursor: Clamped cursor minute
        is_valid: Whether releasing now would produce a committable interval
    """

    anchor: int
    cursor: int
    is_valid: bool

    @property
    def start(self) -> int:
        return min(self.anchor, self.cursor)

    @property
    def end(self) -> int:
        return max(self.anchor, self.cursor)

    @property
    def interval(self) -> MinuteInterval:
        return MinuteInterval(self.start, self.end)


def clamp_selection(anchor: int, cursor: int, existing: Iterable[MinuteInterval]) -> tuple[int, int]:
    """Return the (anchor, clamped cursor) pair the timeline should display."""
    return anchor, clamp_cursor(anchor, cursor, existing)


def update_selection(anchor: int, cursor: int, existing: Iterable[MinuteInterval]) -> Selection:
    """Clamp a drag and report whether the resulting selection is committable.

    Aborting a drag needs no call: a Selection has no persisted effect until
    the caller commits it.
    """
    busy = existing if isinstance(existing, (list, tuple)) else list(existing)
    clamped = clamp_cursor(anchor, cursor, busy)
    return Selection(anchor=anchor, cursor=clamped, is_valid=is_valid_selection(anchor, clamped, busy))


def require_valid_selection(start: int, end: int, existing: Iterable[MinuteInterval]) -> MinuteInterval:
    """Validate a finished selection before it is committed.

    Returns:
        Normalised interval

    Raises:
        SelectionConflictError: If the selection is empty or overlaps a busy interval
    """
    busy = list(existing)
    if start == end:
        raise SelectionConflictError(f"Empty selection at minute {start}")
    interval = MinuteInterval(min(start, end), max(start, end))
    clashes = conflicting_intervals(interval, busy)
    if clashes:
        raise SelectionConflictError(
            [f"[{interval.start}, {interval.end}) overlaps [{c.start}, {c.end})" for c in clashes]
        )
    return interval

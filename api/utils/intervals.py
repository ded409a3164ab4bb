from datetime import datetime
from typing import Iterable, NamedTuple, Optional


class Interval(NamedTuple):
    """Half-open time range [start, end)."""
    start: datetime
    end: datetime

    @property
    def minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def overlaps(self, other: "Interval") -> bool:
        return overlaps(self.start, self.end, other.start, other.end)

    def contains(self, other: "Interval") -> bool:
        return self.start <= other.start and other.end <= self.end


class BusyInterval(NamedTuple):
    """An occupied range on a staff member or resource."""
    start: datetime
    end: datetime
    booking_id: Optional[object] = None
    # Blocks take the whole capacity of a resource
    is_block: bool = False


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """
    Check if two half-open intervals [a_start, a_end) and [b_start, b_end) overlap.
    Overlap exists if a_start < b_end AND b_start < a_end.
    """
    return a_start < b_end and b_start < a_end


def peak_concurrency(intervals: Iterable[Interval], start: datetime, end: datetime) -> int:
    """
    Maximum number of intervals that are simultaneously active inside [start, end).
    Sweep over the clipped endpoints; an end at t is processed before a start at t.
    """
    events = []
    for iv in intervals:
        if not overlaps(iv.start, iv.end, start, end):
            continue
        events.append((max(iv.start, start), 1))
        events.append((min(iv.end, end), -1))

    # (-1) sorts before (+1) at the same instant, so touching ranges don't stack
    events.sort()
    peak = current = 0
    for _, delta in events:
        current += delta
        peak = max(peak, current)
    return peak

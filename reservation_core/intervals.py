"""Half-open time intervals on a single booking date."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import time

SECONDS_PER_HOUR = 3600


def seconds_since_midnight(value: time) -> int:
    return value.hour * SECONDS_PER_HOUR + value.minute * 60 + value.second


def format_clock(seconds: int) -> str:
    """Render seconds since midnight as ``HH:MM``.

    Hours are not wrapped at 24, so an interval ending past midnight reads
    e.g. ``26:00``.
    """

    hours, remainder = divmod(seconds, SECONDS_PER_HOUR)
    return f"{hours:02d}:{remainder // 60:02d}"


@dataclass(frozen=True)
class TimeInterval:
    """``[start, end)`` in seconds since midnight of the booking date.

    ``end`` is plain ``start + hours``; it may exceed one day and is never
    carried onto the next date.
    """

    start: int
    end: int

    @classmethod
    def from_start(cls, start: time, hours: int) -> "TimeInterval":
        begin = seconds_since_midnight(start)
        return cls(start=begin, end=begin + hours * SECONDS_PER_HOUR)

    def overlaps(self, other: "TimeInterval") -> bool:
        # Touching boundaries (11:00 end, 11:00 start) do not overlap.
        return self.start < other.end and other.start < self.end

    @property
    def start_label(self) -> str:
        return format_clock(self.start)

    @property
    def end_label(self) -> str:
        return format_clock(self.end)

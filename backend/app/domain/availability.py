"""Availability value types shared across the schedule store, materializer and resolver."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from app.core.constants import MIN_WINDOW_MINUTES
from app.core.enums import WEEKDAYS, Weekday
from app.utils.time_utils import minutes_to_hhmm, parse_hhmm

__all__ = ["MIN_WINDOW_MINUTES", "DayAvailability", "TimeWindow", "WeeklySchedule"]


@dataclass(frozen=True, order=True)
class TimeWindow:
    """Half-open ``[start, end)`` range in minutes since midnight."""

    start: int
    end: int

    @classmethod
    def from_hhmm(cls, start_time: str, end_time: str) -> "TimeWindow":
        return cls(parse_hhmm(start_time), parse_hhmm(end_time))

    @property
    def minutes(self) -> int:
        return self.end - self.start

    @property
    def start_time(self) -> str:
        return minutes_to_hhmm(self.start)

    @property
    def end_time(self) -> str:
        return minutes_to_hhmm(self.end)

    def overlaps(self, other: "TimeWindow") -> bool:
        return self.start < other.end and other.start < self.end

    def to_dict(self) -> Dict[str, str]:
        return {"start_time": self.start_time, "end_time": self.end_time}

    def __str__(self) -> str:
        return f"{self.start_time}-{self.end_time}"


def normalize_windows(windows: Iterable[TimeWindow]) -> List[TimeWindow]:
    """
    Sort windows by start and check the per-day invariants.

    Raises:
        ValueError: end not after start, shorter than 30 minutes, or overlapping.
    """
    ordered = sorted(windows)
    for window in ordered:
        if window.end <= window.start:
            raise ValueError(f"End time must be after start time ({window})")
        if window.minutes < MIN_WINDOW_MINUTES:
            raise ValueError(
                f"Time slot must be at least {MIN_WINDOW_MINUTES} minutes long ({window})"
            )
    for previous, current in zip(ordered, ordered[1:]):
        if current.start < previous.end:
            raise ValueError(f"Time slots overlap: {previous} and {current}")
    return ordered


@dataclass
class DayAvailability:
    available: bool = False
    windows: List[TimeWindow] = field(default_factory=list)

    @property
    def bookable_windows(self) -> List[TimeWindow]:
        return list(self.windows) if self.available else []

    def to_dict(self) -> Dict[str, Any]:
        return {
            "available": self.available,
            "slots": [window.to_dict() for window in self.windows],
        }


class WeeklySchedule:
    """
    Seven-entry weekly schedule keyed by :class:`Weekday`.

    Days missing from the stored document read as unavailable with no windows,
    so every instance always answers for all seven days.
    """

    def __init__(self, days: Optional[Mapping[Weekday, DayAvailability]] = None) -> None:
        self._days: Dict[Weekday, DayAvailability] = {day: DayAvailability() for day in WEEKDAYS}
        if days:
            self._days.update(days)

    @classmethod
    def from_json(cls, raw: Optional[Mapping[str, Any]]) -> "WeeklySchedule":
        days: Dict[Weekday, DayAvailability] = {}
        for key, entry in (raw or {}).items():
            try:
                day = Weekday.parse(key)
            except ValueError:
                continue
            entry = entry or {}
            windows = [
                TimeWindow.from_hhmm(slot["start_time"], slot["end_time"])
                for slot in entry.get("slots", [])
            ]
            days[day] = DayAvailability(
                available=bool(entry.get("available")), windows=sorted(windows)
            )
        return cls(days)

    def to_json(self) -> Dict[str, Any]:
        return {day.value: self._days[day].to_dict() for day in WEEKDAYS}

    def __getitem__(self, day: Weekday) -> DayAvailability:
        return self._days[day]

    def items(self) -> Iterator[Tuple[Weekday, DayAvailability]]:
        for day in WEEKDAYS:
            yield day, self._days[day]

    def with_day(self, day: Weekday, availability: DayAvailability) -> "WeeklySchedule":
        days = dict(self._days)
        days[day] = availability
        return WeeklySchedule(days)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WeeklySchedule):
            return NotImplemented
        return self._days == other._days

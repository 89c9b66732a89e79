"""
Domain models for availability slots, recurrence rules and projections.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, time
from enum import Enum
from typing import Any, Dict, Optional

import pendulum
from pendulum import DateTime

from .exceptions import InvalidSlotShape, MissingRecurrenceBound


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable absolute time range with start and end datetime.

    Invariant: start must be before end. The range is half-open, so two
    ranges that merely touch do not overlap.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another."""
        return not (self.end <= other.start or other.end <= self.start)

    def intersect(self, other: "TimeRange") -> "TimeRange | None":
        """
        Calculate the intersection of two time ranges.
        Returns None if there is no overlap.
        """
        if not self.overlaps(other):
            return None

        start = max(self.start, other.start)
        end = min(self.end, other.end)

        return TimeRange(start=start, end=end)

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


class SlotOrigin(str, Enum):
    """Who authored a slot."""
    USER = "user"
    SYNTHETIC = "synthetic"


@dataclass(frozen=True)
class Slot:
    """
    An owned availability interval ``[start_time, end_time)`` on ``date``.

    ``date`` and the times are wall-clock values interpreted in ``timezone``.
    A slot without an ``id`` is a draft that has not been persisted yet.
    """
    owner_id: str
    owner_name: str
    date: date
    start_time: time
    end_time: time
    timezone: str
    origin: SlotOrigin = SlotOrigin.USER
    id: Optional[int] = None

    def __post_init__(self):
        if self.start_time >= self.end_time:
            raise InvalidSlotShape(
                f"Slot on {self.date} must start before it ends "
                f"({self.start_time:%H:%M} >= {self.end_time:%H:%M})"
            )

    @property
    def is_real(self) -> bool:
        """True for user-authored slots, the only ones bound by overlap rules."""
        return self.origin == SlotOrigin.USER

    @property
    def is_draft(self) -> bool:
        return self.id is None

    def as_draft(self) -> "Slot":
        """Return a copy without an id."""
        return replace(self, id=None)

    def with_id(self, slot_id: int) -> "Slot":
        return replace(self, id=slot_id)

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the persisted record shape."""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "owner_name": self.owner_name,
            "date": self.date.isoformat(),
            "start_time": self.start_time.strftime("%H:%M:%S"),
            "end_time": self.end_time.strftime("%H:%M:%S"),
            "timezone": self.timezone,
            "origin": self.origin.value,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Slot":
        """
        Build a slot from a persisted record.

        Raises:
            KeyError: If a required field is missing
            ValueError: If a field cannot be parsed
        """
        return cls(
            id=record.get("id"),
            owner_id=record["owner_id"],
            owner_name=record.get("owner_name", ""),
            date=_parse_date(record["date"]),
            start_time=_parse_time(record["start_time"]),
            end_time=_parse_time(record["end_time"]),
            timezone=record["timezone"],
            origin=SlotOrigin(record.get("origin", SlotOrigin.USER.value)),
        )

    def __str__(self) -> str:
        return (
            f"{self.date.isoformat()} {self.start_time:%H:%M}-{self.end_time:%H:%M} "
            f"({self.timezone})"
        )


def _parse_date(value: str) -> date:
    parsed = pendulum.parse(value, exact=True)
    if not isinstance(parsed, date) or isinstance(parsed, DateTime):
        raise ValueError(f"Not a calendar date: {value!r}")
    return date(parsed.year, parsed.month, parsed.day)


def _parse_time(value: str) -> time:
    parsed = pendulum.parse(value, exact=True)
    if not isinstance(parsed, time):
        raise ValueError(f"Not a time of day: {value!r}")
    return time(parsed.hour, parsed.minute, parsed.second)


class Frequency(str, Enum):
    """How often a recurring slot repeats."""
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


@dataclass(frozen=True)
class RecurrenceRule:
    """
    Repeat rule attached to a create request; never persisted.

    Invariant: a repeating rule has an inclusive ``until`` date.
    """
    frequency: Frequency = Frequency.NONE
    until: Optional[date] = None

    def __post_init__(self):
        if self.frequency != Frequency.NONE and self.until is None:
            raise MissingRecurrenceBound(
                f"A {self.frequency.value} repeat needs an 'until' date"
            )

    @property
    def repeats(self) -> bool:
        return self.frequency != Frequency.NONE


@dataclass(frozen=True)
class ProjectedSlot:
    """
    Wall-clock view of a slot in a display timezone.

    Start and end may fall on different calendar dates once projected.
    """
    slot: Slot
    timezone: str
    start_date: date
    start_time: time
    end_date: date
    end_time: time

    @property
    def spans_dates(self) -> bool:
        return self.start_date != self.end_date

    def format_display(self) -> str:
        """
        Format the projected slot for display.
        Format: Weekday, YYYY-MM-DD | HH:MM - HH:MM
        """
        weekday = self.start_date.strftime("%A")
        end = f"{self.end_time:%H:%M}"
        if self.spans_dates:
            end = f"{self.end_date.isoformat()} {end}"
        return f"{weekday}, {self.start_date.isoformat()} | {self.start_time:%H:%M} - {end}"


@dataclass(frozen=True)
class BookingRequest:
    """A request to book somebody else's slot. Expresses intent only."""
    slot: Slot
    requester_id: str
    requester_name: str
    created_at: DateTime = field(default_factory=lambda: pendulum.now("UTC"))


USER_COLORS = (
    "#34d399",  # emerald
    "#f87171",  # red
    "#60a5fa",  # blue
    "#c084fc",  # purple
    "#fbbf24",  # amber
    "#2dd4bf",  # teal
    "#f472b6",  # pink
    "#818cf8",  # indigo
    "#fb923c",  # orange
    "#4ade80",  # green
)

OWN_SLOT_COLOR = "#2563eb"


def display_color(user_id: str) -> str:
    """Map a user id to a stable palette colour."""
    return USER_COLORS[sum(ord(char) for char in user_id) % len(USER_COLORS)]

"""
Timezone normalization for slots.

Slots are stored as wall-clock values in the zone they were entered in and
projected into the viewer's zone on read. All offset arithmetic goes through
pendulum so daylight-saving rules are taken for the slot's own date.
"""

from __future__ import annotations

from datetime import date, time
from functools import lru_cache
from typing import Optional, Tuple

import pendulum
from pendulum import DateTime

from .exceptions import InvalidSlotShape, ZoneResolutionError
from .models import ProjectedSlot, Slot, TimeRange


@lru_cache(maxsize=256)
def resolve_zone(name: str) -> pendulum.Timezone:
    """
    Resolve an IANA zone identifier.

    Raises:
        ZoneResolutionError: If the identifier is empty or unknown
    """
    if not name:
        raise ZoneResolutionError(name)
    try:
        return pendulum.timezone(name)
    except (ValueError, KeyError) as exc:
        raise ZoneResolutionError(name) from exc


def _localize(day: date, clock: time, zone: str, fold: int = 1) -> DateTime:
    return pendulum.datetime(
        day.year,
        day.month,
        day.day,
        clock.hour,
        clock.minute,
        clock.second,
        tz=resolve_zone(zone),
        fold=fold,
    )


def _absolute_bounds(
    start_day: date,
    start_time: time,
    end_day: date,
    end_time: time,
    zone: str,
) -> Tuple[DateTime, DateTime]:
    """
    Localize a wall-clock interval, keeping start before end.

    A start skipped by a spring-forward jump is normally pushed past the
    jump, which can land it after an end just beyond the gap. In that case
    the start is resolved with the earlier offset instead.
    """
    start = _localize(start_day, start_time, zone)
    end = _localize(end_day, end_time, zone)
    if start >= end:
        start = _localize(start_day, start_time, zone, fold=0)
    return start, end


def slot_time_range(slot: Slot) -> TimeRange:
    """Absolute ``[start, end)`` of a slot, in UTC."""
    start, end = _absolute_bounds(
        slot.date, slot.start_time, slot.date, slot.end_time, slot.timezone
    )
    return TimeRange(start=start.in_timezone("UTC"), end=end.in_timezone("UTC"))


def project(slot: Slot, target_zone: str) -> ProjectedSlot:
    """
    Compute the wall-clock representation of ``slot`` in ``target_zone``.

    Projecting into the slot's own zone returns the stored values unchanged.

    Args:
        slot: Slot to project
        target_zone: IANA identifier of the display zone

    Returns:
        ProjectedSlot whose start and end dates may differ

    Raises:
        ZoneResolutionError: If either zone is unknown
    """
    target = resolve_zone(target_zone)
    resolve_zone(slot.timezone)

    if target_zone == slot.timezone:
        return ProjectedSlot(
            slot=slot,
            timezone=target_zone,
            start_date=slot.date,
            start_time=slot.start_time,
            end_date=slot.date,
            end_time=slot.end_time,
        )

    time_range = slot_time_range(slot)
    start = time_range.start.in_timezone(target)
    end = time_range.end.in_timezone(target)

    return ProjectedSlot(
        slot=slot,
        timezone=target_zone,
        start_date=_plain_date(start),
        start_time=_plain_time(start),
        end_date=_plain_date(end),
        end_time=_plain_time(end),
    )


def localize_input(
    day: date,
    start_time: time,
    end_time: time,
    input_zone: str,
    storage_zone: str,
    end_day: Optional[date] = None,
) -> Tuple[date, time, time]:
    """
    Convert wall-clock input typed in ``input_zone`` into ``storage_zone``.

    ``end_day`` defaults to ``day``; pass the following day for input that
    crosses midnight in ``input_zone``.

    Raises:
        InvalidSlotShape: If the interval is empty or does not fit on one
            date once converted
        ZoneResolutionError: If either zone is unknown
    """
    end_day = end_day or day
    if (day, start_time) >= (end_day, end_time):
        raise InvalidSlotShape(
            f"Slot on {day} must start before it ends "
            f"({start_time:%H:%M} >= {end_time:%H:%M})"
        )

    storage = resolve_zone(storage_zone)
    if input_zone == storage_zone and end_day == day:
        resolve_zone(input_zone)
        return day, start_time, end_time

    start, end = _absolute_bounds(day, start_time, end_day, end_time, input_zone)
    start = start.in_timezone(storage)
    end = end.in_timezone(storage)

    if _plain_date(start) != _plain_date(end):
        raise InvalidSlotShape(
            f"Slot {start_time:%H:%M}-{end_time:%H:%M} ({input_zone}) crosses "
            f"midnight in {storage_zone}"
        )
    if _plain_time(start) >= _plain_time(end):
        raise InvalidSlotShape(
            f"Slot {start_time:%H:%M}-{end_time:%H:%M} ({input_zone}) falls in a "
            f"repeated hour of {storage_zone}"
        )

    return _plain_date(start), _plain_time(start), _plain_time(end)


def _plain_date(value: DateTime) -> date:
    return date(value.year, value.month, value.day)


def _plain_time(value: DateTime) -> time:
    return time(value.hour, value.minute, value.second)

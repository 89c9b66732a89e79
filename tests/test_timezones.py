"""
Tests for timezone projection.
"""

from datetime import date, time

import pendulum
import pytest

from slotbook.domain.exceptions import InvalidSlotShape, ZoneResolutionError
from slotbook.domain.models import Slot
from slotbook.domain.timezones import localize_input, project, resolve_zone, slot_time_range


def _slot(day: date, start: time, end: time, zone: str) -> Slot:
    return Slot(
        owner_id="alice",
        owner_name="Alice",
        date=day,
        start_time=start,
        end_time=end,
        timezone=zone,
    )


class TestProject:
    """Tests for project()."""

    def test_new_york_late_evening_is_next_day_in_tokyo(self):
        """23:00 EDT on June 1st is midday June 2nd in Tokyo."""
        slot = _slot(date(2025, 6, 1), time(23, 0), time(23, 59), "America/New_York")

        projected = project(slot, "Asia/Tokyo")

        assert projected.start_date == date(2025, 6, 2)
        assert projected.start_time == time(12, 0)
        assert projected.end_date == date(2025, 6, 2)
        assert projected.end_time == time(12, 59)
        assert projected.timezone == "Asia/Tokyo"
        assert projected.slot is slot

    def test_projection_can_span_two_dates(self):
        """Start and end may land on different calendar dates."""
        slot = _slot(date(2025, 6, 1), time(14, 0), time(16, 0), "UTC")

        projected = project(slot, "Asia/Tokyo")

        assert projected.start_date == date(2025, 6, 1)
        assert projected.start_time == time(23, 0)
        assert projected.end_date == date(2025, 6, 2)
        assert projected.end_time == time(1, 0)
        assert projected.spans_dates

    def test_projection_into_own_zone_is_identity(self):
        """Projecting into the stored zone returns the stored values."""
        slot = _slot(date(2025, 3, 1), time(9, 0), time(10, 0), "Europe/Berlin")

        projected = project(slot, "Europe/Berlin")

        assert (projected.start_date, projected.start_time) == (slot.date, slot.start_time)
        assert (projected.end_date, projected.end_time) == (slot.date, slot.end_time)

    def test_identity_holds_inside_dst_gap(self):
        """Wall-clock times skipped by a DST jump are still returned verbatim."""
        slot = _slot(date(2025, 3, 30), time(2, 15), time(2, 45), "Europe/Berlin")

        projected = project(slot, "Europe/Berlin")

        assert projected.start_time == time(2, 15)
        assert projected.end_time == time(2, 45)

    def test_offset_taken_for_slot_date_not_today(self):
        """Winter and summer slots use their own date's offset."""
        winter = _slot(date(2025, 1, 15), time(9, 0), time(10, 0), "America/New_York")
        summer = _slot(date(2025, 7, 15), time(9, 0), time(10, 0), "America/New_York")

        assert project(winter, "UTC").start_time == time(14, 0)
        assert project(summer, "UTC").start_time == time(13, 0)

    def test_unknown_target_zone(self):
        """An unknown display zone is an error, not a fallback."""
        slot = _slot(date(2025, 3, 1), time(9, 0), time(10, 0), "UTC")

        with pytest.raises(ZoneResolutionError) as exc_info:
            project(slot, "Mars/Olympus_Mons")

        assert exc_info.value.zone == "Mars/Olympus_Mons"
        assert exc_info.value.kind == "zone_resolution_error"

    def test_unknown_slot_zone(self):
        """An unknown stored zone fails even for the identity projection."""
        slot = _slot(date(2025, 3, 1), time(9, 0), time(10, 0), "Nowhere/Land")

        with pytest.raises(ZoneResolutionError):
            project(slot, "Nowhere/Land")


class TestSlotTimeRange:
    """Tests for slot_time_range()."""

    def test_returns_utc_instants(self):
        """Absolute range is expressed in UTC."""
        slot = _slot(date(2025, 3, 1), time(9, 0), time(10, 0), "Europe/Berlin")

        time_range = slot_time_range(slot)

        assert time_range.start == pendulum.datetime(2025, 3, 1, 8, 0, tz="UTC")
        assert time_range.end == pendulum.datetime(2025, 3, 1, 9, 0, tz="UTC")

    def test_range_across_dst_switch(self):
        """01:00-04:00 on the spring-forward day lasts two hours."""
        slot = _slot(date(2025, 3, 30), time(1, 0), time(4, 0), "Europe/Berlin")

        assert slot_time_range(slot).duration_minutes() == 120


class TestResolveZone:
    """Tests for resolve_zone()."""

    def test_known_zone(self):
        """Known identifiers resolve."""
        assert resolve_zone("Asia/Tokyo").name == "Asia/Tokyo"

    @pytest.mark.parametrize("name", ["", "Not/AZone", "Europe/Berlinn"])
    def test_unknown_zone(self, name):
        """Empty or unknown identifiers raise."""
        with pytest.raises(ZoneResolutionError):
            resolve_zone(name)


class TestLocalizeInput:
    """Tests for localize_input()."""

    def test_converts_into_storage_zone(self):
        """Times typed in Tokyo are stored as UTC wall-clock values."""
        result = localize_input(date(2025, 3, 1), time(10, 0), time(11, 0), "Asia/Tokyo", "UTC")

        assert result == (date(2025, 3, 1), time(1, 0), time(2, 0))

    def test_conversion_can_change_date(self):
        """Early morning in Tokyo is the previous day in UTC."""
        result = localize_input(date(2025, 3, 1), time(6, 0), time(7, 0), "Asia/Tokyo", "UTC")

        assert result == (date(2025, 2, 28), time(21, 0), time(22, 0))

    def test_same_zone_is_unchanged(self):
        """No conversion happens when both zones match."""
        result = localize_input(date(2025, 3, 1), time(9, 0), time(10, 0), "UTC", "UTC")

        assert result == (date(2025, 3, 1), time(9, 0), time(10, 0))

    def test_crossing_midnight_in_storage_zone_is_rejected(self):
        """08:00-10:00 Tokyo straddles midnight UTC."""
        with pytest.raises(InvalidSlotShape):
            localize_input(date(2025, 3, 1), time(8, 0), time(10, 0), "Asia/Tokyo", "UTC")

    def test_empty_interval_is_rejected(self):
        """Start must be before end before any conversion."""
        with pytest.raises(InvalidSlotShape):
            localize_input(date(2025, 3, 1), time(10, 0), time(9, 0), "UTC", "UTC")

    def test_unknown_input_zone(self):
        """Unknown input zones raise."""
        with pytest.raises(ZoneResolutionError):
            localize_input(date(2025, 3, 1), time(9, 0), time(10, 0), "Bad/Zone", "UTC")


class TestDaylightSavingEdges:
    """Slots whose times are skipped or repeated by a DST switch."""

    def test_start_in_spring_gap_stays_before_end(self):
        """02:30 does not exist on 2025-03-09 in New York; the range keeps its order."""
        slot = _slot(date(2025, 3, 9), time(2, 30), time(3, 15), "America/New_York")

        time_range = slot_time_range(slot)

        assert time_range.start == pendulum.datetime(2025, 3, 9, 6, 30, tz="UTC")
        assert time_range.end == pendulum.datetime(2025, 3, 9, 7, 15, tz="UTC")
        assert time_range.duration_minutes() == 45

    def test_both_ends_in_spring_gap(self):
        """A slot entirely inside the gap moves forward as a whole."""
        slot = _slot(date(2025, 3, 9), time(2, 15), time(2, 45), "America/New_York")

        time_range = slot_time_range(slot)

        assert time_range.start == pendulum.datetime(2025, 3, 9, 7, 15, tz="UTC")
        assert time_range.end == pendulum.datetime(2025, 3, 9, 7, 45, tz="UTC")

    def test_start_in_repeated_hour_takes_later_offset(self):
        """01:30 happens twice on 2025-11-02 in New York; the second one is used."""
        slot = _slot(date(2025, 11, 2), time(1, 30), time(2, 30), "America/New_York")

        time_range = slot_time_range(slot)

        assert time_range.start == pendulum.datetime(2025, 11, 2, 6, 30, tz="UTC")
        assert time_range.end == pendulum.datetime(2025, 11, 2, 7, 30, tz="UTC")

    def test_project_gap_slot(self):
        """Projection of a gap-start slot uses the ordered absolute range."""
        slot = _slot(date(2025, 3, 9), time(2, 30), time(3, 15), "America/New_York")

        projected = project(slot, "UTC")

        assert (projected.start_date, projected.start_time) == (date(2025, 3, 9), time(6, 30))
        assert (projected.end_date, projected.end_time) == (date(2025, 3, 9), time(7, 15))

    def test_project_repeated_hour_slot(self):
        """Projection of an ambiguous-start slot into Tokyo."""
        slot = _slot(date(2025, 11, 2), time(1, 30), time(2, 30), "America/New_York")

        projected = project(slot, "Asia/Tokyo")

        assert projected.start_time == time(15, 30)
        assert projected.end_time == time(16, 30)
        assert not projected.spans_dates

    def test_localize_input_from_gap(self):
        """Input typed inside a gap converts to an ordered stored slot."""
        result = localize_input(date(2025, 3, 9), time(2, 30), time(3, 15), "America/New_York", "UTC")

        assert result == (date(2025, 3, 9), time(6, 30), time(7, 15))

    def test_localize_input_into_repeated_hour(self):
        """Input that runs backwards on the stored wall clock is rejected."""
        # 01:30 EDT then 01:15 EST
        with pytest.raises(InvalidSlotShape):
            localize_input(date(2025, 11, 2), time(5, 30), time(6, 15), "UTC", "America/New_York")


class TestLocalizeInputAcrossMidnight:
    """Input that crosses midnight in the zone it was typed in."""

    def test_end_on_following_day(self):
        """23:30-00:30 in Tokyo is a morning slot in New York."""
        result = localize_input(
            date(2025, 6, 1), time(23, 30), time(0, 30),
            "Asia/Tokyo", "America/New_York",
            end_day=date(2025, 6, 2),
        )

        assert result == (date(2025, 6, 1), time(10, 30), time(11, 30))

    def test_end_day_before_start_is_rejected(self):
        """The end day cannot precede the start."""
        with pytest.raises(InvalidSlotShape):
            localize_input(
                date(2025, 6, 2), time(9, 0), time(10, 0),
                "Asia/Tokyo", "UTC",
                end_day=date(2025, 6, 1),
            )

"""Pure tests for HH:mm parsing, time windows and the weekly schedule document."""

from datetime import date, datetime, timedelta, timezone

import pytest

from app.core.enums import Weekday
from app.domain.availability import DayAvailability, TimeWindow, WeeklySchedule, normalize_windows
from app.utils.time_utils import (
    minutes_into_day,
    minutes_to_hhmm,
    parse_hhmm,
    parse_iso_datetime,
    to_utc_naive,
)


class TestHHMM:
    @pytest.mark.parametrize(
        "raw,expected", [("00:00", 0), ("9:05", 545), ("09:30", 570), ("23:59", 1439)]
    )
    def test_parse_valid(self, raw, expected):
        assert parse_hhmm(raw) == expected

    @pytest.mark.parametrize("raw", ["24:00", "12:60", "9", "09:5", "ab:cd", ""])
    def test_parse_rejects_malformed(self, raw):
        with pytest.raises(ValueError):
            parse_hhmm(raw)

    def test_minutes_to_hhmm_pads(self):
        assert minutes_to_hhmm(545) == "09:05"


class TestTimeWindow:
    def test_half_open_windows_touching_do_not_overlap(self):
        morning = TimeWindow.from_hhmm("09:00", "10:00")
        late = TimeWindow.from_hhmm("10:00", "11:00")
        assert not morning.overlaps(late)
        assert not late.overlaps(morning)

    def test_partial_overlap(self):
        assert TimeWindow.from_hhmm("09:00", "10:30").overlaps(
            TimeWindow.from_hhmm("10:00", "11:00")
        )

    def test_str_and_dict(self):
        window = TimeWindow.from_hhmm("13:00", "14:30")
        assert str(window) == "13:00-14:30"
        assert window.to_dict() == {"start_time": "13:00", "end_time": "14:30"}
        assert window.minutes == 90


class TestNormalizeWindows:
    def test_sorts_by_start(self):
        windows = normalize_windows(
            [TimeWindow.from_hhmm("14:00", "15:00"), TimeWindow.from_hhmm("09:00", "10:00")]
        )
        assert [str(w) for w in windows] == ["09:00-10:00", "14:00-15:00"]

    def test_rejects_end_before_start(self):
        with pytest.raises(ValueError, match="after start"):
            normalize_windows([TimeWindow.from_hhmm("10:00", "09:00")])

    def test_rejects_short_window(self):
        with pytest.raises(ValueError, match="at least 30 minutes"):
            normalize_windows([TimeWindow.from_hhmm("10:00", "10:20")])

    def test_rejects_overlap(self):
        with pytest.raises(ValueError, match="overlap"):
            normalize_windows(
                [TimeWindow.from_hhmm("09:00", "11:00"), TimeWindow.from_hhmm("10:00", "12:00")]
            )

    def test_adjacent_windows_are_allowed(self):
        windows = normalize_windows(
            [TimeWindow.from_hhmm("09:00", "10:00"), TimeWindow.from_hhmm("10:00", "11:00")]
        )
        assert len(windows) == 2


class TestWeeklySchedule:
    def test_empty_schedule_has_seven_unavailable_days(self):
        document = WeeklySchedule().to_json()
        assert list(document) == [day.value for day in Weekday]
        assert all(entry == {"available": False, "slots": []} for entry in document.values())

    def test_from_json_fills_missing_days_and_ignores_unknown_keys(self):
        schedule = WeeklySchedule.from_json(
            {
                "Monday": {
                    "available": True,
                    "slots": [{"start_time": "09:00", "end_time": "12:00"}],
                },
                "funday": {"available": True, "slots": []},
            }
        )
        assert schedule[Weekday.MONDAY].available is True
        assert [str(w) for w in schedule[Weekday.MONDAY].windows] == ["09:00-12:00"]
        assert schedule[Weekday.SUNDAY] == DayAvailability()

    def test_unavailable_day_keeps_windows_but_offers_none(self):
        day = DayAvailability(False, [TimeWindow.from_hhmm("09:00", "10:00")])
        assert day.bookable_windows == []
        assert day.to_dict()["slots"] == [{"start_time": "09:00", "end_time": "10:00"}]

    def test_with_day_returns_a_new_schedule(self):
        original = WeeklySchedule()
        updated = original.with_day(
            Weekday.FRIDAY, DayAvailability(True, [TimeWindow.from_hhmm("08:00", "09:00")])
        )
        assert original[Weekday.FRIDAY].available is False
        assert updated[Weekday.FRIDAY].available is True
        assert WeeklySchedule.from_json(updated.to_json()) == updated


class TestTimestamps:
    def test_parse_iso_datetime_accepts_z_suffix(self):
        assert parse_iso_datetime("2030-01-07T10:00:00Z") == datetime(2030, 1, 7, 10, 0)

    def test_offsets_are_converted_to_naive_utc(self):
        aware = datetime(2030, 1, 7, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        assert to_utc_naive(aware) == datetime(2030, 1, 7, 10, 0)

    def test_minutes_into_day_clamps(self):
        day = date(2030, 1, 7)
        assert minutes_into_day(datetime(2030, 1, 6, 23, 0), day) == 0
        assert minutes_into_day(datetime(2030, 1, 7, 9, 30), day) == 570
        assert minutes_into_day(datetime(2030, 1, 8, 1, 0), day) == 1440

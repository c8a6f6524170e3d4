"""
Tests pour la normalisation des logs bruts.
"""
import logging
from datetime import date, datetime, timezone
from types import SimpleNamespace
from zoneinfo import ZoneInfo

from shiftcoach.domain.entities.timeseries import ShiftActivityLevel, ShiftType
from shiftcoach.domain.services.input_normalizer import (
    daily_sleep_minutes,
    normalize_activity,
    normalize_shifts,
    normalize_sleep,
    to_shift_type,
)

from conftest import make_sleep


class TestToShiftType:

    def test_night_labels(self):
        assert to_shift_type("NIGHT") is ShiftType.NIGHT
        assert to_shift_type("Night shift") is ShiftType.NIGHT

    def test_off_or_empty(self):
        assert to_shift_type("OFF") is ShiftType.OFF
        assert to_shift_type("") is ShiftType.OFF
        assert to_shift_type(None) is ShiftType.OFF

    def test_day_labels(self):
        assert to_shift_type("DAY") is ShiftType.DAY
        assert to_shift_type("early") is ShiftType.DAY
        assert to_shift_type("Morning") is ShiftType.DAY

    def test_ambiguous_label_uses_start_hour(self):
        assert to_shift_type("LATE", datetime(2026, 3, 1, 14, 0)) is ShiftType.DAY
        assert to_shift_type("LATE", datetime(2026, 3, 1, 22, 30)) is ShiftType.NIGHT
        assert to_shift_type("CUSTOM", datetime(2026, 3, 1, 4, 0)) is ShiftType.NIGHT

    def test_ambiguous_label_without_start(self):
        assert to_shift_type("CUSTOM") is ShiftType.OTHER


class TestNormalizeSleep:

    def test_legacy_and_new_columns(self):
        rows = [
            {"id": 1, "start_ts": "2026-03-01T23:00:00", "end_ts": "2026-03-02T07:00:00"},
            {"id": 2, "start_at": datetime(2026, 3, 2, 22, 0), "end_at": datetime(2026, 3, 3, 5, 30)},
        ]
        sessions = normalize_sleep(rows)
        assert [s.date for s in sessions] == [date(2026, 3, 2), date(2026, 3, 1)]
        assert sessions[0].duration_hours == 7.5
        assert sessions[1].duration_hours == 8.0

    def test_explicit_duration_is_trusted(self):
        rows = [{
            "start_at": datetime(2026, 3, 1, 23, 0),
            "end_at": datetime(2026, 3, 2, 7, 0),
            "sleep_hours": 6.5,
        }]
        assert normalize_sleep(rows)[0].duration_hours == 6.5

    def test_duration_without_end(self):
        sessions = normalize_sleep([{"start_at": datetime(2026, 3, 1, 23, 0), "sleep_hours": 7}])
        assert sessions[0].end == datetime(2026, 3, 2, 6, 0)

    def test_invalid_rows_are_dropped_with_warning(self, caplog):
        rows = [
            {"id": "no-start", "end_at": datetime(2026, 3, 2, 7, 0)},
            {"id": "bad-start", "start_at": "not a date", "end_at": datetime(2026, 3, 2, 7, 0)},
            {"id": "no-end", "start_at": datetime(2026, 3, 1, 23, 0)},
            {"id": "reversed", "start_at": datetime(2026, 3, 2, 7, 0), "end_at": datetime(2026, 3, 1, 23, 0)},
            {"id": "ok", "start_at": datetime(2026, 3, 1, 23, 0), "end_at": datetime(2026, 3, 2, 7, 0)},
        ]
        with caplog.at_level(logging.WARNING):
            sessions = normalize_sleep(rows)
        assert len(sessions) == 1
        assert len([r for r in caplog.records if r.levelno == logging.WARNING]) == 4

    def test_aware_timestamps_are_dated_in_local_zone(self):
        # 23:30 UTC = 00:30 a Paris le lendemain
        rows = [{
            "start_at": datetime(2026, 3, 1, 23, 30, tzinfo=timezone.utc),
            "end_at": datetime(2026, 3, 2, 7, 30, tzinfo=timezone.utc),
        }]
        assert normalize_sleep(rows)[0].date == date(2026, 3, 1)
        assert normalize_sleep(rows, ZoneInfo("Europe/Paris"))[0].date == date(2026, 3, 2)

    def test_nap_detection(self):
        base = {"start_at": datetime(2026, 3, 1, 14, 0), "end_at": datetime(2026, 3, 1, 15, 0)}
        assert normalize_sleep([{**base, "type": "nap"}])[0].is_nap
        assert normalize_sleep([{**base, "naps": 2}])[0].is_nap
        assert not normalize_sleep([{**base, "type": "main", "naps": 1}])[0].is_nap
        assert not normalize_sleep([base])[0].is_nap

    def test_quality_out_of_range_is_ignored(self):
        base = {"start_at": datetime(2026, 3, 1, 23, 0), "end_at": datetime(2026, 3, 2, 7, 0)}
        assert normalize_sleep([{**base, "quality": 4}])[0].quality == 4
        assert normalize_sleep([{**base, "quality": 9}])[0].quality is None

    def test_accepts_entity_like_objects(self):
        row = SimpleNamespace(
            id=1, start_at=None, start_ts=datetime(2026, 3, 1, 23, 0),
            end_at=None, end_ts=datetime(2026, 3, 2, 6, 0),
            sleep_hours=None, quality=None, type=None, naps=0,
        )
        assert normalize_sleep([row])[0].duration_hours == 7.0


class TestDailySleepMinutes:

    def test_zero_filled_window(self):
        today = date(2026, 3, 14)
        sessions = [
            make_sleep(date(2026, 3, 13), 23, 7),
            make_sleep(date(2026, 3, 13), 14, 0.5, nap=True),
            make_sleep(date(2026, 3, 1), 23, 8),  # hors fenetre
        ]
        buckets = daily_sleep_minutes(sessions, today)
        assert list(buckets.keys())[0] == date(2026, 3, 8)
        assert list(buckets.keys())[-1] == today
        assert buckets[date(2026, 3, 13)] == 450
        assert buckets[today] == 0
        assert sum(buckets.values()) == 450


class TestNormalizeShifts:

    def test_one_entry_per_date_last_wins(self):
        rows = [
            {"date": "2026-03-01", "label": "DAY"},
            {"date": "2026-03-01", "label": "NIGHT"},
            {"date": "2026-03-02", "label": "OFF"},
        ]
        shifts = normalize_shifts(rows)
        assert [s.date for s in shifts] == [date(2026, 3, 2), date(2026, 3, 1)]
        assert shifts[1].shift_type is ShiftType.NIGHT

    def test_date_from_start_when_missing(self):
        rows = [{"label": "LATE", "start_ts": datetime(2026, 3, 1, 15, 0), "end_ts": datetime(2026, 3, 1, 23, 0)}]
        shift = normalize_shifts(rows)[0]
        assert shift.date == date(2026, 3, 1)
        assert shift.shift_type is ShiftType.DAY

    def test_row_without_date_is_dropped(self):
        assert normalize_shifts([{"label": "DAY"}]) == []


class TestNormalizeActivity:

    def test_merges_rows_of_same_day(self):
        rows = [
            {"date": "2026-03-01", "steps": 3000, "shift_activity_level": "busy"},
            {"date": "2026-03-01", "steps": 5000, "active_minutes": 20},
        ]
        day = normalize_activity(rows)[0]
        assert day.steps == 5000
        assert day.active_minutes == 20
        assert day.shift_activity_level is ShiftActivityLevel.BUSY

    def test_unknown_level_is_ignored(self, caplog):
        with caplog.at_level(logging.WARNING):
            day = normalize_activity([{"date": "2026-03-01", "steps": 100, "shift_activity_level": "frantic"}])[0]
        assert day.shift_activity_level is None
        assert caplog.records


class TestMalformedRows:

    def test_oversized_duration_is_dropped(self, caplog):
        rows = [
            {"id": "huge", "start_at": datetime(2026, 3, 1, 23, 0), "sleep_hours": 1e9},
            {"id": "ok", "start_at": datetime(2026, 3, 2, 23, 0), "sleep_hours": 7},
        ]
        with caplog.at_level(logging.WARNING):
            sessions = normalize_sleep(rows)
        assert [s.date for s in sessions] == [date(2026, 3, 2)]
        assert any("huge" in r.getMessage() for r in caplog.records)

    def test_non_numeric_duration_is_dropped(self):
        rows = [
            {"id": "text", "start_at": datetime(2026, 3, 1, 23, 0), "sleep_hours": "eight"},
            {"id": "ok", "start_at": datetime(2026, 3, 2, 23, 0), "sleep_hours": 7},
        ]
        assert len(normalize_sleep(rows)) == 1

    def test_mixed_naive_and_aware_timestamps_are_dropped(self):
        rows = [{
            "id": "mixed",
            "start_at": datetime(2026, 3, 1, 23, 0),
            "end_at": datetime(2026, 3, 2, 7, 0, tzinfo=timezone.utc),
        }]
        assert normalize_sleep(rows) == []

    def test_textual_nap_count(self):
        base = {"start_at": datetime(2026, 3, 1, 14, 0), "end_at": datetime(2026, 3, 1, 15, 0)}
        assert normalize_sleep([{**base, "naps": "1"}])[0].is_nap
        assert not normalize_sleep([{**base, "naps": "several"}])[0].is_nap

    def test_textual_quality(self):
        base = {"start_at": datetime(2026, 3, 1, 23, 0), "end_at": datetime(2026, 3, 2, 7, 0)}
        assert normalize_sleep([{**base, "quality": "4"}])[0].quality == 4
        assert normalize_sleep([{**base, "quality": "good"}])[0].quality is None

    def test_non_numeric_steps_are_ignored(self, caplog):
        rows = [
            {"date": "2026-03-01", "steps": "lots", "active_minutes": "a while"},
            {"date": "2026-03-01", "steps": "4200"},
        ]
        with caplog.at_level(logging.WARNING):
            day = normalize_activity(rows)[0]
        assert day.steps == 4200
        assert day.active_minutes is None
        assert caplog.records

    def test_numeric_shift_label(self):
        shift = normalize_shifts([{"date": "2026-03-01", "label": 3}])[0]
        assert shift.label == "3"
        assert shift.shift_type is ShiftType.OTHER

    def test_unusable_activity_date_is_dropped(self):
        assert normalize_activity([{"ts": 12345, "steps": 10}]) == []

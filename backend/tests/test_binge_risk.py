"""
Tests pour le risque de binge.
"""
import itertools
from datetime import datetime, timedelta
from unittest.mock import patch

from shiftcoach.domain.entities.timeseries import ShiftActivityLevel, ShiftType
from shiftcoach.domain.services.binge_risk import (
    INSUFFICIENT_DRIVER,
    NO_RISK_DRIVER,
    binge_risk_level,
    calculate_binge_risk,
    has_quick_turnaround,
)

from conftest import TODAY, make_shift, make_sleep

NOON = datetime(2026, 3, 14, 12, 0)


class TestBingeRiskLevel:

    def test_boundaries(self):
        assert binge_risk_level(0) == "low"
        assert binge_risk_level(29) == "low"
        assert binge_risk_level(30) == "medium"
        assert binge_risk_level(69) == "medium"
        assert binge_risk_level(70) == "high"


class TestCalculateBingeRisk:

    def test_no_inputs_is_insufficient(self):
        result = calculate_binge_risk()
        assert result.has_enough_data is False
        assert result.score == 0
        assert result.level == "low"
        assert result.drivers == [INSUFFICIENT_DRIVER]

    def test_context_alone_is_insufficient(self):
        result = calculate_binge_risk(shift_type_today=ShiftType.NIGHT, now=datetime(2026, 3, 14, 23))
        assert result.has_enough_data is False

    def test_worst_case_is_high(self):
        result = calculate_binge_risk(
            sleep_debt_hours=20.0,
            shift_rhythm_total=20,
            activity_level=ShiftActivityLevel.INTENSE,
            shift_type_today=ShiftType.NIGHT,
            last_sleep_hours=3.0,
            now=datetime(2026, 3, 14, 22, 0),
        )
        assert result.score == 100
        assert result.level == "high"
        assert len(result.drivers) == 3
        assert result.drivers[0].startswith("High sleep debt")
        assert result.drivers[1].startswith("Body clock strain")
        assert result.drivers[2].startswith("Short last sleep")

    def test_medium(self):
        result = calculate_binge_risk(sleep_debt_hours=8.0, shift_rhythm_total=60)
        assert result.score == 39
        assert result.level == "medium"

    def test_no_risk_factor(self):
        result = calculate_binge_risk(
            sleep_debt_hours=-5.0,
            shift_rhythm_total=100,
            activity_level=ShiftActivityLevel.VERY_LIGHT,
            now=datetime(2026, 3, 14, 12, 0),
        )
        assert result.has_enough_data
        assert result.score == 0
        assert result.drivers == [NO_RISK_DRIVER]

    def test_never_fails_on_input_grid(self):
        grid = itertools.product(
            [None, -3.0, 0.0, 5.0, 20.0],
            [None, 0, 50, 100],
            [None] + list(ShiftActivityLevel),
            [None, ShiftType.NIGHT, ShiftType.DAY],
            [None, 2.0, 8.0],
            [None, datetime(2026, 3, 14, 3), datetime(2026, 3, 14, 12), datetime(2026, 3, 14, 22)],
        )
        for debt, rhythm, level, shift_type, last_sleep, now in grid:
            result = calculate_binge_risk(debt, rhythm, level, shift_type, last_sleep, now)
            assert 0 <= result.score <= 100
            assert result.level == binge_risk_level(result.score)
            assert 1 <= len(result.drivers) <= 3
            assert result.explanation

    def test_internal_error_returns_fallback(self):
        with patch(
            "shiftcoach.domain.services.binge_risk.activity_binge_points",
            side_effect=KeyError("level"),
        ):
            result = calculate_binge_risk(sleep_debt_hours=10.0, activity_level=ShiftActivityLevel.BUSY)
        assert result.has_enough_data is False
        assert result.score == 0
        assert result.level == "low"
        assert "temporarily unavailable" in result.explanation


class TestContextDrivers:

    def test_poor_sleep_quality(self):
        base = calculate_binge_risk(sleep_debt_hours=1.0, now=NOON)
        poor = calculate_binge_risk(sleep_debt_hours=1.0, last_sleep_quality=2, now=NOON)
        fine = calculate_binge_risk(sleep_debt_hours=1.0, last_sleep_quality=3, now=NOON)
        assert poor.score == base.score + 10
        assert "Poor sleep quality" in poor.drivers
        assert fine.score == base.score

    def test_post_night_morning(self):
        morning = datetime(2026, 3, 14, 9, 0)
        result = calculate_binge_risk(
            sleep_debt_hours=1.0, shift_type_yesterday=ShiftType.NIGHT, shift_type_today=ShiftType.OFF, now=morning,
        )
        assert result.drivers[0] == "Post-night shift"
        assert result.score == 25

    def test_post_night_ignored_in_afternoon_or_on_nights(self):
        afternoon = calculate_binge_risk(
            sleep_debt_hours=1.0, shift_type_yesterday=ShiftType.NIGHT, now=datetime(2026, 3, 14, 15, 0),
        )
        on_nights = calculate_binge_risk(
            sleep_debt_hours=1.0, shift_type_yesterday=ShiftType.NIGHT, shift_type_today=ShiftType.NIGHT,
            now=datetime(2026, 3, 14, 9, 0),
        )
        assert "Post-night shift" not in afternoon.drivers
        assert "Post-night shift" not in on_nights.drivers
        assert "Night shift" in on_nights.drivers

    def test_quick_turnaround(self):
        result = calculate_binge_risk(sleep_debt_hours=1.0, quick_turnaround=True, now=NOON)
        assert result.drivers[0] == "Quick shift turnaround"
        assert result.score == 20

    def test_fasting_windows(self):
        def fasting(hours):
            return calculate_binge_risk(sleep_debt_hours=1.0, last_meal_at=NOON - timedelta(hours=hours), now=NOON)

        assert fasting(17).drivers[0] == "Very long fasting window (17h)"
        assert fasting(17).score == 25
        assert fasting(15).drivers[0] == "Long fasting window (15h)"
        assert fasting(13).drivers[0] == "Extended fasting (13h)"
        assert fasting(3).score == 5

    def test_meal_during_biological_night(self):
        result = calculate_binge_risk(
            sleep_debt_hours=1.0, last_meal_at=datetime(2026, 3, 14, 3, 30), now=datetime(2026, 3, 14, 8, 0),
        )
        assert "Eating during biological night" in result.drivers
        assert result.score == 13

    def test_high_shift_lag(self):
        result = calculate_binge_risk(shift_lag_score=60, now=NOON)
        assert result.has_enough_data
        assert result.drivers == ["High shift lag"]
        assert result.score == 6
        assert calculate_binge_risk(shift_lag_score=50, now=NOON).drivers == [NO_RISK_DRIVER]


class TestExplanation:

    def test_high_on_nights_mentions_last_sleep(self):
        result = calculate_binge_risk(
            sleep_debt_hours=20.0, shift_rhythm_total=20, shift_type_today=ShiftType.NIGHT,
            last_sleep_hours=4.5, now=datetime(2026, 3, 14, 22, 0),
        )
        assert result.level == "high"
        assert "You got 4h 30m sleep and you're on nights" in result.explanation

    def test_high_names_main_factor(self):
        result = calculate_binge_risk(
            sleep_debt_hours=1.0, shift_rhythm_total=0, activity_level=ShiftActivityLevel.INTENSE,
            last_meal_at=NOON - timedelta(hours=20), now=NOON,
        )
        assert result.level == "high"
        assert result.drivers[0] == "Body clock strain (Shift Rhythm 0/100)"
        assert "main factor is body clock strain" in result.explanation

    def test_high_mentions_last_sleep(self):
        result = calculate_binge_risk(
            sleep_debt_hours=20.0, last_sleep_hours=3.0, quick_turnaround=True,
            last_meal_at=NOON - timedelta(hours=17), now=datetime(2026, 3, 14, 12, 0),
        )
        assert result.level == "high"
        assert result.drivers[0].startswith("High sleep debt")
        assert "main factor is high sleep debt" in result.explanation
        assert result.explanation.startswith("High risk today. You slept 3h and")

    def test_high_led_by_fasting(self):
        result = calculate_binge_risk(
            sleep_debt_hours=1.0, shift_rhythm_total=70, activity_level=ShiftActivityLevel.INTENSE,
            quick_turnaround=True, shift_lag_score=60, last_meal_at=NOON - timedelta(hours=17), now=NOON,
        )
        assert result.level == "high"
        assert result.drivers[0] == "Very long fasting window (17h)"
        assert result.explanation.startswith("High risk today. You haven't eaten in a while.")

    def test_medium_names_main_issue(self):
        result = calculate_binge_risk(sleep_debt_hours=8.0, shift_rhythm_total=60)
        assert result.explanation == "Moderate risk. You're building sleep debt. Eat every 4-5 hours today."

    def test_low(self):
        assert calculate_binge_risk(sleep_debt_hours=1.0, now=NOON).explanation.startswith("Your risk")


class TestQuickTurnaround:

    def test_two_work_days_and_short_sleep(self):
        shifts = [make_shift(TODAY, ShiftType.DAY, 6), make_shift(TODAY - timedelta(days=1), ShiftType.DAY, 14)]
        sessions = [make_sleep(TODAY - timedelta(days=1), 23.5, 5.5)]
        assert has_quick_turnaround(shifts, sessions, TODAY)

    def test_rest_day_breaks_turnaround(self):
        shifts = [make_shift(TODAY, ShiftType.DAY, 6), make_shift(TODAY - timedelta(days=1), ShiftType.OFF)]
        sessions = [make_sleep(TODAY - timedelta(days=1), 23.5, 5.5)]
        assert not has_quick_turnaround(shifts, sessions, TODAY)

    def test_enough_sleep(self):
        shifts = [make_shift(TODAY, ShiftType.NIGHT, 20), make_shift(TODAY - timedelta(days=1), ShiftType.NIGHT, 20)]
        sessions = [make_sleep(TODAY, 9, 7), make_sleep(TODAY - timedelta(days=1), 9, 7.5)]
        assert not has_quick_turnaround(shifts, sessions, TODAY)

    def test_naps_do_not_count_as_short_sleep(self):
        shifts = [make_shift(TODAY, ShiftType.DAY, 6), make_shift(TODAY - timedelta(days=1), ShiftType.DAY, 6)]
        sessions = [make_sleep(TODAY, 14, 0.5, nap=True), make_sleep(TODAY - timedelta(days=1), 22, 8)]
        assert not has_quick_turnaround(shifts, sessions, TODAY)

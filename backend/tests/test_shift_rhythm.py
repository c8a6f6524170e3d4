"""
Tests pour le score Shift Rhythm.
"""
from datetime import datetime, time, timedelta
from unittest.mock import patch

import pytest

from shiftcoach.domain.entities.snapshots import (
    ActivitySnapshot, MealEntry, MealTimingSnapshot, MealWindow, NutritionSnapshot, RhythmSignals,
)
from shiftcoach.domain.entities.timeseries import ShiftType
from shiftcoach.domain.services.shift_rhythm import (
    calculate_shift_rhythm,
    meal_timing_score,
    nutrition_score,
    quick_return_count,
    rotation_ergonomics_score,
    shift_rhythm_message,
)

from conftest import TODAY, make_shift, make_sleep


def _days(n):
    return [TODAY - timedelta(days=i) for i in range(n)]


class TestNoData:

    def test_no_sleep_no_shifts_is_flagged_zero(self):
        result = calculate_shift_rhythm([], [], TODAY)
        assert result.total_score == 0
        assert result.has_rhythm_data is False
        assert "sleep" in result.missing_signals
        assert "shifts" in result.missing_signals
        assert result.sleep_score is None

    def test_only_old_data_counts_as_no_data(self):
        old = TODAY - timedelta(days=30)
        result = calculate_shift_rhythm([make_sleep(old, 23, 8)], [make_shift(old, ShiftType.DAY)], TODAY)
        assert result.has_rhythm_data is False

    def test_naps_alone_count_as_sleep(self):
        naps = [make_sleep(d, 14, 1.5, nap=True) for d in _days(3)]
        result = calculate_shift_rhythm(naps, [], TODAY)
        assert result.has_rhythm_data
        assert result.sleep_score is not None
        assert "sleep" not in result.missing_signals

    def test_naps_do_not_dilute_main_sleep(self):
        main = [make_sleep(d, 23, 8, quality=4) for d in _days(7)]
        naps = [make_sleep(d, 14, 0.5, nap=True) for d in _days(7)]
        assert (
            calculate_shift_rhythm(main + naps, [], TODAY).sleep_score
            == calculate_shift_rhythm(main, [], TODAY).sleep_score
        )


class TestInternalFailure:

    def test_failure_is_flagged_apart_from_missing_data(self):
        sessions = [make_sleep(d, 23, 8) for d in _days(3)]
        with patch(
            "shiftcoach.domain.services.shift_rhythm.recovery_score",
            side_effect=ZeroDivisionError("boom"),
        ):
            result = calculate_shift_rhythm(sessions, [], TODAY)
        assert result.computation_failed
        assert result.has_rhythm_data is False
        assert result.total_score == 0
        assert "ZeroDivisionError" in result.message

    def test_missing_data_is_not_a_failure(self):
        assert calculate_shift_rhythm([], [], TODAY).computation_failed is False


class TestSleepFamily:

    def test_consistent_good_sleep(self):
        sessions = [make_sleep(d, 23, 8, quality=4) for d in _days(7)]
        result = calculate_shift_rhythm(sessions, [], TODAY)
        assert result.has_rhythm_data
        assert result.sleep_score == 95
        assert result.regularity_score == 100
        assert result.shift_pattern_score is None
        assert "shifts" in result.missing_signals
        assert 0 < result.total_score <= 100

    def test_only_shifts_still_scores(self):
        shifts = [make_shift(d, ShiftType.DAY, 8) for d in _days(5)]
        result = calculate_shift_rhythm([], shifts, TODAY)
        assert result.has_rhythm_data
        assert result.sleep_score is None
        assert result.shift_pattern_score == 100
        assert result.total_score > 0

    def test_irregular_bedtimes_lower_regularity(self):
        regular = [make_sleep(d, 23, 7) for d in _days(6)]
        irregular = [make_sleep(d, 23 if i % 2 else 11, 7) for i, d in enumerate(_days(6))]
        assert (
            calculate_shift_rhythm(irregular, [], TODAY).regularity_score
            < calculate_shift_rhythm(regular, [], TODAY).regularity_score
        )

    def test_scores_stay_bounded_with_extreme_sleep(self):
        sessions = [make_sleep(d, 23, 100, quality=5) for d in _days(7)]
        result = calculate_shift_rhythm(sessions, [], TODAY)
        for value in (result.sleep_score, result.regularity_score, result.recovery_score, result.total_score):
            assert 0 <= value <= 100


class TestRotationErgonomics:

    def test_forward_rotation_beats_backward(self):
        forward = [ShiftType.DAY, ShiftType.DAY, ShiftType.NIGHT, ShiftType.NIGHT, ShiftType.OFF, ShiftType.OFF]
        backward = [ShiftType.NIGHT, ShiftType.NIGHT, ShiftType.DAY, ShiftType.DAY, ShiftType.OFF, ShiftType.OFF]
        start = TODAY - timedelta(days=5)

        def build(types):
            return [make_shift(start + timedelta(days=i), t) for i, t in enumerate(types)]

        assert rotation_ergonomics_score(build(forward)) == 95
        assert rotation_ergonomics_score(build(backward)) == 70

    def test_long_night_runs_are_penalised(self):
        shifts = [make_shift(TODAY - timedelta(days=i), ShiftType.NIGHT) for i in range(5)]
        assert rotation_ergonomics_score(shifts) == 80

    def test_quick_return(self):
        day1 = TODAY - timedelta(days=1)
        shifts = [make_shift(day1, ShiftType.DAY, 14), make_shift(TODAY, ShiftType.DAY, 6)]
        assert quick_return_count(shifts) == 1
        relaxed = [make_shift(day1, ShiftType.DAY, 6), make_shift(TODAY, ShiftType.DAY, 6)]
        assert quick_return_count(relaxed) == 0


class TestOptionalSignals:

    def test_signals_are_blended_when_present(self):
        sessions = [make_sleep(d, 23, 8, quality=4) for d in _days(7)]
        signals = RhythmSignals(
            nutrition=NutritionSnapshot(calorie_target=2000, consumed_calories=2000),
            activity=ActivitySnapshot(steps=12000, steps_goal=10000),
        )
        result = calculate_shift_rhythm(sessions, [], TODAY, signals=signals)
        assert result.nutrition_score is not None
        assert result.activity_score is not None
        assert result.meal_timing_score is None
        assert "nutrition" not in result.missing_signals
        assert "meal_timing" in result.missing_signals

    def test_adjusted_calorie_target_wins(self):
        adjusted = NutritionSnapshot(calorie_target=2000, adjusted_calories=2700, consumed_calories=2700)
        plain = NutritionSnapshot(calorie_target=2700, consumed_calories=2700)
        unadjusted = NutritionSnapshot(calorie_target=2000, consumed_calories=2700)
        assert nutrition_score(adjusted) == pytest.approx(nutrition_score(plain))
        assert nutrition_score(adjusted) < nutrition_score(unadjusted)

    def test_activity_snapshot_without_data_is_missing(self):
        sessions = [make_sleep(TODAY, 23, 8)]
        result = calculate_shift_rhythm(sessions, [], TODAY, signals=RhythmSignals(activity=ActivitySnapshot()))
        assert result.activity_score is None

    def test_meal_timing_in_window(self):
        snapshot = MealTimingSnapshot(
            recommended=[MealWindow(slot="Breakfast", window_start=time(7), window_end=time(9))],
            actual=[MealEntry(slot="breakfast", timestamp=datetime(2026, 3, 14, 8, 0))],
        )
        assert meal_timing_score(snapshot) == 95

    def test_meal_timing_far_from_window(self):
        snapshot = MealTimingSnapshot(
            recommended=[MealWindow(slot="dinner", window_start=time(18), window_end=time(19))],
            actual=[MealEntry(slot="dinner", timestamp=datetime(2026, 3, 14, 23, 0))],
        )
        assert meal_timing_score(snapshot) == pytest.approx(60)


class TestMessage:

    def test_thresholds(self):
        assert "humming" in shift_rhythm_message(90)
        assert "syncing" in shift_rhythm_message(70)
        assert "holding" in shift_rhythm_message(55)
        assert "off today" in shift_rhythm_message(40)
        assert "reset" in shift_rhythm_message(10)

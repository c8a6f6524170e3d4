"""
Shift Rhythm : score composite 0-100 du rythme de vie d'un travailleur posté.

Famille sommeil (poids 0.55) :
  sleep (0.35)        durée moyenne vs besoin
  regularity (0.25)   dispersion circulaire des heures de coucher
  shift_pattern (0.2) ergonomie de la rotation + alignement coucher / shift
  recovery (0.2)      qualité/durée du sommeil après shift + temps de repos entre shifts
Familles optionnelles : nutrition (0.2), activity (0.15), meal_timing (0.1).

Un sous-score non calculable vaut None et est listé dans `missing_signals` ;
les poids sont renormalisés sur ce qui est disponible.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from shiftcoach.domain.entities.scores import ShiftRhythmResult
from shiftcoach.domain.entities.snapshots import (
    ActivitySnapshot, MealTimingSnapshot, NutritionSnapshot, RhythmSignals,
)
from shiftcoach.domain.entities.timeseries import ShiftDay, ShiftType, SleepSession
from shiftcoach.domain.services.scoring_guard import scorer_guard
from shiftcoach.domain.services.scoring_math import (
    circular_spread_hours, clamp, clock_hours, map_range,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constantes
# ---------------------------------------------------------------------------
SLEEP_WINDOW_DAYS = 7
SHIFT_WINDOW_DAYS = 14
DEFAULT_SLEEP_TARGET_HOURS = 7.5
DEFAULT_STEPS_GOAL = 10000

SLEEP_FAMILY_WEIGHTS: Dict[str, float] = {
    "sleep_score": 0.35,
    "regularity_score": 0.25,
    "shift_pattern_score": 0.2,
    "recovery_score": 0.2,
}
FAMILY_WEIGHTS: Dict[str, float] = {
    "sleep": 0.55,
    "nutrition": 0.2,
    "activity": 0.15,
    "meal_timing": 0.1,
}

# Ergonomie de rotation (pénalités sur une base de 100)
PENALTY_TYPE_FLIP = 5
PENALTY_BACKWARD_ROTATION = 15
MAX_CONSECUTIVE_NIGHTS = 3
PENALTY_PER_EXTRA_NIGHT = 10
PENALTY_NIGHT_BLOCK_NO_REST = 10

# Repos entre deux shifts
MIN_REST_HOURS = 11
PENALTY_QUICK_RETURN = 15
PENALTY_AFTER_NIGHT = 10

MESSAGE_THRESHOLDS: Tuple[Tuple[int, str], ...] = (
    (85, "Your rhythm is humming. Keep stacking consistent days."),
    (70, "Your rhythm is syncing well today, stay consistent."),
    (55, "Your rhythm is holding, but sleep and meal timing could be tighter."),
    (40, "Your rhythm is off today; focus on a consistent sleep window and lighter late meals."),
)
MESSAGE_BELOW = "Rhythm reset required. Prioritise sleep and your pre-shift routine tonight."
NO_DATA_MESSAGE = "Log your sleep and shifts to start building your Shift Rhythm score."


def shift_rhythm_message(total_score: int) -> str:
    for threshold, message in MESSAGE_THRESHOLDS:
        if total_score >= threshold:
            return message
    return MESSAGE_BELOW


def _average(values: Sequence[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


def _weighted(scores: Dict[str, Optional[float]], weights: Dict[str, float]) -> Optional[float]:
    """Moyenne pondérée des scores présents, poids renormalisés."""
    present = {k: v for k, v in scores.items() if v is not None}
    if not present:
        return None
    total_weight = sum(weights[k] for k in present)
    return sum(v * weights[k] for k, v in present.items()) / total_weight


def _round(value: Optional[float]) -> Optional[int]:
    return None if value is None else int(round(clamp(value, 0, 100)))


# ===================================================================
# Famille sommeil
# ===================================================================

def sleep_duration_score(sessions: Sequence[SleepSession], target_hours: float) -> Optional[float]:
    avg = _average([s.duration_hours for s in sessions])
    if avg is None:
        return None
    return map_range(avg, target_hours * 0.6, target_hours * 1.1, 25, 100)


def regularity_score(sessions: Sequence[SleepSession]) -> Optional[float]:
    """100 pour des couchers identiques, 40 à partir de 3.5h d'écart-type (2 sessions minimum)."""
    if len(sessions) < 2:
        return None
    spread = circular_spread_hours([clock_hours(s.start) for s in sessions])
    return map_range(spread, 0, 3.5, 100, 40)


def _bedtime_alignment(session: SleepSession, shift_type: Optional[ShiftType]) -> float:
    hour = clock_hours(session.start)
    if shift_type is None:
        return 70
    if shift_type is ShiftType.NIGHT:
        # Coucher tardif préféré avant/autour d'une nuit
        return map_range(hour + 24 if hour < 12 else hour, 20, 26, 70, 100)
    if shift_type is ShiftType.DAY:
        return map_range(hour, 21, 23, 70, 95)
    return 80


def rotation_ergonomics_score(shifts: Sequence[ShiftDay]) -> float:
    """Note la rotation (ordre chronologique) : rotation avant préférée, blocs de nuits courts et suivis d'un repos."""
    ordered = sorted(shifts, key=lambda s: s.date)
    by_date = {s.date: s.shift_type for s in ordered}
    score = 100.0

    for prev, cur in zip(ordered, ordered[1:]):
        if cur.date - prev.date != timedelta(days=1):
            continue
        work_pair = {prev.shift_type, cur.shift_type}
        if work_pair == {ShiftType.DAY, ShiftType.NIGHT}:
            score -= PENALTY_TYPE_FLIP
            if prev.shift_type is ShiftType.NIGHT:
                score -= PENALTY_BACKWARD_ROTATION

    run = 0
    for shift in ordered:
        if shift.shift_type is ShiftType.NIGHT:
            previous = by_date.get(shift.date - timedelta(days=1))
            run = run + 1 if previous is ShiftType.NIGHT else 1
            if run > MAX_CONSECUTIVE_NIGHTS:
                score -= PENALTY_PER_EXTRA_NIGHT
            following = by_date.get(shift.date + timedelta(days=1))
            if following is not None and following.is_work and following is not ShiftType.NIGHT:
                score -= PENALTY_NIGHT_BLOCK_NO_REST
        else:
            run = 0

    return clamp(score, 0, 100)


def shift_pattern_score(sessions: Sequence[SleepSession], shifts: Sequence[ShiftDay]) -> Optional[float]:
    if not shifts:
        return None
    ergonomics = rotation_ergonomics_score(shifts)
    if not sessions:
        return ergonomics
    by_date = {s.date: s.shift_type for s in shifts}
    alignment = _average([_bedtime_alignment(s, by_date.get(s.date)) for s in sessions])
    return (ergonomics + alignment) / 2


def quick_return_count(shifts: Sequence[ShiftDay]) -> int:
    """Nombre d'enchaînements avec moins de 11h de repos entre fin et début de shift."""
    timed = sorted(
        (s for s in shifts if s.shift_type.is_work and s.start is not None and s.end is not None),
        key=lambda s: s.date,
    )
    count = 0
    for prev, cur in zip(timed, timed[1:]):
        prev_end = prev.end if prev.end > prev.start else prev.end + timedelta(days=1)
        rest_hours = (cur.start - prev_end).total_seconds() / 3600
        if 0 <= rest_hours < MIN_REST_HOURS:
            count += 1
    return count


def recovery_score(sessions: Sequence[SleepSession], shifts: Sequence[ShiftDay]) -> Optional[float]:
    """Moyenne de la récupération par le sommeil et du repos entre shifts (parties disponibles)."""
    by_date = {s.date: s.shift_type for s in shifts}
    parts: List[float] = []

    sleep_parts = []
    for session in sessions:
        duration = map_range(session.duration_hours, 5, 9, 30, 100)
        quality = map_range(session.quality if session.quality is not None else 3, 1, 5, 30, 100)
        penalty = PENALTY_AFTER_NIGHT if by_date.get(session.date - timedelta(days=1)) is ShiftType.NIGHT else 0
        sleep_parts.append(clamp(duration * 0.6 + quality * 0.4 - penalty, 20, 100))
    if sleep_parts:
        parts.append(sum(sleep_parts) / len(sleep_parts))

    timed = [s for s in shifts if s.shift_type.is_work and s.start is not None and s.end is not None]
    if len(timed) >= 2:
        parts.append(clamp(100 - PENALTY_QUICK_RETURN * quick_return_count(timed), 0, 100))

    return _average(parts)


# ===================================================================
# Familles optionnelles
# ===================================================================

def nutrition_score(nutrition: NutritionSnapshot) -> float:
    calorie_target = nutrition.adjusted_calories or nutrition.calorie_target or 0
    consumed = nutrition.consumed_calories or 0
    calorie_ratio = consumed / calorie_target if calorie_target > 0 else 1
    calories = map_range(calorie_ratio, 0.7, 1.1, 50, 100)

    macro_scores = []
    macros = nutrition.macros
    if macros is not None:
        for item, lo, hi, out_lo, out_hi in (
            (macros.protein, 0.8, 1.1, 60, 100),
            (macros.carbs, 0.8, 1.15, 65, 100),
            (macros.fat, 0.7, 1.2, 60, 98),
        ):
            if item is not None and item.target and item.consumed is not None:
                macro_scores.append(map_range(item.consumed / item.target, lo, hi, out_lo, out_hi))
        sat = macros.sat_fat
        if sat is not None and sat.limit and sat.consumed is not None:
            macro_scores.append(map_range(sat.consumed / sat.limit, 0.3, 1.0, 100, 55))
    macro = clamp(sum(macro_scores) / len(macro_scores), 40, 100) if macro_scores else 80

    water = nutrition.hydration.water if nutrition.hydration else None
    caffeine = nutrition.hydration.caffeine if nutrition.hydration else None
    hydrated = (
        map_range((water.consumed or 0) / water.target, 0.6, 1.0, 55, 100)
        if water is not None and water.target else 80
    )
    caffeine_score = (
        map_range((caffeine.consumed or 0) / caffeine.limit, 0.2, 1.1, 100, 50)
        if caffeine is not None and caffeine.limit else 85
    )
    hydration = clamp(hydrated * 0.7 + caffeine_score * 0.3, 40, 100)

    return clamp(calories * 0.4 + macro * 0.4 + hydration * 0.2, 0, 100)


def activity_adherence_score(activity: ActivitySnapshot) -> float:
    goal = activity.steps_goal if activity.steps_goal is not None else DEFAULT_STEPS_GOAL
    steps_ratio = (activity.steps or 0) / goal if goal else 1
    steps = map_range(steps_ratio, 0.5, 1.1, 60, 100)
    if activity.active_minutes_goal:
        active = map_range((activity.active_minutes or 0) / activity.active_minutes_goal, 0.5, 1.1, 60, 100)
    else:
        active = 80
    return clamp(steps * 0.75 + active * 0.25, 0, 100)


def meal_timing_score(meal_timing: MealTimingSnapshot) -> float:
    windows = {w.slot.lower(): w for w in meal_timing.recommended}
    matches = []
    for entry in meal_timing.actual:
        window = windows.get(entry.slot.lower())
        if window is None:
            matches.append(70)
            continue
        eaten_at = entry.timestamp
        start = datetime.combine(eaten_at.date(), window.window_start, tzinfo=eaten_at.tzinfo)
        end = datetime.combine(eaten_at.date(), window.window_end, tzinfo=eaten_at.tzinfo)
        if start <= eaten_at <= end:
            matches.append(95)
        else:
            diff_minutes = min(abs((eaten_at - start).total_seconds()), abs((eaten_at - end).total_seconds())) / 60
            matches.append(map_range(diff_minutes, 30, 180, 90, 60))
    return clamp(sum(matches) / len(matches), 40, 100)


# ===================================================================
# Score composite
# ===================================================================

def _rhythm_unavailable(reason: str = NO_DATA_MESSAGE) -> ShiftRhythmResult:
    """Repli sur erreur interne : distinct de l'absence de données, jamais persisté."""
    return ShiftRhythmResult(
        has_rhythm_data=False,
        computation_failed=True,
        total_score=0,
        message=reason,
    )


@scorer_guard(_rhythm_unavailable)
def calculate_shift_rhythm(
    sessions: Sequence[SleepSession],
    shifts: Sequence[ShiftDay],
    today: date,
    signals: Optional[RhythmSignals] = None,
    sleep_target_hours: float = DEFAULT_SLEEP_TARGET_HOURS,
) -> ShiftRhythmResult:
    """Shift Rhythm du jour.

    Sans aucun log de sommeil ni de shift, renvoie un score neutre de 0 marqué
    `has_rhythm_data=False` plutôt qu'une valeur moyenne arbitraire.
    """
    signals = signals or RhythmSignals()
    if sleep_target_hours <= 0:
        sleep_target_hours = DEFAULT_SLEEP_TARGET_HOURS

    sleep_start = today - timedelta(days=SLEEP_WINDOW_DAYS - 1)
    shift_start = today - timedelta(days=SHIFT_WINDOW_DAYS - 1)
    window_sleep = [s for s in sessions if sleep_start <= s.date <= today]
    # siestes seules : elles tiennent lieu de sommeil principal
    recent_sleep = [s for s in window_sleep if not s.is_nap] or window_sleep
    recent_shifts = [s for s in shifts if shift_start <= s.date <= today]

    if not recent_sleep and not recent_shifts:
        missing = ["sleep", "shifts"]
        if signals.nutrition is None:
            missing.append("nutrition")
        if signals.activity is None or not signals.activity.has_data:
            missing.append("activity")
        if signals.meal_timing is None or not signals.meal_timing.has_data:
            missing.append("meal_timing")
        return ShiftRhythmResult(has_rhythm_data=False, total_score=0, missing_signals=missing, message=NO_DATA_MESSAGE)

    sleep_family = {
        "sleep_score": sleep_duration_score(recent_sleep, sleep_target_hours),
        "regularity_score": regularity_score(recent_sleep),
        "shift_pattern_score": shift_pattern_score(recent_sleep, recent_shifts),
        "recovery_score": recovery_score(recent_sleep, recent_shifts),
    }
    families: Dict[str, Optional[float]] = {
        "sleep": _weighted(sleep_family, SLEEP_FAMILY_WEIGHTS),
        "nutrition": nutrition_score(signals.nutrition) if signals.nutrition is not None else None,
        "activity": (
            activity_adherence_score(signals.activity)
            if signals.activity is not None and signals.activity.has_data else None
        ),
        "meal_timing": (
            meal_timing_score(signals.meal_timing)
            if signals.meal_timing is not None and signals.meal_timing.has_data else None
        ),
    }

    missing: List[str] = []
    if not recent_sleep:
        missing.append("sleep")
    if not recent_shifts:
        missing.append("shifts")
    missing.extend(name for name in ("nutrition", "activity", "meal_timing") if families[name] is None)

    total = _round(_weighted(families, FAMILY_WEIGHTS)) or 0
    logger.debug(f"Shift Rhythm {today}: total={total}, manquants={missing}")

    return ShiftRhythmResult(
        has_rhythm_data=True,
        sleep_score=_round(sleep_family["sleep_score"]),
        regularity_score=_round(sleep_family["regularity_score"]),
        shift_pattern_score=_round(sleep_family["shift_pattern_score"]),
        recovery_score=_round(sleep_family["recovery_score"]),
        nutrition_score=_round(families["nutrition"]),
        activity_score=_round(families["activity"]),
        meal_timing_score=_round(families["meal_timing"]),
        total_score=total,
        missing_signals=missing,
        message=shift_rhythm_message(total),
    )

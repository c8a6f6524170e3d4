"""
Risque de fringale / binge eating (0-100) pour les travailleurs postés.

Facteurs : dette de sommeil, fatigue (inverse du Shift Rhythm), niveau d'activité du shift,
ShiftLag, et en contexte optionnel le shift du jour et de la veille, un enchaînement rapide,
le dernier sommeil (durée, qualité), le dernier repas et l'heure locale.

Le scorer ne renvoie jamais None et ne lève jamais : données manquantes ou erreur interne
donnent un résultat de repli bien formé (score 0, niveau low, explication).
"""
import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from shiftcoach.domain.entities.scores import BingeRiskResult
from shiftcoach.domain.entities.timeseries import ShiftActivityLevel, ShiftDay, ShiftType, SleepSession
from shiftcoach.domain.services.activity_intensity import ACTIVITY_LEVELS, activity_binge_points
from shiftcoach.domain.services.scoring_guard import scorer_guard
from shiftcoach.domain.services.scoring_math import clamp, format_hours

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constantes
# ---------------------------------------------------------------------------
# (déficit hebdo strictement supérieur à, points)
SLEEP_DEBT_POINTS: Tuple[Tuple[float, int], ...] = ((14.0, 35), (7.0, 25), (3.5, 12), (0.0, 5))
FATIGUE_WEIGHT = 0.35  # points par point de (100 - Shift Rhythm)
NIGHT_SHIFT_POINTS = 10
POST_NIGHT_POINTS = 20
POST_NIGHT_UNTIL_HOUR = 12  # matinée qui suit une nuit
QUICK_TURNAROUND_POINTS = 15
QUICK_TURNAROUND_SLEEP_HOURS = 6.0
# (dernier sommeil strictement inférieur à, points)
LAST_SLEEP_POINTS: Tuple[Tuple[float, int], ...] = ((4.0, 20), (5.0, 15), (6.0, 10), (7.0, 5))
POOR_QUALITY_BELOW = 3
POOR_QUALITY_POINTS = 10
# (heures depuis le dernier repas strictement supérieures à, points, libellé)
FASTING_POINTS: Tuple[Tuple[float, int, str], ...] = (
    (16.0, 20, "Very long fasting window"),
    (14.0, 15, "Long fasting window"),
    (12.0, 10, "Extended fasting"),
)
NIGHT_MEAL_POINTS = 8
HIGH_SHIFT_LAG_ABOVE = 50
HIGH_SHIFT_LAG_POINTS = 6
# Fenêtres horaires locales [début, fin) pouvant chevaucher minuit
PEAK_CRAVING_WINDOW = (20, 2)
PEAK_CRAVING_POINTS = 8
LATE_WINDOW = (18, 4)
LATE_POINTS = 5
BIOLOGICAL_NIGHT_MEAL_WINDOW = (0, 6)

LOW_BELOW = 30
MEDIUM_BELOW = 70
MAX_DRIVERS = 3

INSUFFICIENT_DRIVER = "Insufficient data to estimate binge risk yet"
NO_RISK_DRIVER = "No major risk factors today"
INSUFFICIENT_EXPLANATION = (
    "Binge risk stays low until we have some sleep and shift data. "
    "Log your rota and sleep to unlock personalised binge-risk coaching."
)
LOW_EXPLANATION = "Your risk of cravings and binge eating looks low today. Keep meals regular and hydrate well."

# Facteur principal -> problème en une phrase
MEDIUM_ISSUES: Dict[str, str] = {
    "sleep": "You're short on sleep",
    "debt": "You're building sleep debt",
    "meal": "Long gap since last meal",
    "meal_night": "Late-night eating adds to cravings",
    "night": "Your shift pattern is tough",
    "post_night": "Your shift pattern is tough",
    "turnaround": "Your shift pattern is tough",
    "shift_lag": "Your body clock is out of sync",
    "rhythm": "Your body clock is under strain",
    "activity": "Your shift is physically demanding",
    "clock": "Cravings peak at this time of day",
}


def binge_risk_level(score: int) -> str:
    if score < LOW_BELOW:
        return "low"
    if score < MEDIUM_BELOW:
        return "medium"
    return "high"


def _in_window(hour: int, window: Tuple[int, int]) -> bool:
    start, end = window
    if start <= end:
        return start <= hour < end
    return hour >= start or hour < end


def has_quick_turnaround(shifts: Sequence[ShiftDay], sessions: Sequence[SleepSession], today: date) -> bool:
    """Deux jours de travail consécutifs les plus récents, avec un des deux derniers sommeils sous 6h."""
    worked = sorted((s for s in shifts if s.date <= today), key=lambda s: s.date, reverse=True)[:2]
    if len(worked) < 2 or not all(s.shift_type.is_work for s in worked):
        return False
    if worked[0].date - worked[1].date != timedelta(days=1):
        return False
    main_sleeps = sorted(
        (s for s in sessions if not s.is_nap and s.date <= today), key=lambda s: s.date, reverse=True,
    )[:2]
    return any(s.duration_hours < QUICK_TURNAROUND_SLEEP_HOURS for s in main_sleeps)


def _insufficient(reason: str = INSUFFICIENT_EXPLANATION) -> BingeRiskResult:
    return BingeRiskResult(
        has_enough_data=False,
        score=0,
        level="low",
        drivers=[INSUFFICIENT_DRIVER],
        explanation=reason,
    )


def _explanation(
    level: str, ranked: List[Tuple[float, str, str]], last_sleep_hours: Optional[float], night_today: bool,
) -> str:
    if level == "low":
        return LOW_EXPLANATION
    main_kind, main_label = (ranked[0][1], ranked[0][2]) if ranked else ("", "")
    if level == "medium":
        issue = MEDIUM_ISSUES.get(main_kind, "You need to watch your eating")
        return f"Moderate risk. {issue}. Eat every 4-5 hours today."

    slept = format_hours(max(0.0, last_sleep_hours)) if last_sleep_hours is not None else None
    if night_today:
        if slept is not None:
            return (
                f"You're at high risk of overeating tonight. You got {slept} sleep and you're on nights. "
                "Eat every 3-4 hours to avoid bingeing."
            )
        return "You're at high risk of overeating tonight on nights. Eat every 3-4 hours to avoid bingeing."
    if main_kind in ("meal", "meal_night"):
        context = f"You slept {slept} and haven't eaten in a while." if slept else "You haven't eaten in a while."
        return f"High risk today. {context} Have a meal now, then another in 3-4 hours."
    factor = main_label[:1].lower() + main_label[1:]
    context = f"You slept {slept} and your main factor is {factor}." if slept else f"Your main factor is {factor}."
    return f"High risk today. {context} Eat every 3-4 hours today."


@scorer_guard(_insufficient)
def calculate_binge_risk(
    sleep_debt_hours: Optional[float] = None,
    shift_rhythm_total: Optional[int] = None,
    activity_level: Optional[ShiftActivityLevel] = None,
    shift_type_today: Optional[ShiftType] = None,
    last_sleep_hours: Optional[float] = None,
    now: Optional[datetime] = None,
    last_sleep_quality: Optional[int] = None,
    shift_type_yesterday: Optional[ShiftType] = None,
    quick_turnaround: bool = False,
    last_meal_at: Optional[datetime] = None,
    shift_lag_score: Optional[int] = None,
) -> BingeRiskResult:
    """Score de risque 0-100, niveau (<30 low, <70 medium, sinon high) et 3 facteurs principaux.

    Sans dette de sommeil, sans Shift Rhythm, sans niveau d'activité et sans ShiftLag,
    renvoie le repli "insufficient data" : le contexte seul (heure, shift, repas) ne suffit
    pas à juger. `last_meal_at` doit être dans le même référentiel que `now`.
    """
    if (sleep_debt_hours is None and shift_rhythm_total is None
            and activity_level is None and shift_lag_score is None):
        return _insufficient()

    # (points, nature, libellé)
    contributions: List[Tuple[float, str, str]] = []

    if sleep_debt_hours is not None:
        for threshold, points in SLEEP_DEBT_POINTS:
            if sleep_debt_hours > threshold:
                label = "High sleep debt" if points >= 25 else "Sleep debt"
                contributions.append((points, "debt", f"{label} ({sleep_debt_hours:.1f}h this week)"))
                break

    if shift_rhythm_total is not None:
        fatigue = clamp(100 - shift_rhythm_total, 0, 100)
        points = FATIGUE_WEIGHT * fatigue
        if points > 0:
            contributions.append(
                (points, "rhythm", f"Body clock strain (Shift Rhythm {int(shift_rhythm_total)}/100)")
            )

    if activity_level is not None:
        points = activity_binge_points(activity_level)
        if points > 0:
            contributions.append((points, "activity", f"{ACTIVITY_LEVELS[activity_level].label} shift activity"))

    night_today = shift_type_today is ShiftType.NIGHT
    if night_today:
        contributions.append((NIGHT_SHIFT_POINTS, "night", "Night shift"))
    elif shift_type_yesterday is ShiftType.NIGHT and now is not None and now.hour < POST_NIGHT_UNTIL_HOUR:
        contributions.append((POST_NIGHT_POINTS, "post_night", "Post-night shift"))

    if quick_turnaround:
        contributions.append((QUICK_TURNAROUND_POINTS, "turnaround", "Quick shift turnaround"))

    if last_sleep_hours is not None:
        for threshold, points in LAST_SLEEP_POINTS:
            if last_sleep_hours < threshold:
                contributions.append(
                    (points, "sleep", f"Short last sleep ({format_hours(max(0.0, last_sleep_hours))})")
                )
                break

    if last_sleep_quality is not None and last_sleep_quality < POOR_QUALITY_BELOW:
        contributions.append((POOR_QUALITY_POINTS, "sleep", "Poor sleep quality"))

    if last_meal_at is not None and now is not None:
        fasting_hours = (now - last_meal_at).total_seconds() / 3600
        for threshold, points, label in FASTING_POINTS:
            if fasting_hours > threshold:
                contributions.append((points, "meal", f"{label} ({int(round(fasting_hours))}h)"))
                break
        if _in_window(last_meal_at.hour, BIOLOGICAL_NIGHT_MEAL_WINDOW):
            contributions.append((NIGHT_MEAL_POINTS, "meal_night", "Eating during biological night"))

    if shift_lag_score is not None and shift_lag_score > HIGH_SHIFT_LAG_ABOVE:
        contributions.append((HIGH_SHIFT_LAG_POINTS, "shift_lag", "High shift lag"))

    if now is not None:
        if _in_window(now.hour, PEAK_CRAVING_WINDOW):
            contributions.append((PEAK_CRAVING_POINTS, "clock", "Late-evening craving window"))
        elif _in_window(now.hour, LATE_WINDOW):
            contributions.append((LATE_POINTS, "clock", "Late hours"))

    score = int(round(clamp(sum(points for points, _, _ in contributions), 0, 100)))
    level = binge_risk_level(score)

    # sorted() est stable : à contribution égale, l'ordre d'évaluation est conservé
    ranked = sorted(contributions, key=lambda item: item[0], reverse=True)
    drivers = [label for _, _, label in ranked[:MAX_DRIVERS]] or [NO_RISK_DRIVER]

    return BingeRiskResult(
        has_enough_data=True,
        score=score,
        level=level,
        drivers=drivers,
        explanation=_explanation(level, ranked, last_sleep_hours, night_today),
    )

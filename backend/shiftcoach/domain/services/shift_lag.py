"""
ShiftLag : score 0-100 de "jet lag" lié au travail posté.

    total = dette de sommeil (0-40) + désalignement (0-40) + instabilité (0-20)

Le désalignement vient du social jetlag quand il est calculable, sinon du
recouvrement moyen des shifts récents avec la nuit biologique (23:00-07:00).
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Tuple

from shiftcoach.domain.entities.scores import (
    ScheduleInstabilityResult, ShiftLagDrivers, ShiftLagResult, SleepDeficitResult, SocialJetlagResult,
)
from shiftcoach.domain.entities.timeseries import ShiftDay
from shiftcoach.domain.services.scoring_guard import scorer_guard
from shiftcoach.domain.services.scoring_math import clamp, interpolate

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constantes
# ---------------------------------------------------------------------------
SLEEP_DEBT_MAX = 40
MISALIGNMENT_MAX = 40
INSTABILITY_MAX = 20

# Déficit hebdomadaire (h) -> points
SLEEP_DEBT_POINTS: Tuple[Tuple[float, float], ...] = (
    (0.0, 0.0), (3.0, 0.0), (7.0, 20.0), (14.0, 35.0), (16.0, 40.0),
)
# Décalage du milieu de sommeil (h) -> points
MISALIGNMENT_POINTS: Tuple[Tuple[float, float], ...] = (
    (0.0, 0.0), (1.5, 8.0), (3.5, 20.0), (6.0, 32.0), (8.0, 40.0),
)
# Recouvrement moyen shift / nuit biologique (h) -> points
NIGHT_OVERLAP_POINTS: Tuple[Tuple[float, float], ...] = (
    (0.0, 0.0), (2.0, 5.0), (4.0, 15.0), (6.0, 25.0), (8.0, 40.0),
)

BIOLOGICAL_NIGHT_START = time(23, 0)
BIOLOGICAL_NIGHT_HOURS = 8
OVERLAP_WINDOW_DAYS = 14
OVERLAP_MAX_SHIFTS = 5

LOW_MAX_SCORE = 20
MODERATE_MAX_SCORE = 50

LEVEL_EXPLANATIONS = {
    "low": "Your body clock is coping well with your current schedule.",
    "moderate": "You're carrying some shift lag from your recent shifts.",
    "high": "Your body clock is out of sync due to recent night shifts and sleep debt.",
}
INSUFFICIENT_EXPLANATION = "Track a few days of sleep and shifts to unlock your ShiftLag score."


def shift_lag_level(score: int) -> str:
    if score <= LOW_MAX_SCORE:
        return "low"
    if score <= MODERATE_MAX_SCORE:
        return "moderate"
    return "high"


def _points(value: float, table: Tuple[Tuple[float, float], ...], upper: int) -> int:
    return int(round(clamp(interpolate(max(0.0, value), table), 0, upper)))


def night_overlap_hours(start: datetime, end: datetime) -> float:
    """Heures d'un shift passées dans la nuit biologique (23:00-07:00), nuits successives cumulées."""
    if end <= start:
        end += timedelta(days=1)
    total = 0.0
    day = start.date() - timedelta(days=1)
    while day <= end.date():
        night_start = datetime.combine(day, BIOLOGICAL_NIGHT_START, tzinfo=start.tzinfo)
        night_end = night_start + timedelta(hours=BIOLOGICAL_NIGHT_HOURS)
        overlap = (min(end, night_end) - max(start, night_start)).total_seconds() / 3600
        if overlap > 0:
            total += overlap
        day += timedelta(days=1)
    return total


def average_night_overlap(shifts: Iterable[ShiftDay], today: date) -> Optional[float]:
    """Recouvrement moyen des 5 derniers shifts horodatés, None si aucun."""
    window_start = today - timedelta(days=OVERLAP_WINDOW_DAYS - 1)
    recent = sorted(
        (s for s in shifts
         if s.shift_type.is_work and s.start is not None and s.end is not None
         and window_start <= s.date <= today),
        key=lambda s: s.date, reverse=True,
    )[:OVERLAP_MAX_SHIFTS]
    if not recent:
        return None
    overlaps = [night_overlap_hours(s.start, s.end) for s in recent]
    return sum(overlaps) / len(overlaps)


def _insufficient(reason: str = INSUFFICIENT_EXPLANATION) -> ShiftLagResult:
    return ShiftLagResult(
        has_enough_data=False,
        score=0,
        level="low",
        sleep_debt_score=0,
        misalignment_score=0,
        instability_score=0,
        drivers=ShiftLagDrivers(sleep_debt="No data", misalignment="No data", instability="No data"),
        explanation=reason,
    )


def _sleep_debt_driver(hours: float) -> str:
    if hours <= 0:
        return "No sleep debt this week"
    return f"{hours:.1f}h sleep debt this week"


def _misalignment_driver(source: str, hours: float) -> str:
    if source == "sleep_midpoint":
        return f"Sleep midpoint shifted {hours:.1f}h on work days"
    if source == "night_overlap":
        return f"{hours:.1f}h per shift worked during your biological night"
    return "No misalignment detected"


def _instability_driver(spread: float, points: int) -> str:
    if points == 0:
        return "Stable shift start times"
    return f"Shift start times vary by {spread:.1f}h"


@scorer_guard(_insufficient)
def calculate_shift_lag(
    deficit: SleepDeficitResult,
    jetlag: SocialJetlagResult,
    instability: ScheduleInstabilityResult,
    shifts: List[ShiftDay],
    today: date,
) -> ShiftLagResult:
    """Combine les trois sous-scores bornés en un ShiftLag 0-100.

    Sans aucun sommeil loggé sur la semaine, le résultat entier est marqué
    `has_enough_data=False` plutôt que de renvoyer un zéro trompeur.
    """
    if deficit.days_with_sleep == 0:
        return _insufficient()

    debt_hours = max(0.0, deficit.weekly_deficit_hours)
    sleep_debt_score = _points(debt_hours, SLEEP_DEBT_POINTS, SLEEP_DEBT_MAX)

    misalignment_hours = 0.0
    source = "none"
    misalignment_score = 0
    if jetlag.has_enough_data and jetlag.current_misalignment_hours is not None:
        misalignment_hours = jetlag.current_misalignment_hours
        source = "sleep_midpoint"
        misalignment_score = _points(misalignment_hours, MISALIGNMENT_POINTS, MISALIGNMENT_MAX)
    else:
        overlap = average_night_overlap(shifts, today)
        if overlap is not None:
            misalignment_hours = overlap
            source = "night_overlap"
            misalignment_score = _points(overlap, NIGHT_OVERLAP_POINTS, MISALIGNMENT_MAX)

    instability_score = int(clamp(instability.score, 0, INSTABILITY_MAX))

    score = int(clamp(sleep_debt_score + misalignment_score + instability_score, 0, 100))
    level = shift_lag_level(score)

    return ShiftLagResult(
        has_enough_data=True,
        score=score,
        level=level,
        sleep_debt_score=sleep_debt_score,
        misalignment_score=misalignment_score,
        instability_score=instability_score,
        sleep_debt_hours=round(debt_hours, 1),
        misalignment_hours=round(misalignment_hours, 2),
        misalignment_source=source,
        start_spread_hours=instability.start_spread_hours,
        drivers=ShiftLagDrivers(
            sleep_debt=_sleep_debt_driver(debt_hours),
            misalignment=_misalignment_driver(source, misalignment_hours),
            instability=_instability_driver(instability.start_spread_hours, instability_score),
        ),
        explanation=LEVEL_EXPLANATIONS[level],
    )

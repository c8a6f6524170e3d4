"""
Instabilité du planning : dispersion des heures de prise de poste (0-20 points).
"""
import logging
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from shiftcoach.domain.entities.scores import ScheduleInstabilityResult
from shiftcoach.domain.entities.timeseries import ShiftDay, ShiftType
from shiftcoach.domain.services.scoring_guard import scorer_guard
from shiftcoach.domain.services.scoring_math import circular_spread_hours, clock_hours, interpolate

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constantes
# ---------------------------------------------------------------------------
WINDOW_DAYS = 14
MIN_SHIFTS = 2
MAX_POINTS = 20

# Heure de début supposée quand le shift n'a pas de timestamp
SHIFT_TYPE_DEFAULT_START: Dict[ShiftType, float] = {
    ShiftType.DAY: 8.0,
    ShiftType.NIGHT: 22.0,
}

# Écart-type circulaire des débuts (h) -> points, interpolation linéaire, monotone
INSTABILITY_POINTS: Tuple[Tuple[float, float], ...] = (
    (0.0, 0.0),
    (2.0, 0.0),
    (4.0, 5.0),
    (6.0, 10.0),
    (8.0, 15.0),
    (10.0, 20.0),
)


def instability_points(spread_hours: float) -> int:
    """Points d'instabilité pour un écart-type de début de poste donné (0-20)."""
    return int(round(min(MAX_POINTS, max(0.0, interpolate(spread_hours, INSTABILITY_POINTS)))))


def shift_start_hour(shift: ShiftDay) -> Optional[float]:
    if shift.start is not None:
        return clock_hours(shift.start)
    return SHIFT_TYPE_DEFAULT_START.get(shift.shift_type)


def _explanation(points: int, spread: float, counted: int) -> str:
    if counted < MIN_SHIFTS:
        return "Not enough recent shifts to judge how stable your schedule is."
    if points <= 4:
        return f"Your shift start times are consistent (spread {spread:.1f}h)."
    if points <= 12:
        return f"Your shift start times vary by about {spread:.1f}h, which keeps your body clock adjusting."
    return f"Your start times swing widely (about {spread:.1f}h), a strong source of shift lag."


def _fallback(reason: str) -> ScheduleInstabilityResult:
    return ScheduleInstabilityResult(score=0, start_spread_hours=0.0, shifts_counted=0, explanation=reason)


@scorer_guard(_fallback)
def calculate_schedule_instability(shifts: Iterable[ShiftDay], today: date) -> ScheduleInstabilityResult:
    """Dispersion (écart-type circulaire, heures) des débuts de poste sur 14 jours.

    Les shifts sans heure de début prennent l'heure type de leur catégorie ;
    les jours off et les shifts "other" sans heure sont ignorés.
    """
    window_start = today - timedelta(days=WINDOW_DAYS - 1)
    starts: List[float] = []
    for shift in shifts:
        if not shift.shift_type.is_work or not window_start <= shift.date <= today:
            continue
        hour = shift_start_hour(shift)
        if hour is not None:
            starts.append(hour)

    spread = circular_spread_hours(starts) if len(starts) >= MIN_SHIFTS else 0.0
    points = instability_points(spread) if len(starts) >= MIN_SHIFTS else 0

    return ScheduleInstabilityResult(
        score=points,
        start_spread_hours=round(spread, 2),
        shifts_counted=len(starts),
        explanation=_explanation(points, spread, len(starts)),
    )

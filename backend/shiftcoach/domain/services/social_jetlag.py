"""
Social jetlag : décalage du milieu de sommeil entre jours travaillés et jours libres.

- Jour travaillé : shift day/night/other ; jour libre : off ou sans shift loggé.
- Milieu de sommeil d'un jour : milieu entre le premier coucher et le dernier réveil
  du sommeil principal (siestes exclues).
- Les heures horloge sont moyennées de façon circulaire (23:00 et 01:00 -> 00:00).
"""
import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from shiftcoach.domain.entities.scores import SocialJetlagResult
from shiftcoach.domain.entities.timeseries import ShiftDay, SleepSession
from shiftcoach.domain.services.scoring_guard import scorer_guard
from shiftcoach.domain.services.scoring_math import (
    circular_distance_hours, circular_mean_hours, clock_hours,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constantes
# ---------------------------------------------------------------------------
WINDOW_DAYS = 14
WEEKLY_WINDOW_DAYS = 7
CURRENT_WORK_DAYS = 3
LOW_MAX_HOURS = 1.5
MODERATE_MAX_HOURS = 3.5

INSUFFICIENT_EXPLANATION = (
    "Not enough data yet. Log main sleep on at least one work day and one day off "
    "to see how far your body clock shifts."
)


def categorize_misalignment(hours: float) -> str:
    if hours <= LOW_MAX_HOURS:
        return "low"
    if hours <= MODERATE_MAX_HOURS:
        return "moderate"
    return "high"


def _explanation(category: str, hours: float) -> str:
    if category == "low":
        return (
            f"Your sleep midpoint on work days is within {hours:.1f}h of your days off. "
            "Your body clock is staying fairly steady."
        )
    if category == "moderate":
        return (
            f"Your sleep midpoint shifts by about {hours:.1f}h between work days and days off. "
            "Keeping wake times closer together will ease the switch."
        )
    return (
        f"Your sleep midpoint shifts by about {hours:.1f}h between work days and days off, "
        "similar to crossing several time zones. Anchor your sleep with a consistent core window."
    )


def _insufficient(reason: str = INSUFFICIENT_EXPLANATION, free_days: int = 0, work_days: int = 0) -> SocialJetlagResult:
    return SocialJetlagResult(
        has_enough_data=False,
        category="insufficient_data",
        free_days=free_days,
        work_days=work_days,
        explanation=reason,
    )


def daily_midpoints(sessions: Iterable[SleepSession]) -> Dict[date, float]:
    """Milieu de sommeil principal (heure horloge) par date d'ancrage."""
    grouped: Dict[date, List[SleepSession]] = defaultdict(list)
    for session in sessions:
        if not session.is_nap:
            grouped[session.date].append(session)

    midpoints: Dict[date, float] = {}
    for day, day_sessions in grouped.items():
        earliest = min(s.start for s in day_sessions)
        latest = max(s.end for s in day_sessions)
        midpoints[day] = clock_hours(earliest + (latest - earliest) / 2)
    return midpoints


def _clock(value: float) -> float:
    return round(value, 2) % 24


@scorer_guard(_insufficient)
def calculate_social_jetlag(
    sessions: Iterable[SleepSession],
    shifts: Iterable[ShiftDay],
    today: date,
) -> SocialJetlagResult:
    """Social jetlag sur les 14 derniers jours (aujourd'hui inclus).

    Référence = moyenne circulaire des jours libres ; actuel = moyenne circulaire des
    3 jours travaillés les plus récents. Sans au moins un jour libre ET un jour travaillé
    avec sommeil, renvoie un résultat `insufficient_data` sans aucun chiffre.
    """
    window_start = today - timedelta(days=WINDOW_DAYS - 1)
    work_dates = {s.date for s in shifts if s.shift_type.is_work}

    free: List[Tuple[date, float]] = []
    work: List[Tuple[date, float]] = []
    for day, midpoint in daily_midpoints(sessions).items():
        if not window_start <= day <= today:
            continue
        (work if day in work_dates else free).append((day, midpoint))

    if not free or not work:
        return _insufficient(free_days=len(free), work_days=len(work))

    baseline = circular_mean_hours([m for _, m in free])
    work.sort(key=lambda item: item[0], reverse=True)
    current = circular_mean_hours([m for _, m in work[:CURRENT_WORK_DAYS]])
    if baseline is None or current is None:
        # Midpoints répartis uniformément autour de l'horloge : pas de moyenne définie
        return _insufficient(
            "Your sleep timing is too scattered to find a stable midpoint yet. Keep logging.",
            free_days=len(free), work_days=len(work),
        )

    misalignment = circular_distance_hours(baseline, current)
    weekly_start = today - timedelta(days=WEEKLY_WINDOW_DAYS - 1)
    weekly = [circular_distance_hours(baseline, m) for d, m in work if d >= weekly_start]
    weekly_average = sum(weekly) / len(weekly) if weekly else misalignment

    category = categorize_misalignment(misalignment)
    return SocialJetlagResult(
        has_enough_data=True,
        current_misalignment_hours=round(misalignment, 2),
        weekly_average_misalignment_hours=round(weekly_average, 2),
        baseline_midpoint_clock=_clock(baseline),
        current_midpoint_clock=_clock(current),
        category=category,
        free_days=len(free),
        work_days=len(work),
        explanation=_explanation(category, misalignment),
    )

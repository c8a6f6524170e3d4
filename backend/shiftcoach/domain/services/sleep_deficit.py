"""
Calcul du déficit de sommeil hebdomadaire (7 jours glissants, aujourd'hui inclus).
weekly_deficit = besoin * 7 - sommeil réel ; positif = en retard, négatif = surplus.
"""
import logging
from datetime import date, timedelta
from typing import Mapping, Tuple

from shiftcoach.domain.entities.scores import SleepDeficitDay, SleepDeficitResult
from shiftcoach.domain.services.scoring_guard import scorer_guard

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constantes
# ---------------------------------------------------------------------------
WINDOW_DAYS = 7
DEFAULT_TARGET_HOURS = 7.5

# Seuils (heures de déficit) -> catégorie, bornes supérieures incluses
DEFICIT_CATEGORY_THRESHOLDS: Tuple[Tuple[float, str], ...] = (
    (0.0, "surplus"),
    (3.5, "low"),
    (7.0, "medium"),
)
DEFICIT_CATEGORY_ABOVE = "high"

CATEGORY_EXPLANATIONS = {
    "surplus": "You're meeting or beating your sleep target this week.",
    "low": "You're slightly behind on sleep this week. An early night or a nap will catch you up.",
    "medium": "You're carrying a noticeable sleep debt. Protect your next main sleep and add a nap if you can.",
    "high": "You're running on a large sleep debt. Prioritise recovery sleep over the next few days.",
}


def categorize_deficit(weekly_deficit_hours: float) -> str:
    """Catégorie du déficit hebdomadaire (<=0 surplus, <=3.5 low, <=7 medium, sinon high)."""
    for upper, category in DEFICIT_CATEGORY_THRESHOLDS:
        if weekly_deficit_hours <= upper:
            return category
    return DEFICIT_CATEGORY_ABOVE


def _fallback(reason: str) -> SleepDeficitResult:
    return SleepDeficitResult(
        weekly_deficit_hours=0.0,
        category="surplus",
        required_daily_hours=DEFAULT_TARGET_HOURS,
        days_with_sleep=0,
        daily=[],
        explanation=reason,
    )


@scorer_guard(_fallback)
def calculate_sleep_deficit(
    daily_minutes: Mapping[date, float],
    today: date,
    target_hours: float = DEFAULT_TARGET_HOURS,
) -> SleepDeficitResult:
    """Déficit de sommeil sur today-6 .. today.

    Les jours absents de `daily_minutes` comptent pour zéro : le calcul se fait même avec
    moins de 2 jours loggés, c'est à l'appelant d'afficher "pas assez de données"
    (voir `days_with_sleep`).
    """
    if target_hours <= 0:
        target_hours = DEFAULT_TARGET_HOURS

    daily = []
    actual_total = 0.0
    days_with_sleep = 0
    for offset in range(WINDOW_DAYS - 1, -1, -1):
        day = today - timedelta(days=offset)
        actual = max(0.0, float(daily_minutes.get(day, 0.0))) / 60
        actual_total += actual
        if actual > 0:
            days_with_sleep += 1
        daily.append(SleepDeficitDay(
            date=day,
            label=day.strftime("%a"),
            required=target_hours,
            actual=round(actual, 2),
            deficit=round(target_hours - actual, 2),
        ))

    weekly_deficit = round(target_hours * WINDOW_DAYS - actual_total, 2)
    category = categorize_deficit(weekly_deficit)

    logger.debug(f"Déficit sommeil {today}: {weekly_deficit}h ({category}), {days_with_sleep} jours loggés")
    return SleepDeficitResult(
        weekly_deficit_hours=weekly_deficit,
        category=category,
        required_daily_hours=target_hours,
        days_with_sleep=days_with_sleep,
        daily=daily,
        explanation=CATEGORY_EXPLANATIONS[category],
    )

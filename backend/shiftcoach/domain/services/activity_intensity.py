"""
Estimation de l'intensité d'activité (light / moderate / vigorous) et score d'activité.

Pour les travailleurs postés sans montre : le niveau d'activité déclaré pour le shift
donne la répartition, le nombre de pas l'affine. La somme des trois bandes est toujours
exactement égale au total de minutes actives (arrondi au plus fort reste).
"""
import logging
import math
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from shiftcoach.domain.entities.scores import ActivityScoreResult, IntensityBand, IntensityBreakdown
from shiftcoach.domain.entities.timeseries import ShiftActivityLevel, ShiftType
from shiftcoach.domain.services.scoring_guard import scorer_guard

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Table des niveaux d'activité
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ActivityLevelInfo:
    label: str
    description: str
    calorie_factor: float
    binge_risk_points: int
    recovery_hours: float


ACTIVITY_LEVELS: Dict[ShiftActivityLevel, ActivityLevelInfo] = {
    ShiftActivityLevel.VERY_LIGHT: ActivityLevelInfo(
        "Very Light", "Mostly sitting, admin work, calm shift", 1.0, 0, 7.0),
    ShiftActivityLevel.LIGHT: ActivityLevelInfo(
        "Light", "Some walking or movement, a few tasks", 1.1, 2, 7.0),
    ShiftActivityLevel.MODERATE: ActivityLevelInfo(
        "Moderate", "On your feet most of the shift, steady pace", 1.2, 5, 7.5),
    ShiftActivityLevel.BUSY: ActivityLevelInfo(
        "Busy", "Lots of walking, lifting, stocking, patient rounds", 1.35, 10, 8.0),
    ShiftActivityLevel.INTENSE: ActivityLevelInfo(
        "Intense", "Emergency pace, constant movement, high stress", 1.5, 15, 8.5),
}

RECOVERY_SUGGESTIONS: Dict[ShiftActivityLevel, str] = {
    ShiftActivityLevel.INTENSE: "Aim for {hours:g} hours of sleep after an intense shift. Your body needs extra recovery time.",
    ShiftActivityLevel.BUSY: "Aim for {hours:g} hours of sleep. Your body needs additional recovery after a busy shift.",
    ShiftActivityLevel.MODERATE: "Aim for {hours:g} hours of sleep to maintain your energy levels.",
    ShiftActivityLevel.LIGHT: "Aim for {hours:g} hours of sleep to support recovery.",
    ShiftActivityLevel.VERY_LIGHT: (
        "Aim for {hours:g} hours of sleep. Lower activity may affect sleep quality, so consistency is key."
    ),
}
DEFAULT_RECOVERY_SUGGESTION = "Maintain consistent sleep timing to support your body clock."


def activity_binge_points(level: Optional[ShiftActivityLevel]) -> int:
    return ACTIVITY_LEVELS[level].binge_risk_points if level is not None else 0


def activity_calorie_factor(level: Optional[ShiftActivityLevel]) -> float:
    return ACTIVITY_LEVELS[level].calorie_factor if level is not None else 1.0


def recovery_suggestion(level: Optional[ShiftActivityLevel]) -> str:
    if level is None:
        return DEFAULT_RECOVERY_SUGGESTION
    return RECOVERY_SUGGESTIONS[level].format(hours=ACTIVITY_LEVELS[level].recovery_hours)


# ---------------------------------------------------------------------------
# Constantes d'intensité
# ---------------------------------------------------------------------------

# Répartition (light, moderate, vigorous) des minutes actives selon le niveau déclaré
INTENSITY_PROPORTIONS: Dict[ShiftActivityLevel, Tuple[float, float, float]] = {
    ShiftActivityLevel.VERY_LIGHT: (0.9, 0.1, 0.0),
    ShiftActivityLevel.LIGHT: (0.7, 0.3, 0.0),
    ShiftActivityLevel.MODERATE: (0.4, 0.6, 0.0),
    ShiftActivityLevel.BUSY: (0.2, 0.65, 0.15),
    ShiftActivityLevel.INTENSE: (0.1, 0.5, 0.4),
}
# Sans niveau déclaré
DEFAULT_PROPORTIONS = (0.7, 0.3, 0.0)

BASE_ACTIVE_MINUTES: Dict[ShiftActivityLevel, int] = {
    ShiftActivityLevel.VERY_LIGHT: 5,
    ShiftActivityLevel.LIGHT: 15,
    ShiftActivityLevel.MODERATE: 25,
    ShiftActivityLevel.BUSY: 40,
    ShiftActivityLevel.INTENSE: 60,
}
# (seuil de pas strict, multiplicateur) testés dans l'ordre
STEP_MULTIPLIERS_ABOVE: Tuple[Tuple[int, float], ...] = ((10000, 1.3), (7000, 1.15))
LOW_STEPS_THRESHOLD = 3000
LOW_STEPS_MULTIPLIER = 0.7
MAX_ESTIMATED_MINUTES = 120
STEPS_PER_ACTIVE_MINUTE = 100

HIGH_STEP_DENSITY = 100  # pas / minute active
LOW_STEP_DENSITY = 30

# Objectifs (light, moderate, vigorous) en minutes selon le type de journée
INTENSITY_TARGETS: Dict[ShiftType, Tuple[int, int, int]] = {
    ShiftType.NIGHT: (8, 12, 3),
    ShiftType.DAY: (10, 15, 5),
    ShiftType.OFF: (10, 15, 5),
    ShiftType.OTHER: (10, 15, 5),
}


# ===================================================================
# Intensité
# ===================================================================

def estimate_total_active_minutes(
    level: Optional[ShiftActivityLevel], steps: int, active_minutes: Optional[int],
) -> int:
    """Minutes actives mesurées si disponibles, sinon estimées à partir du niveau et des pas."""
    if active_minutes is not None and active_minutes > 0:
        return int(active_minutes)
    steps = max(0, steps)
    if level is None:
        return int(round(steps / STEPS_PER_ACTIVE_MINUTE))

    estimated = float(BASE_ACTIVE_MINUTES[level])
    for threshold, multiplier in STEP_MULTIPLIERS_ABOVE:
        if steps > threshold:
            estimated *= multiplier
            break
    else:
        if steps < LOW_STEPS_THRESHOLD:
            estimated *= LOW_STEPS_MULTIPLIER
    return int(max(0, min(round(estimated), MAX_ESTIMATED_MINUTES)))


def _refine_with_steps(shares: Tuple[float, float, float], steps: int, total_minutes: int) -> Tuple[float, float, float]:
    """Décale la masse vers moderate/vigorous si la densité de pas est forte, vers light si elle est faible."""
    light, moderate, vigorous = shares
    density = steps / total_minutes if total_minutes > 0 else 0
    if density > HIGH_STEP_DENSITY:
        return light * 0.7, moderate + light * 0.2, vigorous + light * 0.1
    if density < LOW_STEP_DENSITY:
        return light + moderate * 0.3 + vigorous * 0.2, moderate * 0.7, vigorous * 0.8
    return shares


def _largest_remainder(shares: Tuple[float, float, float], total: int) -> Tuple[int, int, int]:
    """Répartit `total` minutes entières proportionnellement à `shares`, somme exacte."""
    weight = sum(shares)
    if weight <= 0:
        return total, 0, 0
    raw = [total * s / weight for s in shares]
    floors = [math.floor(r) for r in raw]
    remaining = total - sum(floors)
    order = sorted(range(3), key=lambda i: raw[i] - floors[i], reverse=True)
    for i in order[:remaining]:
        floors[i] += 1
    return floors[0], floors[1], floors[2]


def calculate_intensity_breakdown(
    level: Optional[ShiftActivityLevel],
    steps: int,
    active_minutes: Optional[int],
    shift_type: ShiftType = ShiftType.OTHER,
) -> IntensityBreakdown:
    targets = INTENSITY_TARGETS[shift_type]
    total = estimate_total_active_minutes(level, steps, active_minutes)

    if total == 0:
        light = moderate = vigorous = 0
    else:
        shares = INTENSITY_PROPORTIONS[level] if level is not None else DEFAULT_PROPORTIONS
        shares = _refine_with_steps(shares, max(0, steps), total)
        light, moderate, vigorous = _largest_remainder(shares, total)

    return IntensityBreakdown(
        light=IntensityBand(minutes=light, target=targets[0]),
        moderate=IntensityBand(minutes=moderate, target=targets[1]),
        vigorous=IntensityBand(minutes=vigorous, target=targets[2]),
        total_active_minutes=total,
    )


# ===================================================================
# Score d'activité
# ===================================================================

def _step_points(ratio: float) -> int:
    for threshold, points in ((1.0, 30), (0.8, 25), (0.6, 20), (0.4, 15), (0.2, 10)):
        if ratio >= threshold:
            return points
    return 5


def _active_points(ratio: float) -> int:
    for threshold, points in ((1.0, 25), (0.8, 20), (0.6, 15), (0.4, 10)):
        if ratio >= threshold:
            return points
    return 5


def _estimated_active_points(ratio: float) -> int:
    for threshold, points in ((1.0, 20), (0.7, 15), (0.5, 10)):
        if ratio >= threshold:
            return points
    return 5


def _intensity_points(progress: float) -> int:
    for threshold, points in ((0.8, 25), (0.6, 20), (0.4, 15), (0.2, 10)):
        if progress >= threshold:
            return points
    return 5


def activity_score_level(score: int) -> str:
    if score >= 70:
        return "High"
    if score >= 50:
        return "Moderate"
    if score >= 30:
        return "Low-Moderate"
    return "Low"


def _description(level: str, steps: int, step_goal: int, shift_type: ShiftType) -> str:
    if level == "High":
        return "You've been very active today. Great job maintaining movement throughout your shift. Keep it up!"
    if level == "Moderate":
        if steps < step_goal * 0.7:
            return (
                "You've accumulated a moderate amount of activity so far. "
                "There's still room for more movement if you feel up to it."
            )
        return "Good activity level today. You're on track with your movement goals."
    if level == "Low-Moderate":
        return (
            "You've accumulated a small amount of strain so far. "
            "Your body still has plenty of capacity left for movement or training."
        )
    if shift_type is ShiftType.NIGHT:
        return "Low activity so far, which is normal for night shifts. Focus on gentle movement when possible."
    return "Activity is low today. Consider adding a short walk or light movement to boost your energy and health."


def _fallback(reason: str) -> ActivityScoreResult:
    targets = INTENSITY_TARGETS[ShiftType.OTHER]
    return ActivityScoreResult(
        score=0,
        level="Low",
        intensity=IntensityBreakdown(
            light=IntensityBand(minutes=0, target=targets[0]),
            moderate=IntensityBand(minutes=0, target=targets[1]),
            vigorous=IntensityBand(minutes=0, target=targets[2]),
            total_active_minutes=0,
        ),
        recovery_suggestion=DEFAULT_RECOVERY_SUGGESTION,
        description=reason,
    )


@scorer_guard(_fallback)
def calculate_activity_score(
    steps: int,
    step_goal: int,
    active_minutes: Optional[int],
    active_minutes_goal: int,
    shift_type: ShiftType = ShiftType.OTHER,
    level: Optional[ShiftActivityLevel] = None,
) -> ActivityScoreResult:
    """Score d'activité 0-100 : pas vs objectif, minutes actives, progression par intensité, contexte du shift."""
    steps = max(0, steps)
    intensity = calculate_intensity_breakdown(level, steps, active_minutes, shift_type)
    score = 50

    if step_goal > 0:
        score += _step_points(steps / step_goal)

    if active_minutes is not None and active_minutes_goal > 0:
        score += _active_points(active_minutes / active_minutes_goal)
    elif intensity.total_active_minutes > 0:
        estimated_target = intensity.light.target + intensity.moderate.target + intensity.vigorous.target
        score += _estimated_active_points(intensity.total_active_minutes / estimated_target)

    bands = (intensity.light, intensity.moderate, intensity.vigorous)
    progress = sum(b.minutes / b.target if b.target > 0 else 0 for b in bands) / 3
    score += _intensity_points(progress)

    if shift_type is ShiftType.NIGHT:
        if steps < step_goal * 0.5:
            score -= 5
        elif steps >= step_goal * 0.7:
            score += 5
    elif shift_type is ShiftType.OFF and steps >= step_goal * 0.8:
        score += 10

    if level in (ShiftActivityLevel.INTENSE, ShiftActivityLevel.BUSY):
        score += 10
    elif level is ShiftActivityLevel.VERY_LIGHT and steps < step_goal * 0.6:
        score -= 5

    score = int(max(0, min(100, score)))
    score_level = activity_score_level(score)
    return ActivityScoreResult(
        score=score,
        level=score_level,
        steps=steps,
        step_goal=step_goal,
        intensity=intensity,
        recovery_suggestion=recovery_suggestion(level),
        description=_description(score_level, steps, step_goal, shift_type),
        activity_label=ACTIVITY_LEVELS[level].label if level is not None else None,
        activity_description=ACTIVITY_LEVELS[level].description if level is not None else None,
    )

"""
Résultats de scoring - Domain Layer
Modèles immuables renvoyés par les scorers. Les bornes Field(ge/le) garantissent
à la construction qu'aucun score ne sort de sa plage documentée.
"""
from datetime import date as date_type
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ScoreModel(BaseModel):
    """Base commune : immuable, sérialisable tel quel par FastAPI"""
    model_config = ConfigDict(frozen=True)


# ============ SLEEP DEFICIT ============

SleepDeficitCategory = Literal["surplus", "low", "medium", "high"]


class SleepDeficitDay(ScoreModel):
    date: date_type
    label: str  # "Mon", "Tue"...
    required: float
    actual: float
    deficit: float


class SleepDeficitResult(ScoreModel):
    weekly_deficit_hours: float
    category: SleepDeficitCategory
    required_daily_hours: float
    days_with_sleep: int
    daily: List[SleepDeficitDay] = Field(default_factory=list)
    explanation: str = Field(min_length=1)


# ============ SOCIAL JETLAG ============

SocialJetlagCategory = Literal["low", "moderate", "high", "insufficient_data"]


class SocialJetlagResult(ScoreModel):
    has_enough_data: bool
    current_misalignment_hours: Optional[float] = Field(default=None, ge=0, le=12)
    weekly_average_misalignment_hours: Optional[float] = Field(default=None, ge=0, le=12)
    baseline_midpoint_clock: Optional[float] = Field(default=None, ge=0, lt=24)
    current_midpoint_clock: Optional[float] = Field(default=None, ge=0, lt=24)
    category: SocialJetlagCategory
    free_days: int = 0
    work_days: int = 0
    explanation: str = Field(min_length=1)


# ============ SCHEDULE INSTABILITY ============

class ScheduleInstabilityResult(ScoreModel):
    score: int = Field(ge=0, le=20)
    start_spread_hours: float = Field(ge=0)
    shifts_counted: int = 0
    explanation: str = Field(min_length=1)


# ============ SHIFTLAG ============

ShiftLagLevel = Literal["low", "moderate", "high"]


class ShiftLagDrivers(ScoreModel):
    sleep_debt: str
    misalignment: str
    instability: str


class ShiftLagResult(ScoreModel):
    has_enough_data: bool
    score: int = Field(ge=0, le=100)
    level: ShiftLagLevel
    sleep_debt_score: int = Field(ge=0, le=40)
    misalignment_score: int = Field(ge=0, le=40)
    instability_score: int = Field(ge=0, le=20)
    sleep_debt_hours: float = 0.0
    misalignment_hours: float = 0.0
    misalignment_source: Literal["sleep_midpoint", "night_overlap", "none"] = "none"
    start_spread_hours: float = 0.0
    drivers: ShiftLagDrivers
    explanation: str = Field(min_length=1)


# ============ SHIFT RHYTHM ============

class ShiftRhythmResult(ScoreModel):
    has_rhythm_data: bool
    sleep_score: Optional[int] = Field(default=None, ge=0, le=100)
    regularity_score: Optional[int] = Field(default=None, ge=0, le=100)
    shift_pattern_score: Optional[int] = Field(default=None, ge=0, le=100)
    recovery_score: Optional[int] = Field(default=None, ge=0, le=100)
    nutrition_score: Optional[int] = Field(default=None, ge=0, le=100)
    activity_score: Optional[int] = Field(default=None, ge=0, le=100)
    meal_timing_score: Optional[int] = Field(default=None, ge=0, le=100)
    total_score: int = Field(ge=0, le=100)
    missing_signals: List[str] = Field(default_factory=list)
    message: str = Field(min_length=1)
    computation_failed: bool = False  # erreur interne, pas une absence de données


# ============ ACTIVITY ============

class IntensityBand(ScoreModel):
    minutes: int = Field(ge=0)
    target: int = Field(ge=0)


class IntensityBreakdown(ScoreModel):
    light: IntensityBand
    moderate: IntensityBand
    vigorous: IntensityBand
    total_active_minutes: int = Field(ge=0)


ActivityScoreLevel = Literal["Low", "Low-Moderate", "Moderate", "High"]


class ActivityScoreResult(ScoreModel):
    score: int = Field(ge=0, le=100)
    level: ActivityScoreLevel
    steps: int = 0
    step_goal: int = 0
    intensity: IntensityBreakdown
    recovery_suggestion: str
    description: str = Field(min_length=1)
    activity_label: Optional[str] = None  # niveau déclaré pour le shift, ex. "Busy"
    activity_description: Optional[str] = None


# ============ BINGE RISK ============

BingeRiskLevel = Literal["low", "medium", "high"]


class BingeRiskResult(ScoreModel):
    has_enough_data: bool = True
    score: int = Field(ge=0, le=100)
    level: BingeRiskLevel
    drivers: List[str] = Field(min_length=1)
    explanation: str = Field(min_length=1)


# ============ BUNDLE ============

class DailyScores(ScoreModel):
    """Tous les scores du jour pour un utilisateur"""
    date: date_type
    sleep_deficit: SleepDeficitResult
    social_jetlag: SocialJetlagResult
    schedule_instability: ScheduleInstabilityResult
    shift_lag: ShiftLagResult
    shift_rhythm: ShiftRhythmResult
    activity: ActivityScoreResult
    binge_risk: BingeRiskResult
    warnings: List[str] = Field(default_factory=list)


class ShiftRhythmDaily(ScoreModel):
    """Score Shift Rhythm du jour avec celui de la veille pour comparaison"""
    date: date_type
    score: ShiftRhythmResult
    yesterday_total_score: Optional[int] = Field(default=None, ge=0, le=100)
    from_cache: bool = False

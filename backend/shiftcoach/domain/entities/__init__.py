"""
Initialisation des entités du domaine
"""
from .raw_logs import SleepLog, Shift, ActivityLog, Profile
from .shift_rhythm_score import ShiftRhythmScore
from .timeseries import ShiftType, ShiftActivityLevel, SleepSession, ShiftDay, ActivityDay
from .snapshots import (
    TargetConsumed, LimitConsumed, MacroSnapshot, HydrationSnapshot, NutritionSnapshot,
    ActivitySnapshot, MealWindow, MealEntry, MealTimingSnapshot, RhythmSignals,
)
from .scores import (
    SleepDeficitDay, SleepDeficitResult, SocialJetlagResult, ScheduleInstabilityResult,
    ShiftLagDrivers, ShiftLagResult, ShiftRhythmResult, IntensityBand, IntensityBreakdown,
    ActivityScoreResult, BingeRiskResult, DailyScores, ShiftRhythmDaily,
)

__all__ = [
    "SleepLog", "Shift", "ActivityLog", "Profile",
    "ShiftRhythmScore",
    "ShiftType", "ShiftActivityLevel", "SleepSession", "ShiftDay", "ActivityDay",
    "TargetConsumed", "LimitConsumed", "MacroSnapshot", "HydrationSnapshot", "NutritionSnapshot",
    "ActivitySnapshot", "MealWindow", "MealEntry", "MealTimingSnapshot", "RhythmSignals",
    "SleepDeficitDay", "SleepDeficitResult", "SocialJetlagResult", "ScheduleInstabilityResult",
    "ShiftLagDrivers", "ShiftLagResult", "ShiftRhythmResult", "IntensityBand", "IntensityBreakdown",
    "ActivityScoreResult", "BingeRiskResult", "DailyScores", "ShiftRhythmDaily",
]

"""
Snapshots optionnels consommés par le Shift Rhythm (nutrition, activité, horaires de repas).
Servent aussi de corps de requête pour POST /shift-rhythm.
"""
from datetime import datetime, time
from typing import List, Optional

from pydantic import BaseModel, Field


class TargetConsumed(BaseModel):
    target: Optional[float] = Field(default=None, ge=0)
    consumed: Optional[float] = Field(default=None, ge=0)


class LimitConsumed(BaseModel):
    limit: Optional[float] = Field(default=None, ge=0)
    consumed: Optional[float] = Field(default=None, ge=0)


class MacroSnapshot(BaseModel):
    protein: Optional[TargetConsumed] = None
    carbs: Optional[TargetConsumed] = None
    fat: Optional[TargetConsumed] = None
    sat_fat: Optional[LimitConsumed] = None


class HydrationSnapshot(BaseModel):
    water: Optional[TargetConsumed] = None  # ml
    caffeine: Optional[LimitConsumed] = None  # mg


class NutritionSnapshot(BaseModel):
    """Objectifs vs consommé du jour"""
    calorie_target: Optional[float] = Field(default=None, ge=0)
    adjusted_calories: Optional[float] = Field(default=None, ge=0)
    consumed_calories: Optional[float] = Field(default=None, ge=0)
    macros: Optional[MacroSnapshot] = None
    hydration: Optional[HydrationSnapshot] = None


class ActivitySnapshot(BaseModel):
    steps: Optional[int] = Field(default=None, ge=0)
    steps_goal: Optional[int] = Field(default=None, ge=0)
    active_minutes: Optional[int] = Field(default=None, ge=0)
    active_minutes_goal: Optional[int] = Field(default=None, ge=0)

    @property
    def has_data(self) -> bool:
        return self.steps is not None or self.active_minutes is not None


class MealWindow(BaseModel):
    slot: str
    window_start: time
    window_end: time


class MealEntry(BaseModel):
    slot: str
    timestamp: datetime


class MealTimingSnapshot(BaseModel):
    recommended: List[MealWindow] = Field(default_factory=list)
    actual: List[MealEntry] = Field(default_factory=list)

    @property
    def has_data(self) -> bool:
        return bool(self.recommended) and bool(self.actual)


class RhythmSignals(BaseModel):
    """Signaux optionnels du jour ; tout absent = scores correspondants non calculés."""
    nutrition: Optional[NutritionSnapshot] = None
    activity: Optional[ActivitySnapshot] = None
    meal_timing: Optional[MealTimingSnapshot] = None

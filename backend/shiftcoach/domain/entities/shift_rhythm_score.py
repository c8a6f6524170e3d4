"""
Entité ShiftRhythmScore - Domain Layer
Score Shift Rhythm persisté, une entrée par utilisateur par jour.
"""
from sqlmodel import SQLModel, Field, UniqueConstraint
from typing import Optional
from uuid import UUID, uuid4
from datetime import date as date_type, datetime


class ShiftRhythmScore(SQLModel, table=True):
    """Score Shift Rhythm quotidien (cache de 'aujourd'hui')."""
    __tablename__ = "shift_rhythm_scores"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_shift_rhythm_user_date"),
    )

    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(index=True)
    date: date_type = Field(index=True)

    sleep_score: Optional[int] = None
    regularity_score: Optional[int] = None
    shift_pattern_score: Optional[int] = None
    recovery_score: Optional[int] = None
    nutrition_score: Optional[int] = None
    activity_score: Optional[int] = None
    meal_timing_score: Optional[int] = None
    total_score: int = 0
    has_rhythm_data: bool = True

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

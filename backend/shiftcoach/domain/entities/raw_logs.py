"""
Entités brutes - Domain Layer
Lignes telles que saisies par l'utilisateur (sommeil, rota, activité, profil).
Plusieurs colonnes héritées coexistent (start_ts vs start_at...) : seul
l'InputNormalizer les lit, le reste du moteur ne voit que la forme canonique.
"""
from sqlmodel import SQLModel, Field, UniqueConstraint
from typing import Optional
from uuid import UUID, uuid4
from datetime import date as date_type, datetime


class SleepLog(SQLModel, table=True):
    """Session de sommeil brute (ancien et nouveau schéma)."""
    __tablename__ = "sleep_logs"

    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(index=True)
    date: Optional[date_type] = Field(default=None, index=True)

    # Nouveau schéma
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    type: Optional[str] = None  # "sleep", "main", "nap"

    # Ancien schéma
    start_ts: Optional[datetime] = None
    end_ts: Optional[datetime] = None
    naps: Optional[int] = None

    sleep_hours: Optional[float] = None
    quality: Optional[int] = None  # 1-5

    created_at: datetime = Field(default_factory=datetime.utcnow)


class Shift(SQLModel, table=True):
    """Jour de rota, une entrée par utilisateur par jour (upsert)."""
    __tablename__ = "shifts"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_shifts_user_date"),
    )

    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(index=True)
    date: date_type = Field(index=True)
    label: Optional[str] = None  # "NIGHT", "DAY", "OFF", "LATE", "CUSTOM"...
    start_ts: Optional[datetime] = None
    end_ts: Optional[datetime] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)


class ActivityLog(SQLModel, table=True):
    """Activité quotidienne (pas, minutes actives, niveau d'activité du shift)."""
    __tablename__ = "activity_logs"

    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(index=True)
    date: Optional[date_type] = Field(default=None, index=True)
    ts: Optional[datetime] = None
    steps: Optional[int] = None
    active_minutes: Optional[int] = None
    shift_activity_level: Optional[str] = None  # very_light, light, moderate, busy, intense

    created_at: datetime = Field(default_factory=datetime.utcnow)


class Profile(SQLModel, table=True):
    """Objectifs personnels utilisés par le moteur."""
    __tablename__ = "profiles"

    user_id: UUID = Field(primary_key=True)
    sleep_goal_h: Optional[float] = None
    daily_steps_goal: Optional[int] = None
    active_minutes_goal: Optional[int] = None

    updated_at: datetime = Field(default_factory=datetime.utcnow)

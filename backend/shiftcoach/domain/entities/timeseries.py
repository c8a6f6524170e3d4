"""
Séries temporelles canoniques - Domain Layer
Forme unique produite par l'InputNormalizer et consommée par tous les scorers.
"""
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional


class ShiftType(str, Enum):
    """Classification grossière d'un jour de rota"""
    DAY = "day"
    NIGHT = "night"
    OFF = "off"
    OTHER = "other"

    @property
    def is_work(self) -> bool:
        return self is not ShiftType.OFF


class ShiftActivityLevel(str, Enum):
    """Niveau d'activité déclaré pour le shift"""
    VERY_LIGHT = "very_light"
    LIGHT = "light"
    MODERATE = "moderate"
    BUSY = "busy"
    INTENSE = "intense"


@dataclass(frozen=True)
class SleepSession:
    """Session de sommeil normalisée (date = jour calendaire local du coucher)."""
    date: date
    start: datetime
    end: datetime
    duration_hours: float
    quality: Optional[int] = None  # 1-5
    is_nap: bool = False


@dataclass(frozen=True)
class ShiftDay:
    """Jour de rota normalisé"""
    date: date
    shift_type: ShiftType
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    label: Optional[str] = None


@dataclass(frozen=True)
class ActivityDay:
    """Activité quotidienne normalisée"""
    date: date
    steps: int = 0
    active_minutes: Optional[int] = None
    shift_activity_level: Optional[ShiftActivityLevel] = None

"""
Fixtures partagees : base SQLite en memoire et helpers de construction.
"""
from datetime import date, datetime, time, timedelta

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

import shiftcoach.domain.entities  # noqa: F401  (enregistre les tables)
from shiftcoach.domain.entities.timeseries import ShiftDay, ShiftType, SleepSession

TODAY = date(2026, 3, 14)


@pytest.fixture
def engine():
    """Engine SQLite en memoire partage entre threads (StaticPool)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


def make_sleep(day: date, bed_hour: float, hours: float, quality=None, nap=False) -> SleepSession:
    """Session de sommeil ancree sur `day`, coucher a bed_hour (peut depasser 24)."""
    start = datetime.combine(day, time()) + timedelta(hours=bed_hour)
    return SleepSession(
        date=day,
        start=start,
        end=start + timedelta(hours=hours),
        duration_hours=hours,
        quality=quality,
        is_nap=nap,
    )


def make_shift(day: date, shift_type: ShiftType, start_hour=None, hours: float = 8) -> ShiftDay:
    start = end = None
    if start_hour is not None:
        start = datetime.combine(day, time()) + timedelta(hours=start_hour)
        end = start + timedelta(hours=hours)
    return ShiftDay(date=day, shift_type=shift_type, start=start, end=end)

"""
Accès aux données du moteur de scoring : lecture des logs bruts et du profil,
lecture / upsert du score Shift Rhythm quotidien.
"""
import logging
from datetime import date as date_type, datetime, time
from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from shiftcoach.domain.entities.raw_logs import ActivityLog, Profile, Shift, SleepLog
from shiftcoach.domain.entities.scores import ShiftRhythmResult
from shiftcoach.domain.entities.shift_rhythm_score import ShiftRhythmScore

logger = logging.getLogger(__name__)

FETCH_LIMIT = 500

RHYTHM_FIELDS = (
    "sleep_score", "regularity_score", "shift_pattern_score", "recovery_score",
    "nutrition_score", "activity_score", "meal_timing_score", "total_score", "has_rhythm_data",
)


# ===================================================================
# Logs bruts
# ===================================================================

def fetch_sleep_logs(session: Session, user_id: UUID, since: date_type) -> List[SleepLog]:
    """Sessions de sommeil depuis `since`, quel que soit le schéma (date, start_at ou start_ts)."""
    since_dt = datetime.combine(since, time.min)
    statement = (
        select(SleepLog)
        .where(
            SleepLog.user_id == user_id,
            or_(
                SleepLog.date >= since,
                SleepLog.start_at >= since_dt,
                SleepLog.start_ts >= since_dt,
            ),
        )
        .order_by(SleepLog.created_at.desc())
        .limit(FETCH_LIMIT)
    )
    return list(session.exec(statement).all())


def fetch_shifts(session: Session, user_id: UUID, since: date_type) -> List[Shift]:
    statement = (
        select(Shift)
        .where(Shift.user_id == user_id, Shift.date >= since)
        .order_by(Shift.date.desc())
        .limit(FETCH_LIMIT)
    )
    return list(session.exec(statement).all())


def fetch_activity_logs(session: Session, user_id: UUID, since: date_type) -> List[ActivityLog]:
    since_dt = datetime.combine(since, time.min)
    statement = (
        select(ActivityLog)
        .where(
            ActivityLog.user_id == user_id,
            or_(ActivityLog.date >= since, ActivityLog.ts >= since_dt),
        )
        .order_by(ActivityLog.created_at)
        .limit(FETCH_LIMIT)
    )
    return list(session.exec(statement).all())


def fetch_profile(session: Session, user_id: UUID) -> Optional[Profile]:
    return session.get(Profile, user_id)


# ===================================================================
# Score Shift Rhythm persisté
# ===================================================================

def get_shift_rhythm_score(session: Session, user_id: UUID, day: date_type) -> Optional[ShiftRhythmScore]:
    return session.exec(
        select(ShiftRhythmScore).where(
            ShiftRhythmScore.user_id == user_id,
            ShiftRhythmScore.date == day,
        )
    ).first()


def _apply(row: ShiftRhythmScore, result: ShiftRhythmResult) -> None:
    for field in RHYTHM_FIELDS:
        setattr(row, field, getattr(result, field))
    row.updated_at = datetime.utcnow()


def upsert_shift_rhythm_score(
    session: Session, user_id: UUID, day: date_type, result: ShiftRhythmResult,
) -> ShiftRhythmScore:
    """Insère ou met à jour le score du jour (idempotent, dernier écrit gagnant).

    Si une requête concurrente insère la même clé entre notre lecture et notre commit,
    la contrainte unique lève : on relit la ligne gagnante et on l'écrase.
    """
    existing = get_shift_rhythm_score(session, user_id, day)
    if existing:
        _apply(existing, result)
        session.add(existing)
        session.commit()
        session.refresh(existing)
        return existing

    row = ShiftRhythmScore(user_id=user_id, date=day)
    _apply(row, result)
    session.add(row)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        logger.info(f"User {user_id}: score Shift Rhythm {day} inséré en parallèle, mise à jour")
        existing = get_shift_rhythm_score(session, user_id, day)
        if existing is None:
            raise
        _apply(existing, result)
        session.add(existing)
        session.commit()
        row = existing
    session.refresh(row)
    logger.info(f"User {user_id}: score Shift Rhythm {day} enregistré ({result.total_score}/100)")
    return row


def to_shift_rhythm_result(row: ShiftRhythmScore, message: str) -> ShiftRhythmResult:
    """Reconstruit un résultat à partir d'une ligne persistée."""
    values = {field: getattr(row, field) for field in RHYTHM_FIELDS}
    missing = [
        name for name, field in (
            ("sleep", "sleep_score"), ("shifts", "shift_pattern_score"),
            ("nutrition", "nutrition_score"), ("activity", "activity_score"), ("meal_timing", "meal_timing_score"),
        )
        if values[field] is None
    ]
    return ShiftRhythmResult(**values, missing_signals=missing, message=message)

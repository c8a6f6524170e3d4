"""
Routes scores : bundle du jour, déficit de sommeil, social jetlag, ShiftLag,
activité, risque de binge, Shift Rhythm.
Routes = validation + delegation au service. Pas de logique metier ici.
"""
import logging
from typing import Optional
from uuid import UUID
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Body, Depends, Query, Request, Response

from shiftcoach.api.routers._shared import (
    DEFAULT_RATE_LIMIT, get_scoring_service, get_timezone, get_user_id, limiter, local_now,
)
from shiftcoach.domain.entities.scores import (
    ActivityScoreResult, BingeRiskResult, DailyScores, ShiftLagResult, ShiftRhythmDaily,
    SleepDeficitResult, SocialJetlagResult,
)
from shiftcoach.domain.entities.snapshots import RhythmSignals
from shiftcoach.domain.services.scoring_service import ScoringService

logger = logging.getLogger(__name__)

router = APIRouter()


# ============ BUNDLE ============

@router.get("/scores/today", response_model=DailyScores)
@limiter.limit(DEFAULT_RATE_LIMIT)
async def get_today_scores(
    request: Request,
    response: Response,
    user_id: UUID = Depends(get_user_id),
    tz: ZoneInfo = Depends(get_timezone),
    service: ScoringService = Depends(get_scoring_service),
):
    """Tous les scores du jour"""
    return await service.compute_today(user_id, local_now(tz), tz)


# ============ SOMMEIL ============

@router.get("/sleep/deficit", response_model=SleepDeficitResult)
@limiter.limit(DEFAULT_RATE_LIMIT)
async def get_sleep_deficit(
    request: Request,
    response: Response,
    user_id: UUID = Depends(get_user_id),
    tz: ZoneInfo = Depends(get_timezone),
    service: ScoringService = Depends(get_scoring_service),
):
    """Déficit de sommeil sur 7 jours glissants"""
    return await service.sleep_deficit_today(user_id, local_now(tz), tz)


@router.get("/sleep/social-jetlag", response_model=SocialJetlagResult)
@limiter.limit(DEFAULT_RATE_LIMIT)
async def get_social_jetlag(
    request: Request,
    response: Response,
    user_id: UUID = Depends(get_user_id),
    tz: ZoneInfo = Depends(get_timezone),
    service: ScoringService = Depends(get_scoring_service),
):
    return await service.social_jetlag_today(user_id, local_now(tz), tz)


# ============ SHIFTLAG / ACTIVITE / BINGE ============

@router.get("/shiftlag", response_model=ShiftLagResult)
@limiter.limit(DEFAULT_RATE_LIMIT)
async def get_shift_lag(
    request: Request,
    response: Response,
    user_id: UUID = Depends(get_user_id),
    tz: ZoneInfo = Depends(get_timezone),
    service: ScoringService = Depends(get_scoring_service),
):
    return await service.shift_lag_today(user_id, local_now(tz), tz)


@router.get("/activity/today", response_model=ActivityScoreResult)
@limiter.limit(DEFAULT_RATE_LIMIT)
async def get_activity_today(
    request: Request,
    response: Response,
    user_id: UUID = Depends(get_user_id),
    tz: ZoneInfo = Depends(get_timezone),
    service: ScoringService = Depends(get_scoring_service),
):
    """Score d'activité et répartition light/moderate/vigorous du jour"""
    return await service.activity_today(user_id, local_now(tz), tz)


@router.get("/binge-risk", response_model=BingeRiskResult)
@limiter.limit(DEFAULT_RATE_LIMIT)
async def get_binge_risk(
    request: Request,
    response: Response,
    user_id: UUID = Depends(get_user_id),
    tz: ZoneInfo = Depends(get_timezone),
    service: ScoringService = Depends(get_scoring_service),
):
    return await service.binge_risk_today(user_id, local_now(tz), tz)


# ============ SHIFT RHYTHM ============

@router.get("/shift-rhythm", response_model=ShiftRhythmDaily)
@limiter.limit(DEFAULT_RATE_LIMIT)
async def get_shift_rhythm(
    request: Request,
    response: Response,
    force: bool = Query(default=False, description="Recalculer même si un score du jour existe"),
    user_id: UUID = Depends(get_user_id),
    tz: ZoneInfo = Depends(get_timezone),
    service: ScoringService = Depends(get_scoring_service),
):
    """Score Shift Rhythm du jour (persisté) et celui de la veille"""
    return await service.get_shift_rhythm(user_id, local_now(tz), tz, force=force)


@router.post("/shift-rhythm", response_model=ShiftRhythmDaily)
@limiter.limit("30/minute")
async def recompute_shift_rhythm(
    request: Request,
    response: Response,
    signals: Optional[RhythmSignals] = Body(default=None),
    user_id: UUID = Depends(get_user_id),
    tz: ZoneInfo = Depends(get_timezone),
    service: ScoringService = Depends(get_scoring_service),
):
    """Recalcule et enregistre le Shift Rhythm du jour, avec nutrition / repas optionnels"""
    logger.info(f"User {user_id}: recalcul Shift Rhythm demandé")
    return await service.get_shift_rhythm(user_id, local_now(tz), tz, force=True, signals=signals)

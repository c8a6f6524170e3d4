"""
Routers API pour ShiftCoach.

Ce module regroupe tous les sous-routers et expose un router principal
a inclure dans l'application FastAPI.
"""
from fastapi import APIRouter

from shiftcoach.api.routers.scores_router import router as scores_router
from shiftcoach.api.routers._shared import limiter

router = APIRouter()

router.include_router(scores_router)

__all__ = ["router", "limiter"]

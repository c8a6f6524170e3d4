"""
Utilitaires partages entre les routers API.
L'authentification est externe : l'utilisateur est identifie par le header X-User-Id.
"""
import logging
from datetime import datetime
from functools import lru_cache
from typing import Optional
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import Header, HTTPException, Query, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address

from shiftcoach.core.settings import get_settings
from shiftcoach.domain.services.scoring_service import ScoringService

logger = logging.getLogger(__name__)

USER_HEADER = "X-User-Id"
DEFAULT_RATE_LIMIT = get_settings().RATE_LIMIT_DEFAULT


def _parse_user_id(raw: Optional[str]) -> Optional[UUID]:
    if not raw:
        return None
    try:
        return UUID(raw)
    except ValueError:
        return None


def _get_user_or_ip(request: Request) -> str:
    """Key function pour le rate limiter : retourne le user_id si present, sinon l'IP."""
    user_id = _parse_user_id(request.headers.get(USER_HEADER))
    if user_id:
        return f"user:{user_id}"
    return get_remote_address(request)


limiter = Limiter(key_func=_get_user_or_ip, default_limits=[DEFAULT_RATE_LIMIT], headers_enabled=True)


async def get_user_id(x_user_id: Optional[str] = Header(default=None, alias=USER_HEADER)) -> UUID:
    """Extrait l'utilisateur du header X-User-Id (401 si absent, 422 si invalide)."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Header {USER_HEADER} manquant",
        )
    user_id = _parse_user_id(x_user_id)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Header {USER_HEADER} invalide (UUID attendu)",
        )
    return user_id


async def get_timezone(tz: Optional[str] = Query(default=None, description="Fuseau IANA, ex. Europe/Paris")) -> ZoneInfo:
    """Fuseau de la requete, sinon DEFAULT_TIMEZONE."""
    name = tz or get_settings().DEFAULT_TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Fuseau horaire inconnu: {name}",
        )


def local_now(tz: ZoneInfo) -> datetime:
    """Seul point de lecture de l'horloge : les services recoivent toujours `now`."""
    return datetime.now(tz)


@lru_cache()
def get_scoring_service() -> ScoringService:
    return ScoringService()

"""
Frontière de faute des scorers.
Un scorer ne lève jamais : toute exception interne est journalisée puis convertie
en résultat de repli bien formé, construit par la fabrique fournie.
"""
import functools
import logging
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def scorer_guard(fallback: Callable[[str], T]) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Décore un scorer : en cas d'erreur, renvoie fallback(raison) au lieu de propager."""
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                logger.exception(f"Erreur interne dans {func.__name__}: {type(e).__name__}: {e}")
                return fallback(f"Score temporarily unavailable ({type(e).__name__}).")
        return wrapper
    return decorator

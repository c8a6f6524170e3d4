"""
Outils numériques partagés par les scorers.
Toutes les heures "horloge" sont des heures décimales dans [0, 24).
"""
import math
from datetime import datetime
from typing import Iterable, Optional, Sequence, Tuple

HOURS_PER_DAY = 24.0
MAX_CIRCULAR_SPREAD_HOURS = 12.0


def clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


def map_range(value: float, in_min: float, in_max: float, out_min: float, out_max: float) -> float:
    """Projection linéaire de [in_min, in_max] vers [out_min, out_max], bornée aux extrémités."""
    lo, hi = min(in_min, in_max), max(in_min, in_max)
    bounded = clamp(value, lo, hi)
    span = (in_max - in_min) or 1.0
    return out_min + (bounded - in_min) / span * (out_max - out_min)


def interpolate(value: float, points: Sequence[Tuple[float, float]]) -> float:
    """Interpolation linéaire par morceaux sur une table (x, y) triée par x.

    En dehors de la table, la valeur du point extrême est renvoyée.
    """
    if value <= points[0][0]:
        return points[0][1]
    for (x0, y0), (x1, y1) in zip(points, points[1:]):
        if value <= x1:
            if x1 == x0:
                return y1
            return y0 + (value - x0) / (x1 - x0) * (y1 - y0)
    return points[-1][1]


def clock_hours(dt: datetime) -> float:
    """Heure décimale de la journée (0-24)"""
    return dt.hour + dt.minute / 60.0 + dt.second / 3600.0


def circular_distance_hours(a: float, b: float) -> float:
    """Plus petit arc entre deux heures horloge : 23:30 et 00:30 sont à 1h, pas 23h."""
    diff = abs(a - b) % HOURS_PER_DAY
    return min(diff, HOURS_PER_DAY - diff)


def _resultant(values: Iterable[float]) -> Tuple[float, float, int]:
    c = s = 0.0
    n = 0
    for h in values:
        angle = 2 * math.pi * h / HOURS_PER_DAY
        c += math.cos(angle)
        s += math.sin(angle)
        n += 1
    return c, s, n


def circular_mean_hours(values: Sequence[float]) -> Optional[float]:
    """Moyenne circulaire d'heures horloge. None si vide ou si les heures s'annulent."""
    c, s, n = _resultant(values)
    if n == 0 or math.hypot(c, s) / n < 1e-9:
        return None
    angle = math.atan2(s, c)
    return (angle * HOURS_PER_DAY / (2 * math.pi)) % HOURS_PER_DAY


def circular_spread_hours(values: Sequence[float]) -> float:
    """Écart-type circulaire (en heures) d'heures horloge, plafonné à 12h."""
    c, s, n = _resultant(values)
    if n < 2:
        return 0.0
    r = math.hypot(c, s) / n
    if r >= 1 - 1e-12:
        return 0.0
    if r <= 1e-12:
        return MAX_CIRCULAR_SPREAD_HOURS
    spread = math.sqrt(-2 * math.log(r)) * HOURS_PER_DAY / (2 * math.pi)
    return min(spread, MAX_CIRCULAR_SPREAD_HOURS)


def format_hours(hours: float) -> str:
    """7.5 -> '7h 30m', 6.0 -> '6h'"""
    h = int(hours)
    m = int(round((hours - h) * 60))
    if m == 60:
        h, m = h + 1, 0
    return f"{h}h" if m == 0 else f"{h}h {m}m"

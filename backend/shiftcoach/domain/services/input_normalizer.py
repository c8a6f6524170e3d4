"""
Normalisation des logs bruts vers les séries temporelles canoniques.

Les lignes brutes arrivent soit en entités SQLModel, soit en dictionnaires (import, tests).
Les colonnes héritées (start_ts / start_at, end_ts / end_at, sleep_hours calculé ou non)
sont résolues ici et ne fuient jamais au-delà de ce module.

Politique de datation : une session de sommeil est datée par le jour calendaire LOCAL
de son coucher, un shift par son champ `date`. Les timestamps "aware" sont convertis
dans le fuseau fourni avant d'en prendre la date ; les timestamps naïfs sont déjà locaux.
"""
import logging
from collections import OrderedDict
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Dict, Iterable, List, Mapping, Optional

from shiftcoach.domain.entities.timeseries import (
    ActivityDay, ShiftActivityLevel, ShiftDay, ShiftType, SleepSession,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constantes
# ---------------------------------------------------------------------------
NIGHT_LABEL_TOKENS = ("NIGHT",)
OFF_LABEL_TOKENS = ("OFF", "REST", "HOLIDAY", "LEAVE")
DAY_LABEL_TOKENS = ("DAY", "MORNING", "EARLY")
NIGHT_START_FROM_HOUR = 22
NIGHT_START_UNTIL_HOUR = 6  # exclu
MAIN_SLEEP_TYPES = ("sleep", "main")
MAX_SESSION_HOURS = 24.0

# Erreurs de conversion qui invalident une ligne sans interrompre le lot
MALFORMED_ROW_ERRORS = (TypeError, ValueError, OverflowError, AttributeError)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _field(row: Any, *names: str) -> Any:
    """Premier champ non vide parmi `names` (entité ou dictionnaire)."""
    for name in names:
        value = row.get(name) if isinstance(row, Mapping) else getattr(row, name, None)
        if value is not None and value != "":
            return value
    return None


def _parse_ts(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def _parse_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def _as_int(value: Any, name: Optional[str] = None) -> Optional[int]:
    """Entier ou None ; `name` active un warning sur valeur non numérique."""
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        if name is not None:
            logger.warning(f"Valeur non numérique ignorée pour {name} : {value!r}")
        return None


def to_local(dt: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Convertit un timestamp aware dans `tz` ; un timestamp naïf est laissé tel quel."""
    if tz is not None and dt.tzinfo is not None:
        return dt.astimezone(tz)
    return dt


# ===================================================================
# Shifts
# ===================================================================

def to_shift_type(label: Optional[str], start: Optional[datetime] = None) -> ShiftType:
    """Classe un libellé de rota libre (NIGHT, DAY, OFF, LATE, CUSTOM...) en ShiftType.

    Les libellés ambigus (LATE, AFTERNOON, EVENING, CUSTOM...) sont classés par l'heure
    de début quand elle est connue : 22:00-05:59 -> night, sinon day. Sans heure -> other.
    """
    text = str(label if label is not None else "").strip().upper()
    if any(token in text for token in NIGHT_LABEL_TOKENS):
        return ShiftType.NIGHT
    if not text or any(token in text for token in OFF_LABEL_TOKENS):
        return ShiftType.OFF
    if any(token in text for token in DAY_LABEL_TOKENS):
        return ShiftType.DAY
    if start is not None:
        if start.hour >= NIGHT_START_FROM_HOUR or start.hour < NIGHT_START_UNTIL_HOUR:
            return ShiftType.NIGHT
        return ShiftType.DAY
    return ShiftType.OTHER


def _shift_from_row(row: Any, tz: Optional[tzinfo]) -> Optional[ShiftDay]:
    start = _parse_ts(_field(row, "start_ts", "start_at"))
    end = _parse_ts(_field(row, "end_ts", "end_at"))
    if start is not None:
        start = to_local(start, tz)
    if end is not None:
        end = to_local(end, tz)

    day = _parse_date(_field(row, "date"))
    if day is None and start is not None:
        day = start.date()
    if day is None:
        logger.warning(f"Shift ignoré : ni date ni début exploitable ({_field(row, 'id')})")
        return None

    label = _field(row, "label", "type")
    if label is not None:
        label = str(label)
    return ShiftDay(
        date=day,
        shift_type=to_shift_type(label, start),
        start=start,
        end=end,
        label=label,
    )


def normalize_shifts(rows: Iterable[Any], tz: Optional[tzinfo] = None) -> List[ShiftDay]:
    """Lignes de rota -> ShiftDay, une par date (la dernière ligne gagne), triées par date décroissante."""
    by_date: Dict[date, ShiftDay] = {}
    for row in rows:
        try:
            shift = _shift_from_row(row, tz)
        except MALFORMED_ROW_ERRORS as e:
            logger.warning(f"Shift ignoré : ligne invalide ({_field(row, 'id')}): {type(e).__name__}: {e}")
            continue
        if shift is not None:
            by_date[shift.date] = shift
    return sorted(by_date.values(), key=lambda s: s.date, reverse=True)


# ===================================================================
# Sommeil
# ===================================================================

def _is_nap(row: Any) -> bool:
    kind = str(_field(row, "type") or "").lower()
    if kind == "nap":
        return True
    if kind in MAIN_SLEEP_TYPES:
        return False
    naps = _as_int(_field(row, "naps"), "naps")
    return naps is not None and naps > 0


def _quality(row: Any) -> Optional[int]:
    q = _as_int(_field(row, "quality"))
    return q if q is not None and 1 <= q <= 5 else None


def _sleep_from_row(row: Any, tz: Optional[tzinfo]) -> Optional[SleepSession]:
    row_id = _field(row, "id")
    start = _parse_ts(_field(row, "start_at", "start_ts"))
    if start is None:
        logger.warning(f"Sommeil ignoré : début absent ou invalide ({row_id})")
        return None
    end = _parse_ts(_field(row, "end_at", "end_ts"))
    explicit_hours = _field(row, "sleep_hours")

    if explicit_hours is not None:
        duration = max(0.0, float(explicit_hours))
        if not duration <= MAX_SESSION_HOURS:
            logger.warning(f"Sommeil ignoré : durée hors bornes ({row_id}): {explicit_hours!r}")
            return None
        if end is None or end <= start:
            end = start + timedelta(hours=duration)
    elif end is None:
        logger.warning(f"Sommeil ignoré : ni fin ni durée ({row_id})")
        return None
    elif end <= start:
        logger.warning(f"Sommeil ignoré : fin avant le début ({row_id})")
        return None
    else:
        duration = (end - start).total_seconds() / 3600

    local_start = to_local(start, tz)
    return SleepSession(
        date=local_start.date(),
        start=local_start,
        end=to_local(end, tz),
        duration_hours=duration,
        quality=_quality(row),
        is_nap=_is_nap(row),
    )


def normalize_sleep(rows: Iterable[Any], tz: Optional[tzinfo] = None) -> List[SleepSession]:
    """Lignes de sommeil -> SleepSession triées par date décroissante.

    Une durée explicite (`sleep_hours`) est prise telle quelle, sinon elle est dérivée
    des timestamps : max(0, fin - début). Les lignes sans début valide, sans fin
    ni durée, ou dont les valeurs sont inexploitables sont ignorées avec un warning.
    """
    sessions: List[SleepSession] = []
    for row in rows:
        try:
            session = _sleep_from_row(row, tz)
        except MALFORMED_ROW_ERRORS as e:
            # ex. durée hors bornes, mélange de timestamps naïfs et aware
            logger.warning(f"Sommeil ignoré : ligne invalide ({_field(row, 'id')}): {type(e).__name__}: {e}")
            continue
        if session is not None:
            sessions.append(session)

    sessions.sort(key=lambda s: (s.date, s.start.replace(tzinfo=None)), reverse=True)
    return sessions


def daily_sleep_minutes(
    sessions: Iterable[SleepSession], today: date, days: int = 7,
) -> "OrderedDict[date, float]":
    """Minutes de sommeil par jour (siestes incluses), de today-(days-1) à today, zéro si aucun log."""
    buckets: "OrderedDict[date, float]" = OrderedDict(
        (today - timedelta(days=offset), 0.0) for offset in range(days - 1, -1, -1)
    )
    for session in sessions:
        if session.date in buckets:
            buckets[session.date] += session.duration_hours * 60
    return buckets


# ===================================================================
# Activité
# ===================================================================

def _activity_level(value: Any) -> Optional[ShiftActivityLevel]:
    if value is None:
        return None
    if isinstance(value, ShiftActivityLevel):
        return value
    try:
        return ShiftActivityLevel(str(value).strip().lower())
    except ValueError:
        logger.warning(f"Niveau d'activité inconnu ignoré : {value!r}")
        return None


def normalize_activity(rows: Iterable[Any], tz: Optional[tzinfo] = None) -> List[ActivityDay]:
    """Logs d'activité -> un ActivityDay par date, triés par date décroissante.

    Plusieurs logs le même jour : pas et minutes actives au maximum (compteurs cumulés),
    niveau d'activité du dernier log qui en déclare un. Un compteur non numérique est ignoré.
    """
    merged: Dict[date, Dict[str, Any]] = {}
    for row in rows:
        try:
            ts = _parse_ts(_field(row, "ts", "created_at"))
            day = _parse_date(_field(row, "date"))
            if day is None and ts is not None:
                day = to_local(ts, tz).date()
        except MALFORMED_ROW_ERRORS as e:
            logger.warning(f"Activité ignorée : ligne invalide ({_field(row, 'id')}): {type(e).__name__}: {e}")
            continue
        if day is None:
            logger.warning(f"Activité ignorée : date absente ({_field(row, 'id')})")
            continue

        steps = _as_int(_field(row, "steps"), "steps")
        active = _as_int(_field(row, "active_minutes"), "active_minutes")
        level = _activity_level(_field(row, "shift_activity_level", "activity_level"))

        acc = merged.setdefault(day, {"steps": 0, "active_minutes": None, "level": None})
        if steps is not None:
            acc["steps"] = max(acc["steps"], max(0, steps))
        if active is not None:
            active = max(0, active)
            acc["active_minutes"] = active if acc["active_minutes"] is None else max(acc["active_minutes"], active)
        if level is not None:
            acc["level"] = level

    days = [
        ActivityDay(
            date=day,
            steps=acc["steps"],
            active_minutes=acc["active_minutes"],
            shift_activity_level=acc["level"],
        )
        for day, acc in merged.items()
    ]
    return sorted(days, key=lambda a: a.date, reverse=True)

"""
Orchestration du scoring quotidien.

1. Fan-out : sommeil, shifts, activité et profil sont lus en parallèle (un thread et
   une session DB chacun) ; une lecture en échec devient "pas de données" + warning.
   Un score isolé ne lit que les sources dont il a besoin.
2. Normalisation, puis exécution des scorers (purs, synchrones).
3. Bundle DailyScores ; le Shift Rhythm du jour est persisté à la demande.

Le service ne lit jamais l'horloge : `now` est toujours fourni par l'appelant.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.engine import Engine
from sqlmodel import Session

from shiftcoach.core.settings import Settings, get_settings
from shiftcoach.domain.entities.raw_logs import Profile
from shiftcoach.domain.entities.scores import (
    ActivityScoreResult, BingeRiskResult, DailyScores, ScheduleInstabilityResult, ShiftLagResult,
    ShiftRhythmDaily, ShiftRhythmResult, SleepDeficitResult, SocialJetlagResult,
)
from shiftcoach.domain.entities.snapshots import ActivitySnapshot, RhythmSignals
from shiftcoach.domain.entities.timeseries import ActivityDay, ShiftDay, ShiftType, SleepSession
from shiftcoach.domain.services import score_repository as repo
from shiftcoach.domain.services.activity_intensity import activity_calorie_factor, calculate_activity_score
from shiftcoach.domain.services.binge_risk import calculate_binge_risk, has_quick_turnaround
from shiftcoach.domain.services.input_normalizer import (
    daily_sleep_minutes, normalize_activity, normalize_shifts, normalize_sleep, to_local,
)
from shiftcoach.domain.services.schedule_instability import calculate_schedule_instability
from shiftcoach.domain.services.shift_lag import calculate_shift_lag
from shiftcoach.domain.services.shift_rhythm import (
    NO_DATA_MESSAGE, calculate_shift_rhythm, shift_rhythm_message,
)
from shiftcoach.domain.services.sleep_deficit import calculate_sleep_deficit
from shiftcoach.domain.services.social_jetlag import calculate_social_jetlag

logger = logging.getLogger(__name__)

ALL_SOURCES = ("sleep", "shift", "activity", "profile")


@dataclass
class UserData:
    """Données normalisées d'un utilisateur sur la fenêtre de scoring."""
    sleep: List[SleepSession] = field(default_factory=list)
    shifts: List[ShiftDay] = field(default_factory=list)
    activity: List[ActivityDay] = field(default_factory=list)
    profile: Optional[Profile] = None
    warnings: List[str] = field(default_factory=list)

    def shift_on(self, day: date) -> Optional[ShiftDay]:
        return next((s for s in self.shifts if s.date == day), None)

    def activity_on(self, day: date) -> Optional[ActivityDay]:
        return next((a for a in self.activity if a.date == day), None)

    def last_main_sleep(self, day: date) -> Optional[SleepSession]:
        return next((s for s in self.sleep if not s.is_nap and s.date <= day), None)


class ScoringService:
    """Calcule et persiste les scores d'un utilisateur pour "aujourd'hui"."""

    def __init__(self, engine: Optional[Engine] = None, settings: Optional[Settings] = None):
        if engine is None:
            from shiftcoach.core.database import engine as default_engine
            engine = default_engine
        self.engine = engine
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Accès aux données
    # ------------------------------------------------------------------

    def _in_session(self, fn: Callable[..., Any], *args: Any) -> Any:
        with Session(self.engine) as session:
            return fn(session, *args)

    async def _fetch(self, label: str, fn: Callable[..., Any], *args: Any) -> Tuple[Any, Optional[str]]:
        try:
            return await asyncio.to_thread(self._in_session, fn, *args), None
        except Exception as e:
            logger.warning(f"Lecture {label} en échec, traitée comme vide: {type(e).__name__}: {e}")
            return None, f"{label} data unavailable"

    async def load_user_data(
        self,
        user_id: UUID,
        today: date,
        tz: Optional[tzinfo] = None,
        sources: Optional[Iterable[str]] = None,
    ) -> UserData:
        """Charge et normalise les sources demandées (toutes par défaut)."""
        since = today - timedelta(days=self.settings.SCORE_HISTORY_DAYS)
        selected = set(ALL_SOURCES if sources is None else sources)
        wanted = [name for name in ALL_SOURCES if name in selected]
        calls: Dict[str, Tuple[Any, ...]] = {
            "sleep": (repo.fetch_sleep_logs, user_id, since),
            "shift": (repo.fetch_shifts, user_id, since),
            "activity": (repo.fetch_activity_logs, user_id, since),
            "profile": (repo.fetch_profile, user_id),
        }
        results = await asyncio.gather(*(self._fetch(name, *calls[name]) for name in wanted))
        fetched = dict(zip(wanted, results))

        def rows(name: str) -> Any:
            return fetched.get(name, (None, None))[0]

        data = UserData(
            sleep=normalize_sleep(rows("sleep") or [], tz),
            shifts=normalize_shifts(rows("shift") or [], tz),
            activity=normalize_activity(rows("activity") or [], tz),
            profile=rows("profile"),
            warnings=[warning for _, warning in results if warning],
        )
        logger.info(
            f"User {user_id}: {len(data.sleep)} sommeils, {len(data.shifts)} shifts, "
            f"{len(data.activity)} jours d'activité chargés depuis {since}"
        )
        return data

    # ------------------------------------------------------------------
    # Objectifs
    # ------------------------------------------------------------------

    def sleep_target(self, profile: Optional[Profile]) -> float:
        if profile and profile.sleep_goal_h and profile.sleep_goal_h > 0:
            return profile.sleep_goal_h
        return self.settings.DEFAULT_SLEEP_TARGET_HOURS

    def steps_goal(self, profile: Optional[Profile]) -> int:
        if profile and profile.daily_steps_goal and profile.daily_steps_goal > 0:
            return profile.daily_steps_goal
        return self.settings.DEFAULT_STEPS_GOAL

    def active_minutes_goal(self, profile: Optional[Profile]) -> int:
        if profile and profile.active_minutes_goal and profile.active_minutes_goal > 0:
            return profile.active_minutes_goal
        return self.settings.DEFAULT_ACTIVE_MINUTES_GOAL

    # ------------------------------------------------------------------
    # Scoring (pur)
    # ------------------------------------------------------------------

    def _rhythm_signals(self, data: UserData, today: date, signals: Optional[RhythmSignals]) -> RhythmSignals:
        """Complète les signaux fournis avec l'activité loggée du jour.

        Un objectif calorique sans ajustement explicite est ajusté au niveau
        d'activité déclaré pour le shift du jour.
        """
        signals = signals or RhythmSignals()
        activity = data.activity_on(today)
        update: Dict[str, Any] = {}

        nutrition = signals.nutrition
        if (nutrition is not None and nutrition.calorie_target and nutrition.adjusted_calories is None
                and activity is not None and activity.shift_activity_level is not None):
            factor = activity_calorie_factor(activity.shift_activity_level)
            update["nutrition"] = nutrition.model_copy(
                update={"adjusted_calories": round(nutrition.calorie_target * factor)}
            )

        if signals.activity is None and activity is not None:
            update["activity"] = ActivitySnapshot(
                steps=activity.steps,
                steps_goal=self.steps_goal(data.profile),
                active_minutes=activity.active_minutes,
                active_minutes_goal=self.active_minutes_goal(data.profile),
            )

        return signals.model_copy(update=update) if update else signals

    def sleep_deficit_for(self, data: UserData, today: date) -> SleepDeficitResult:
        return calculate_sleep_deficit(daily_sleep_minutes(data.sleep, today), today, self.sleep_target(data.profile))

    def social_jetlag_for(self, data: UserData, today: date) -> SocialJetlagResult:
        return calculate_social_jetlag(data.sleep, data.shifts, today)

    def schedule_instability_for(self, data: UserData, today: date) -> ScheduleInstabilityResult:
        return calculate_schedule_instability(data.shifts, today)

    def shift_lag_for(
        self,
        data: UserData,
        today: date,
        deficit: Optional[SleepDeficitResult] = None,
        jetlag: Optional[SocialJetlagResult] = None,
        instability: Optional[ScheduleInstabilityResult] = None,
    ) -> ShiftLagResult:
        """ShiftLag ; les sous-scores déjà calculés sont réutilisés."""
        if deficit is None:
            deficit = self.sleep_deficit_for(data, today)
        if jetlag is None:
            jetlag = self.social_jetlag_for(data, today)
        if instability is None:
            instability = self.schedule_instability_for(data, today)
        return calculate_shift_lag(deficit, jetlag, instability, data.shifts, today)

    def shift_rhythm_for(
        self, data: UserData, today: date, signals: Optional[RhythmSignals] = None,
    ) -> ShiftRhythmResult:
        return calculate_shift_rhythm(
            data.sleep, data.shifts, today,
            signals=self._rhythm_signals(data, today, signals),
            sleep_target_hours=self.sleep_target(data.profile),
        )

    def activity_for(self, data: UserData, today: date) -> ActivityScoreResult:
        shift_today = data.shift_on(today)
        activity_today = data.activity_on(today) or ActivityDay(date=today)
        return calculate_activity_score(
            steps=activity_today.steps,
            step_goal=self.steps_goal(data.profile),
            active_minutes=activity_today.active_minutes,
            active_minutes_goal=self.active_minutes_goal(data.profile),
            shift_type=shift_today.shift_type if shift_today else ShiftType.OTHER,
            level=activity_today.shift_activity_level,
        )

    @staticmethod
    def _last_meal_at(signals: Optional[RhythmSignals], now: datetime) -> Optional[datetime]:
        """Dernier repas déjà pris, exprimé dans le référentiel de `now`."""
        if signals is None or signals.meal_timing is None:
            return None
        eaten: List[datetime] = []
        for entry in signals.meal_timing.actual:
            ts = entry.timestamp
            if now.tzinfo is not None:
                ts = ts.replace(tzinfo=now.tzinfo) if ts.tzinfo is None else ts.astimezone(now.tzinfo)
            elif ts.tzinfo is not None:
                # `now` naïf = heure murale locale : on garde l'heure murale du repas
                ts = ts.replace(tzinfo=None)
            if ts <= now:
                eaten.append(ts)
        return max(eaten, default=None)

    def binge_risk_for(
        self,
        data: UserData,
        now: datetime,
        deficit: SleepDeficitResult,
        rhythm: ShiftRhythmResult,
        shift_lag: ShiftLagResult,
        signals: Optional[RhythmSignals] = None,
    ) -> BingeRiskResult:
        today = now.date()
        shift_today = data.shift_on(today)
        shift_yesterday = data.shift_on(today - timedelta(days=1))
        activity_today = data.activity_on(today)
        last_sleep = data.last_main_sleep(today)
        return calculate_binge_risk(
            sleep_debt_hours=deficit.weekly_deficit_hours if deficit.days_with_sleep else None,
            shift_rhythm_total=rhythm.total_score if rhythm.has_rhythm_data else None,
            activity_level=activity_today.shift_activity_level if activity_today else None,
            shift_type_today=shift_today.shift_type if shift_today else None,
            last_sleep_hours=last_sleep.duration_hours if last_sleep else None,
            now=now,
            last_sleep_quality=last_sleep.quality if last_sleep else None,
            shift_type_yesterday=shift_yesterday.shift_type if shift_yesterday else None,
            quick_turnaround=has_quick_turnaround(data.shifts, data.sleep, today),
            last_meal_at=self._last_meal_at(signals, now),
            shift_lag_score=shift_lag.score if shift_lag.has_enough_data else None,
        )

    def score(
        self, data: UserData, now: datetime, signals: Optional[RhythmSignals] = None,
    ) -> DailyScores:
        """Exécute tous les scorers sur des données déjà chargées."""
        today = now.date()

        deficit = self.sleep_deficit_for(data, today)
        jetlag = self.social_jetlag_for(data, today)
        instability = self.schedule_instability_for(data, today)
        shift_lag = self.shift_lag_for(data, today, deficit, jetlag, instability)
        rhythm = self.shift_rhythm_for(data, today, signals)

        return DailyScores(
            date=today,
            sleep_deficit=deficit,
            social_jetlag=jetlag,
            schedule_instability=instability,
            shift_lag=shift_lag,
            shift_rhythm=rhythm,
            activity=self.activity_for(data, today),
            binge_risk=self.binge_risk_for(data, now, deficit, rhythm, shift_lag, signals),
            warnings=data.warnings,
        )

    # ------------------------------------------------------------------
    # Points d'entrée
    # ------------------------------------------------------------------

    async def compute_today(
        self,
        user_id: UUID,
        now: datetime,
        tz: Optional[tzinfo] = None,
        signals: Optional[RhythmSignals] = None,
    ) -> DailyScores:
        """Tous les scores du jour. `now` est converti dans `tz` avant d'en prendre la date."""
        now = to_local(now, tz)
        data = await self.load_user_data(user_id, now.date(), tz)
        scores = self.score(data, now, signals)
        logger.info(
            f"User {user_id}: scores {scores.date} calculés "
            f"(shiftlag={scores.shift_lag.score}, rhythm={scores.shift_rhythm.total_score}, "
            f"binge={scores.binge_risk.score})"
        )
        return scores

    async def sleep_deficit_today(self, user_id: UUID, now: datetime, tz: Optional[tzinfo] = None) -> SleepDeficitResult:
        today = to_local(now, tz).date()
        data = await self.load_user_data(user_id, today, tz, sources=("sleep", "profile"))
        return self.sleep_deficit_for(data, today)

    async def social_jetlag_today(self, user_id: UUID, now: datetime, tz: Optional[tzinfo] = None) -> SocialJetlagResult:
        today = to_local(now, tz).date()
        data = await self.load_user_data(user_id, today, tz, sources=("sleep", "shift"))
        return self.social_jetlag_for(data, today)

    async def shift_lag_today(self, user_id: UUID, now: datetime, tz: Optional[tzinfo] = None) -> ShiftLagResult:
        today = to_local(now, tz).date()
        data = await self.load_user_data(user_id, today, tz, sources=("sleep", "shift", "profile"))
        return self.shift_lag_for(data, today)

    async def activity_today(self, user_id: UUID, now: datetime, tz: Optional[tzinfo] = None) -> ActivityScoreResult:
        today = to_local(now, tz).date()
        data = await self.load_user_data(user_id, today, tz, sources=("shift", "activity", "profile"))
        return self.activity_for(data, today)

    async def binge_risk_today(
        self,
        user_id: UUID,
        now: datetime,
        tz: Optional[tzinfo] = None,
        signals: Optional[RhythmSignals] = None,
    ) -> BingeRiskResult:
        """Risque de binge seul : tous les scores dont il dépend, sans le score d'activité."""
        now = to_local(now, tz)
        today = now.date()
        data = await self.load_user_data(user_id, today, tz)
        deficit = self.sleep_deficit_for(data, today)
        shift_lag = self.shift_lag_for(data, today, deficit=deficit)
        rhythm = self.shift_rhythm_for(data, today, signals)
        return self.binge_risk_for(data, now, deficit, rhythm, shift_lag, signals)

    async def get_shift_rhythm(
        self,
        user_id: UUID,
        now: datetime,
        tz: Optional[tzinfo] = None,
        force: bool = False,
        signals: Optional[RhythmSignals] = None,
    ) -> ShiftRhythmDaily:
        """Shift Rhythm du jour : valeur persistée réutilisée sauf si `force` ou nouveaux signaux,
        sinon recalcul puis upsert. Le score de la veille est joint pour comparaison.
        Un calcul en échec est renvoyé tel quel mais jamais persisté."""
        today = to_local(now, tz).date()
        yesterday = today - timedelta(days=1)

        cached = None
        if not force and signals is None:
            cached = await asyncio.to_thread(self._in_session, repo.get_shift_rhythm_score, user_id, today)
        previous = await asyncio.to_thread(self._in_session, repo.get_shift_rhythm_score, user_id, yesterday)
        yesterday_total = previous.total_score if previous and previous.has_rhythm_data else None

        if cached is not None:
            logger.debug(f"User {user_id}: Shift Rhythm {today} servi depuis le cache")
            result = repo.to_shift_rhythm_result(cached, self._message_for(cached.total_score, cached.has_rhythm_data))
            return ShiftRhythmDaily(date=today, score=result, yesterday_total_score=yesterday_total, from_cache=True)

        data = await self.load_user_data(user_id, today, tz)
        result = self.shift_rhythm_for(data, today, signals)
        if result.computation_failed:
            logger.warning(f"User {user_id}: Shift Rhythm {today} en échec, score existant conservé")
        else:
            await asyncio.to_thread(self._in_session, repo.upsert_shift_rhythm_score, user_id, today, result)
        return ShiftRhythmDaily(date=today, score=result, yesterday_total_score=yesterday_total, from_cache=False)

    @staticmethod
    def _message_for(total_score: int, has_rhythm_data: bool) -> str:
        if not has_rhythm_data:
            return NO_DATA_MESSAGE
        return shift_rhythm_message(total_score)

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Protocol

import httpx
from pydantic import ValidationError as PydanticValidationError

from plan_ingest_core.errors import ExternalServiceError
from plan_ingest_core.models import (
    DEFAULT_SESSION_MINUTES,
    WEEKDAYS,
    EnhancementInfo,
    ScheduledSession,
    ScheduleRecord,
    TrainingPlan,
    WeekSession,
)
from plan_ingest_core.util import utcnow

logger = logging.getLogger(__name__)

FALLBACK_PROVIDER = "fallback"

INTENSITY_LEVELS: dict[str, float] = {"low": 0.5, "moderate": 0.7, "high": 0.85, "very_high": 0.95}


@dataclass(frozen=True)
class UserProfile:
    age_group: str = "Youth"
    sport: str = "soccer"
    experience: str = "intermediate"


@dataclass(frozen=True)
class SchedulePreferences:
    available_days: tuple[str, ...] = ("monday", "wednesday", "friday")
    preferred_time: str = "16:00"
    session_duration: int = DEFAULT_SESSION_MINUTES
    intensity: str = "moderate"
    weeks_count: int = 12
    sessions_per_week: int = 3

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["available_days"] = list(self.available_days)
        return out


class EnhancementGateway(Protocol):
    name: str

    async def enhance(self, weeks: list[WeekSession], profile: UserProfile) -> list[WeekSession]: ...
    async def schedule(self, plan: TrainingPlan, preferences: SchedulePreferences) -> ScheduleRecord: ...


def progressive_intensity(week: int, base: str) -> int:
    """Percent intensity for a week: build-up, development, peak, then a recovery block."""
    level = INTENSITY_LEVELS.get(base, INTENSITY_LEVELS["moderate"])
    if week <= 3:
        multiplier = 0.7 + week * 0.1
    elif week <= 8:
        multiplier = 0.9 + week * 0.02
    elif week <= 10:
        multiplier = 1.0
    else:
        multiplier = 0.8
    return round(min(level * multiplier, 1.0) * 100)


def session_type(week: int, day_index: int) -> str:
    if week <= 4:
        rotation = ("technique", "conditioning", "technique")
    elif week <= 8:
        rotation = ("tactical", "strength", "technique")
    else:
        rotation = ("tactical", "conditioning", "strength")
    return rotation[day_index % 3]


def plan_start_date(today: date) -> date:
    """Weekend starts move to the following Monday."""
    if today.weekday() >= 5:
        return today + timedelta(days=7 - today.weekday())
    return today


def _date_for(start: date, week: int, day: str) -> date:
    week_start = start + timedelta(days=7 * (week - 1))
    if day not in WEEKDAYS:
        return week_start
    return week_start + timedelta(days=(WEEKDAYS.index(day) - week_start.weekday()) % 7)


def _week_focus(plan: TrainingPlan, week: int) -> str:
    for w in plan.weeks:
        if w.week_number == week and w.focus:
            return w.focus[0]
    return plan.category


def build_fallback_schedule(
    plan: TrainingPlan,
    preferences: SchedulePreferences,
    *,
    start: date,
    now: datetime,
    provider: str = FALLBACK_PROVIDER,
) -> ScheduleRecord:
    """Deterministic calendar: every preferred day of every week, with progressive intensity."""
    days = [d.lower() for d in preferences.available_days][: max(preferences.sessions_per_week, 1)]
    duration = preferences.session_duration if preferences.session_duration > 0 else DEFAULT_SESSION_MINUTES
    sessions: list[ScheduledSession] = []
    for week in range(1, preferences.weeks_count + 1):
        for index, day in enumerate(days):
            sessions.append(
                ScheduledSession(
                    week=week,
                    day=day,
                    scheduled_on=_date_for(start, week, day),
                    time=preferences.preferred_time,
                    duration_minutes=duration,
                    type=session_type(week, index),
                    intensity=progressive_intensity(week, preferences.intensity),
                    focus=_week_focus(plan, week),
                )
            )
    return ScheduleRecord(
        plan_id=plan.id,
        plan_title=plan.title,
        sessions=sessions,
        total_sessions=len(sessions),
        total_weeks=preferences.weeks_count,
        generated_at=now,
        provider=provider,
        preferences=preferences.to_dict(),
    )


def normalize_week_payload(payload: dict[str, Any], original: WeekSession) -> WeekSession:
    """
    Merge a gateway-returned week over the original and repair session durations.

    The week number always stays the original's; non-positive or missing session durations
    fall back to the default so the total-duration invariant holds.
    """
    merged = {**original.to_json_dict(), **{k: v for k, v in payload.items() if v is not None}}
    merged["weekNumber"] = original.week_number
    merged.pop("totalDuration", None)
    sessions = []
    for raw in merged.get("dailySessions") or []:
        if not isinstance(raw, dict):
            continue
        raw = dict(raw)
        raw["weekNumber"] = original.week_number
        minutes = raw.get("durationMinutes")
        if not isinstance(minutes, int) or isinstance(minutes, bool) or minutes <= 0:
            raw["durationMinutes"] = DEFAULT_SESSION_MINUTES
        sessions.append(raw)
    merged["dailySessions"] = sessions
    return WeekSession.model_validate(merged)


class NoopEnhancementGateway:
    """Leaves weeks untouched and schedules with the deterministic fallback."""

    name = "none"

    def __init__(self, *, clock: Callable[[], datetime] = utcnow):
        self._clock = clock

    async def enhance(self, weeks: list[WeekSession], profile: UserProfile) -> list[WeekSession]:
        return list(weeks)

    async def schedule(self, plan: TrainingPlan, preferences: SchedulePreferences) -> ScheduleRecord:
        now = self._clock()
        return build_fallback_schedule(plan, preferences, start=plan_start_date(now.date()), now=now)


@dataclass(frozen=True)
class HttpEnhancementGateway:
    base_url: str
    api_key: str | None = None
    batch_size: int = 3
    batch_delay_s: float = 1.0
    timeout_s: float = 60.0
    skip_delays: bool = False
    transport: httpx.AsyncBaseTransport | None = field(default=None, compare=False, repr=False)

    name = "http"

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            return {}
        return {"Authorization": f"Bearer {self.api_key}"}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport)

    async def _enhance_week(self, client: httpx.AsyncClient, week: WeekSession, profile: UserProfile) -> WeekSession:
        resp = await client.post(
            self.base_url.rstrip("/") + "/v1/enhance-week",
            headers=self._headers(),
            json={"week": week.to_json_dict(), "profile": asdict(profile)},
        )
        resp.raise_for_status()
        payload = resp.json()
        body = payload.get("week", payload) if isinstance(payload, dict) else None
        if not isinstance(body, dict):
            raise ExternalServiceError("Enhancement service returned an unexpected payload")
        return normalize_week_payload(body, week)

    async def enhance(self, weeks: list[WeekSession], profile: UserProfile) -> list[WeekSession]:
        if self.batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        if not weeks:
            return []

        enhanced: list[WeekSession] = []
        try:
            async with self._client() as client:
                for start in range(0, len(weeks), self.batch_size):
                    batch = weeks[start : start + self.batch_size]
                    results = await asyncio.gather(
                        *(self._enhance_week(client, w, profile) for w in batch),
                        return_exceptions=True,
                    )
                    # Every request of the batch has settled before the first failure is raised.
                    for result in results:
                        if isinstance(result, BaseException):
                            raise result
                    enhanced.extend(results)  # type: ignore[arg-type]
                    more = start + self.batch_size < len(weeks)
                    if more and not self.skip_delays and self.batch_delay_s > 0:
                        await asyncio.sleep(self.batch_delay_s)
        except (httpx.HTTPError, PydanticValidationError, ValueError) as e:
            raise ExternalServiceError(
                f"Week enhancement failed: {e}",
                ["Check the enhancement service URL and API key", "Try again later"],
            ) from e
        logger.debug("Enhanced %d weeks in batches of %d", len(enhanced), self.batch_size)
        return enhanced

    async def schedule(self, plan: TrainingPlan, preferences: SchedulePreferences) -> ScheduleRecord:
        summary = {
            "id": plan.id,
            "title": plan.title,
            "category": plan.category,
            "difficulty": plan.difficulty,
            "weeks": len(plan.weeks),
        }
        try:
            async with self._client() as client:
                resp = await client.post(
                    self.base_url.rstrip("/") + "/v1/schedule",
                    headers=self._headers(),
                    json={"plan": summary, "preferences": preferences.to_dict()},
                )
                resp.raise_for_status()
                payload = resp.json()
            return ScheduleRecord.model_validate({"planId": plan.id, "planTitle": plan.title, "provider": self.name, **payload})
        except (httpx.HTTPError, PydanticValidationError, ValueError, TypeError) as e:
            raise ExternalServiceError(
                f"Schedule generation failed: {e}",
                ["Check the enhancement service URL and API key", "Try again later"],
            ) from e


async def enhance_plan(
    gateway: EnhancementGateway,
    plan: TrainingPlan,
    profile: UserProfile | None = None,
    preferences: SchedulePreferences | None = None,
    *,
    clock: Callable[[], datetime] = utcnow,
) -> TrainingPlan:
    """
    Optional enrichment step after assembly.

    Gateway failures never fail the plan: weeks stay as assembled and the schedule comes from
    `build_fallback_schedule`.
    """
    profile = profile or UserProfile()
    preferences = preferences or SchedulePreferences()

    weeks = plan.weeks
    enhanced = False
    try:
        weeks = await gateway.enhance(plan.weeks, profile)
        enhanced = gateway.name != NoopEnhancementGateway.name
    except ExternalServiceError as e:
        logger.warning("Week enhancement unavailable for %s: %s", plan.id, e.message)
    except Exception:  # noqa: BLE001
        logger.warning("Week enhancement crashed for %s; keeping assembled weeks", plan.id, exc_info=True)

    draft = plan.model_copy(update={"weeks": weeks})
    try:
        record = await gateway.schedule(draft, preferences)
    except Exception as e:  # noqa: BLE001
        if isinstance(e, ExternalServiceError):
            logger.warning("Schedule generation unavailable for %s, using fallback: %s", plan.id, e.message)
        else:
            logger.warning("Schedule generation crashed for %s, using fallback", plan.id, exc_info=True)
        now = clock()
        record = build_fallback_schedule(draft, preferences, start=plan_start_date(now.date()), now=now)

    return draft.model_copy(
        update={
            "optimized_schedule": record,
            "enhancement": EnhancementInfo(enhanced=enhanced, scheduled=True, provider=record.provider),
        }
    )

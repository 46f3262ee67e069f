from __future__ import annotations

import asyncio
import json
import time
from datetime import UTC, date, datetime

import httpx
import pytest

from plan_ingest_core.enhancement import (
    FALLBACK_PROVIDER,
    HttpEnhancementGateway,
    NoopEnhancementGateway,
    SchedulePreferences,
    UserProfile,
    build_fallback_schedule,
    enhance_plan,
    normalize_week_payload,
    plan_start_date,
    progressive_intensity,
    session_type,
)
from plan_ingest_core.errors import ExternalServiceError
from plan_ingest_core.models import DailySession, TrainingPlan, WeekSession

FIXED_NOW = datetime(2025, 3, 10, 9, 30, tzinfo=UTC)


def _week(n: int, focus: list[str] | None = None) -> WeekSession:
    return WeekSession(
        week_number=n,
        title=f"Week {n} Training",
        focus=focus or [],
        daily_sessions=[
            DailySession(week_number=n, day_number=1, title="Monday", day="monday", duration_minutes=60),
        ],
    )


def _plan(weeks: int = 2) -> TrainingPlan:
    return TrainingPlan(
        id="plan_x",
        title="Spring Plan",
        academy_name="Spring Plan",
        source_document_id="doc_1",
        created_at=FIXED_NOW,
        weeks=[_week(1, ["passing"])] + [_week(n) for n in range(2, weeks + 1)],
    )


SCHEDULE_PAYLOAD = {
    "sessions": [
        {
            "week": 1,
            "day": "monday",
            "scheduledOn": "2025-03-10",
            "time": "16:00",
            "durationMinutes": 90,
            "type": "technique",
            "intensity": 70,
            "focus": "passing",
        }
    ],
    "totalSessions": 1,
    "totalWeeks": 1,
    "generatedAt": "2025-03-10T09:30:00Z",
}


class _Recorder:
    def __init__(self, status: int = 200):
        self.status = status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status != 200:
            return httpx.Response(self.status, json={"error": "boom"})
        if request.url.path == "/v1/enhance-week":
            body = json.loads(request.content)
            return httpx.Response(200, json={"week": {"description": f"Enhanced {body['week']['title']}"}})
        return httpx.Response(200, json=SCHEDULE_PAYLOAD)


def _gateway(recorder: _Recorder, **kwargs: object) -> HttpEnhancementGateway:
    return HttpEnhancementGateway(
        base_url="http://enhancer.local/",
        api_key="secret",
        skip_delays=True,
        transport=httpx.MockTransport(recorder),
        **kwargs,  # type: ignore[arg-type]
    )


@pytest.mark.parametrize(
    ("week", "base", "expected"),
    [(1, "moderate", 56), (5, "moderate", 70), (9, "moderate", 70), (11, "moderate", 56), (3, "very_high", 95), (1, "unknown", 56)],
)
def test_progressive_intensity(week: int, base: str, expected: int) -> None:
    assert progressive_intensity(week, base) == expected


def test_session_type_rotation() -> None:
    assert [session_type(1, i) for i in range(3)] == ["technique", "conditioning", "technique"]
    assert session_type(6, 1) == "strength"
    assert session_type(10, 0) == "tactical"


@pytest.mark.parametrize(
    ("today", "expected"),
    [(date(2025, 3, 12), date(2025, 3, 12)), (date(2025, 3, 15), date(2025, 3, 17)), (date(2025, 3, 16), date(2025, 3, 17))],
)
def test_plan_start_date_skips_weekends(today: date, expected: date) -> None:
    assert plan_start_date(today) == expected


def test_fallback_schedule() -> None:
    record = build_fallback_schedule(
        _plan(),
        SchedulePreferences(weeks_count=2),
        start=date(2025, 3, 10),
        now=FIXED_NOW,
    )

    assert record.provider == FALLBACK_PROVIDER
    assert record.total_sessions == 6
    assert record.total_weeks == 2
    first = record.sessions[0]
    assert (first.week, first.day, first.scheduled_on) == (1, "monday", date(2025, 3, 10))
    assert [s.scheduled_on for s in record.sessions[:4]] == [
        date(2025, 3, 10),
        date(2025, 3, 12),
        date(2025, 3, 14),
        date(2025, 3, 17),
    ]
    assert [s.focus for s in record.sessions] == ["passing"] * 3 + ["fitness"] * 3
    assert record.preferences["available_days"] == ["monday", "wednesday", "friday"]


def test_normalize_week_payload_repairs_sessions() -> None:
    payload = {
        "weekNumber": 7,
        "title": "Better week",
        "totalDuration": 999,
        "dailySessions": [
            {"weekNumber": 9, "dayNumber": 1, "title": "a", "day": "monday", "durationMinutes": 0},
            {"dayNumber": 2, "title": "b", "day": "friday", "durationMinutes": 45},
            "junk",
        ],
    }

    week = normalize_week_payload(payload, _week(1))

    assert week.week_number == 1
    assert week.title == "Better week"
    assert [s.duration_minutes for s in week.daily_sessions] == [90, 45]
    assert [s.week_number for s in week.daily_sessions] == [1, 1]
    assert week.total_duration == 135


@pytest.mark.asyncio
async def test_noop_gateway() -> None:
    gateway = NoopEnhancementGateway(clock=lambda: FIXED_NOW)
    plan = _plan()

    enriched = await enhance_plan(gateway, plan, clock=lambda: FIXED_NOW)

    assert enriched.weeks == plan.weeks
    assert enriched.enhancement.enhanced is False
    assert enriched.enhancement.scheduled is True
    assert enriched.enhancement.provider == FALLBACK_PROVIDER
    assert enriched.optimized_schedule is not None
    assert enriched.optimized_schedule.total_sessions == 36


@pytest.mark.asyncio
async def test_http_gateway_enhances_in_batches() -> None:
    recorder = _Recorder()
    gateway = _gateway(recorder, batch_size=3)

    weeks = await gateway.enhance(_plan(4).weeks, UserProfile())

    assert [w.description for w in weeks] == [f"Enhanced Week {n} Training" for n in range(1, 5)]
    assert [w.week_number for w in weeks] == [1, 2, 3, 4]
    assert len(recorder.requests) == 4
    assert all(r.headers["Authorization"] == "Bearer secret" for r in recorder.requests)
    assert str(recorder.requests[0].url) == "http://enhancer.local/v1/enhance-week"


@pytest.mark.asyncio
async def test_enhance_plan_with_http_gateway() -> None:
    recorder = _Recorder()

    enriched = await enhance_plan(_gateway(recorder), _plan(), clock=lambda: FIXED_NOW)

    assert enriched.enhancement.enhanced is True
    assert enriched.enhancement.provider == "http"
    assert enriched.optimized_schedule is not None
    assert enriched.optimized_schedule.plan_id == "plan_x"
    assert enriched.optimized_schedule.sessions[0].intensity == 70
    schedule_request = recorder.requests[-1]
    assert schedule_request.url.path == "/v1/schedule"
    assert json.loads(schedule_request.content)["plan"]["weeks"] == 2


@pytest.mark.asyncio
async def test_http_failures_surface_as_external_service_errors() -> None:
    gateway = _gateway(_Recorder(status=500))

    with pytest.raises(ExternalServiceError, match="Week enhancement failed"):
        await gateway.enhance(_plan().weeks, UserProfile())
    with pytest.raises(ExternalServiceError, match="Schedule generation failed"):
        await gateway.schedule(_plan(), SchedulePreferences())


@pytest.mark.asyncio
async def test_enhance_plan_falls_back_when_service_is_down() -> None:
    plan = _plan()

    enriched = await enhance_plan(_gateway(_Recorder(status=503)), plan, clock=lambda: FIXED_NOW)

    assert enriched.weeks == plan.weeks
    assert enriched.enhancement.enhanced is False
    assert enriched.enhancement.scheduled is True
    assert enriched.enhancement.provider == FALLBACK_PROVIDER
    assert enriched.optimized_schedule is not None
    # FIXED_NOW is a Monday, so the fallback calendar starts that day.
    assert enriched.optimized_schedule.sessions[0].scheduled_on == date(2025, 3, 10)


class _CrashingGateway:
    name = "crashing"

    def __init__(self, *, crash_schedule: bool = False):
        self.crash_schedule = crash_schedule

    async def enhance(self, weeks: list[WeekSession], profile: UserProfile) -> list[WeekSession]:
        raise RuntimeError("connection reset")

    async def schedule(self, plan: TrainingPlan, preferences: SchedulePreferences):  # noqa: ANN201
        if self.crash_schedule:
            raise KeyError("sessions")
        return build_fallback_schedule(plan, preferences, start=date(2025, 3, 10), now=FIXED_NOW, provider="crashing")


@pytest.mark.asyncio
async def test_enhance_plan_survives_unexpected_gateway_errors() -> None:
    plan = _plan()

    partial = await enhance_plan(_CrashingGateway(), plan, clock=lambda: FIXED_NOW)
    broken = await enhance_plan(_CrashingGateway(crash_schedule=True), plan, clock=lambda: FIXED_NOW)

    assert partial.weeks == plan.weeks
    assert partial.enhancement.enhanced is False
    assert partial.enhancement.provider == "crashing"
    assert broken.weeks == plan.weeks
    assert broken.enhancement.scheduled is True
    assert broken.enhancement.provider == FALLBACK_PROVIDER


@pytest.mark.asyncio
async def test_http_gateway_waits_between_batches() -> None:
    recorder = _Recorder()
    gateway = HttpEnhancementGateway(
        base_url="http://enhancer.local",
        batch_size=1,
        batch_delay_s=0.05,
        transport=httpx.MockTransport(recorder),
    )

    started = time.monotonic()
    weeks = await gateway.enhance(_plan(3).weeks, UserProfile())
    elapsed = time.monotonic() - started

    assert len(weeks) == 3
    # Two pauses: none after the last batch.
    assert elapsed >= 0.1
    assert len(recorder.requests) == 3


@pytest.mark.asyncio
async def test_cancelling_during_batch_delay_stops_enhancement() -> None:
    recorder = _Recorder()
    gateway = HttpEnhancementGateway(
        base_url="http://enhancer.local",
        batch_size=3,
        batch_delay_s=30.0,
        transport=httpx.MockTransport(recorder),
    )

    task = asyncio.create_task(gateway.enhance(_plan(4).weeks, UserProfile()))
    for _ in range(200):
        if len(recorder.requests) == 3:
            break
        await asyncio.sleep(0.01)
    await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert len(recorder.requests) == 3

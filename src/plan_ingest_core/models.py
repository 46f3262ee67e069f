from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

PlatformOrigin = Literal["web", "mobile"]

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
WEEK_PLAN_DAY = "week_plan"
DEFAULT_SESSION_MINUTES = 90
DEFAULT_WEEK_PLAN_MINUTES = 120


class _Record(BaseModel):
    """Persisted record: camelCase on the wire, snake_case in Python, immutable."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class StorageHandle(_Record):
    kind: Literal["inline", "path"]
    inline_data: list[int] | None = None
    local_path: str | None = None

    def is_present(self) -> bool:
        if self.kind == "inline":
            return bool(self.inline_data)
        return bool(self.local_path)


class IntegritySnapshot(_Record):
    timestamp: datetime
    status: str
    last_checked: datetime | None = None


class Document(_Record):
    id: str
    original_name: str | None = None
    mime_type: str | None = None
    size_bytes: int | None = None
    uploaded_at: datetime | None = None
    platform_origin: PlatformOrigin | None = None
    storage_handle: StorageHandle | None = None
    uri: str | None = None
    processed: bool | None = None
    processed_at: datetime | None = None
    linked_training_plan_id: str | None = None
    integrity_check: IntegritySnapshot | None = None
    repaired_at: datetime | None = None


class Drill(_Record):
    name: str
    description: str
    duration_minutes: int | None = None


class DailySession(_Record):
    week_number: int = Field(ge=1)
    day_number: int = Field(ge=1)
    title: str
    day: str
    time: str = "08:00"
    duration_minutes: int = Field(default=DEFAULT_SESSION_MINUTES, gt=0)
    activities: list[str] = Field(default_factory=list)
    drills: list[Drill] = Field(default_factory=list)
    objectives: list[str] = Field(default_factory=list)
    equipment: list[str] = Field(default_factory=list)
    focus: list[str] = Field(default_factory=list)
    raw_content: str = ""

    def scheduled_date(self, start: date) -> date:
        """Calendar date for this session, counted from the plan start date."""
        week_start = start + timedelta(days=7 * (self.week_number - 1))
        day = self.day if self.day in WEEKDAYS else "monday"
        offset = (WEEKDAYS.index(day) - week_start.weekday()) % 7
        return week_start + timedelta(days=offset)


class WeekScheduleEntry(_Record):
    day: str
    time: str
    duration: str
    focus: str


class WeekSession(_Record):
    week_number: int = Field(ge=1)
    title: str
    description: str = ""
    focus: list[str] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)
    schedule: list[WeekScheduleEntry] = Field(default_factory=list)
    daily_sessions: list[DailySession] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_duration(self) -> int:
        return sum(s.duration_minutes for s in self.daily_sessions)


class Schedule(_Record):
    type: str
    days: list[str] = Field(default_factory=list)
    pattern: str


class Creator(_Record):
    name: str = "Coach"
    username: str | None = None
    first_name: str | None = "Coach"
    last_name: str | None = ""
    full_name: str | None = "Coach"
    profile_image: str | None = None


class ExtractionInfo(_Record):
    format: str
    processing_method: str
    is_fallback: bool
    extracted_length: int


class SegmentationInfo(_Record):
    strategy: Literal["structural", "week_mentions"]
    primary_weeks: int
    alternative_weeks: int | None = None


class EnhancementInfo(_Record):
    enhanced: bool = False
    scheduled: bool = False
    provider: str = "none"


class ScheduledSession(_Record):
    week: int
    day: str
    scheduled_on: date
    time: str
    duration_minutes: int
    type: str
    intensity: int
    focus: str


class ScheduleRecord(_Record):
    plan_id: str
    plan_title: str
    sessions: list[ScheduledSession] = Field(default_factory=list)
    total_sessions: int = 0
    total_weeks: int = 0
    generated_at: datetime
    provider: str
    preferences: dict[str, Any] = Field(default_factory=dict)


class TrainingPlan(_Record):
    id: str
    title: str
    academy_name: str
    source_document_id: str
    original_name: str | None = None
    category: str = "fitness"
    duration: str = "8 weeks"
    difficulty: str = "intermediate"
    sessions_count: int = 12
    description: str = ""
    tags: list[str] = Field(default_factory=list, max_length=5)
    weeks: list[WeekSession] = Field(default_factory=list)
    schedule: Schedule = Field(default_factory=lambda: Schedule(type="flexible", pattern="User-defined schedule"))
    creator: Creator = Field(default_factory=Creator)
    created_at: datetime
    version: int = 1
    is_reprocessed: bool = False
    raw_content: str = ""
    platform: str | None = None
    extraction: ExtractionInfo | None = None
    segmentation: SegmentationInfo | None = None
    enhancement: EnhancementInfo = Field(default_factory=EnhancementInfo)
    optimized_schedule: ScheduleRecord | None = None

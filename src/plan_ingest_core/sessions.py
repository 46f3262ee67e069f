from __future__ import annotations

import logging
import re

from plan_ingest_core.classifiers import (
    AcademyInfo,
    extract_activities,
    extract_drills,
    extract_equipment,
    extract_focus,
    extract_notes,
    extract_objectives,
    extract_time,
    extract_week_description,
    extract_week_schedule,
    parse_duration_minutes,
)
from plan_ingest_core.models import (
    DEFAULT_SESSION_MINUTES,
    DEFAULT_WEEK_PLAN_MINUTES,
    WEEK_PLAN_DAY,
    DailySession,
    WeekSession,
)
from plan_ingest_core.structure import DayBlock, DocumentStructure, WeekBlock

logger = logging.getLogger(__name__)

RAW_CONTENT_MAX = 1000
_WEEK_PREFIX_RE = re.compile(r"^week[ \t]*\d+", re.IGNORECASE)
_TITLE_DASHES_RE = re.compile(r"[-–—:]")


def clean_week_title(title: str | None) -> str:
    """Strip the "Week N" prefix and separators; a bare "Week 3" becomes an empty string."""
    if not title:
        return ""
    return _TITLE_DASHES_RE.sub("", _WEEK_PREFIX_RE.sub("", title)).strip()


def _raw(lines: list[str]) -> str:
    return "\n".join(lines)[:RAW_CONTENT_MAX]


def build_daily_session(day: DayBlock, week_number: int, day_number: int, academy: AcademyInfo) -> DailySession:
    return DailySession(
        week_number=week_number,
        day_number=day_number,
        title=f"{academy.academy_name} - Week {week_number}, {day.day.capitalize()} Training",
        day=day.day.lower(),
        time=extract_time(" ".join(day.content)) or "08:00",
        duration_minutes=parse_duration_minutes(day.duration, default=DEFAULT_SESSION_MINUTES),
        activities=extract_activities(day.content),
        drills=extract_drills(day.content),
        objectives=extract_objectives(day.content),
        equipment=extract_equipment(day.content),
        focus=extract_focus(day.content),
        raw_content=_raw(day.content),
    )


def build_week_plan_session(week: WeekBlock, week_number: int, academy: AcademyInfo) -> DailySession:
    """The single synthetic session standing in for a week without day structure."""
    return DailySession(
        week_number=week_number,
        day_number=1,
        title=f"{academy.academy_name} - Week {week_number} Training Plan",
        day=WEEK_PLAN_DAY,
        time="08:00",
        duration_minutes=DEFAULT_WEEK_PLAN_MINUTES,
        activities=extract_activities(week.content),
        drills=extract_drills(week.content),
        objectives=extract_objectives(week.content),
        equipment=extract_equipment(week.content),
        focus=extract_focus(week.content),
        raw_content=_raw(week.content),
    )


def build_week_sessions(structure: DocumentStructure, academy: AcademyInfo) -> list[WeekSession]:
    """
    Turn parsed week/day blocks into WeekSession values.

    Week numbers come from the block when the text supplied one, else from position; either
    way they increase strictly so positional numbering takes over if the text goes backwards.
    """
    weeks: list[WeekSession] = []
    last = 0
    for block in structure.weeks:
        number = block.week_number if (block.week_number or 0) > last else last + 1
        last = number

        daily = [build_daily_session(day, number, i, academy) for i, day in enumerate(block.days, start=1)]
        if not daily:
            daily = [build_week_plan_session(block, number, academy)]

        all_lines = list(block.content) + [ln for day in block.days for ln in day.content]
        # Day header lines carry the day/time/duration hints for the week schedule.
        schedule_lines = list(block.content) + [day.content[0] for day in block.days if day.content]
        weeks.append(
            WeekSession(
                week_number=number,
                title=clean_week_title(block.title) or f"Week {number} Training",
                description=extract_week_description(block.content),
                focus=extract_focus(all_lines),
                notes=extract_notes(block.content),
                schedule=extract_week_schedule(schedule_lines),
                daily_sessions=daily,
            )
        )

    logger.debug(
        "Built %d week sessions with %d daily sessions",
        len(weeks),
        sum(len(w.daily_sessions) for w in weeks),
    )
    return weeks

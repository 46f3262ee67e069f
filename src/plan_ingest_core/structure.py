from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Literal

logger = logging.getLogger(__name__)

_WEEKDAY_ALT = "monday|tuesday|wednesday|thursday|friday|saturday|sunday"
_DURATION_UNIT = r"(?:hours?|hrs?|minutes?|mins?)"

# Ordered: the first matching rule wins. Each rule is (name, pattern) so rules can be
# tested on their own.
WEEK_HEADER_RULES: list[tuple[str, re.Pattern[str]]] = [
    ("week", re.compile(r"^week[ \t]*(\d+)\b", re.IGNORECASE)),
    ("training_week", re.compile(r"^training[ \t]*week[ \t]*(\d+)\b", re.IGNORECASE)),
    ("session", re.compile(r"^session[ \t]*(\d+)\b", re.IGNORECASE)),
    ("day", re.compile(r"^day[ \t]*(\d+)\b", re.IGNORECASE)),
]

# Tokens that make a short line a week header when substantive content follows it.
WEEK_INDICATORS: list[re.Pattern[str]] = [
    re.compile(r"\bweek[ \t]*\d+", re.IGNORECASE),
    re.compile(r"\btraining\b.*\bweek\b", re.IGNORECASE),
    re.compile(r"\bsession[ \t]*#?\d+", re.IGNORECASE),
    re.compile(r"^w\d+\b", re.IGNORECASE),
]
SHORT_HEADER_MAX = 50
SUBSTANTIVE_LINE_MIN = 20

DAY_WITH_DURATION_RE = re.compile(
    rf"\b({_WEEKDAY_ALT})\b.*?(\d+[ \t]*{_DURATION_UNIT})\b",
    re.IGNORECASE,
)
GENERIC_SESSION_RULES: list[tuple[str, re.Pattern[str]]] = [
    ("daily_session", re.compile(r"\bdaily[ \t]*session\b", re.IGNORECASE)),
    ("training_session", re.compile(r"\btraining[ \t]*session\b", re.IGNORECASE)),
    ("timed_session", re.compile(rf"\b\d+[ \t]*{_DURATION_UNIT}\b.*\bsession\b", re.IGNORECASE)),
]
_WEEKDAY_RE = re.compile(rf"\b({_WEEKDAY_ALT})\b", re.IGNORECASE)
_DURATION_RE = re.compile(rf"\b(\d+)[ \t]*({_DURATION_UNIT})\b", re.IGNORECASE)

WEEK_MENTION_RE = re.compile(r"\bweek[ \t]+(\d+)\b", re.IGNORECASE)
_WEEK_NUMBER_RE = re.compile(r"\bweek[ \t]*(\d+)\b", re.IGNORECASE)


@dataclass(frozen=True)
class DayBlock:
    day: str
    duration: str
    line_number: int
    content: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class WeekBlock:
    title: str
    line_number: int
    days: list[DayBlock] = field(default_factory=list)
    content: list[str] = field(default_factory=list)
    # Set only when the week number was read from the text rather than counted.
    week_number: int | None = None


@dataclass(frozen=True)
class DocumentStructure:
    weeks: list[WeekBlock]
    preamble: list[str] = field(default_factory=list)
    line_count: int = 0


@dataclass(frozen=True)
class Segmentation:
    strategy: Literal["structural", "week_mentions"]
    structure: DocumentStructure
    primary_weeks: int
    alternative_weeks: int | None = None
    max_week_number: int = 0


def day_name(line: str) -> str:
    m = _WEEKDAY_RE.search(line)
    return m.group(1).lower() if m else "session"


def duration_label(line: str) -> str:
    m = _DURATION_RE.search(line)
    if not m:
        return ""
    unit = m.group(2).lower()
    return f"{m.group(1)} hours" if unit.startswith("h") else f"{m.group(1)} minutes"


def match_week_header(line: str, next_line: str = "") -> str | None:
    """Name of the rule that makes `line` a week header, else None."""
    for name, pattern in WEEK_HEADER_RULES:
        if pattern.search(line):
            return name
    if (
        len(line) < SHORT_HEADER_MAX
        and len(next_line) > SUBSTANTIVE_LINE_MIN
        and any(p.search(line) for p in WEEK_INDICATORS)
    ):
        return "short_line"
    return None


def _day_with_duration(line: str) -> tuple[str, str] | None:
    m = DAY_WITH_DURATION_RE.search(line)
    if not m:
        return None
    return m.group(1).lower(), duration_label(m.group(2))


def _generic_session(line: str) -> tuple[str, str] | None:
    for _, pattern in GENERIC_SESSION_RULES:
        if pattern.search(line):
            return day_name(line), duration_label(line)
    return None


DAY_HEADER_RULES: list[tuple[str, Callable[[str], tuple[str, str] | None]]] = [
    ("day_with_duration", _day_with_duration),
    ("generic_session", _generic_session),
]


def match_day_header(line: str) -> tuple[str, str] | None:
    """`(day, duration)` for a training-unit header line, else None."""
    for _, rule in DAY_HEADER_RULES:
        found = rule(line)
        if found is not None:
            return found
    return None


def parse_structure(text: str) -> DocumentStructure:
    """
    Single forward scan over the non-empty lines.

    A week header closes the open week and any open day; day headers only count inside a
    week. Lines before the first week are kept as preamble.
    """
    lines = [ln.strip() for ln in (text or "").split("\n")]
    lines = [ln for ln in lines if ln]

    weeks: list[WeekBlock] = []
    preamble: list[str] = []
    week: WeekBlock | None = None
    day: DayBlock | None = None

    for i, line in enumerate(lines):
        next_line = lines[i + 1] if i + 1 < len(lines) else ""

        if match_week_header(line, next_line):
            if week is not None:
                weeks.append(week)
            week = WeekBlock(title=line, line_number=i, content=[line])
            day = None
            continue

        if week is not None:
            found = match_day_header(line)
            if found is not None:
                day = DayBlock(day=found[0], duration=found[1], line_number=i, content=[line])
                week.days.append(day)
                continue

        if day is not None:
            day.content.append(line)
        elif week is not None:
            week.content.append(line)
        else:
            preamble.append(line)

    if week is not None:
        weeks.append(week)

    logger.debug("Parsed document structure: %d weeks from %d lines", len(weeks), len(lines))
    return DocumentStructure(weeks=weeks, preamble=preamble, line_count=len(lines))


def max_week_number(text: str) -> int:
    return max((int(n) for n in _WEEK_NUMBER_RE.findall(text or "")), default=0)


def parse_week_mentions(text: str) -> DocumentStructure:
    """
    Independent "Week N" scan over the raw text.

    Each accepted mention opens a segment running to the next accepted one. Mentions that
    don't increase the week number (cross-references such as "as in week 2") are skipped.
    """
    raw = text or ""
    accepted: list[tuple[int, int]] = []
    for m in WEEK_MENTION_RE.finditer(raw):
        n = int(m.group(1))
        if n < 1 or (accepted and n <= accepted[-1][0]):
            continue
        accepted.append((n, m.start()))

    weeks: list[WeekBlock] = []
    for idx, (n, start) in enumerate(accepted):
        end = accepted[idx + 1][1] if idx + 1 < len(accepted) else len(raw)
        segment = [ln.strip() for ln in raw[start:end].split("\n") if ln.strip()]
        weeks.append(
            WeekBlock(
                title=f"Week {n}",
                line_number=raw.count("\n", 0, start),
                content=segment,
                week_number=n,
            )
        )
    return DocumentStructure(weeks=weeks, line_count=len([ln for ln in raw.split("\n") if ln.strip()]))


def segment_document(text: str) -> Segmentation:
    """
    Structural scan first; the week-mention scan runs only when the structural week count is
    below half of the highest week number in the text, and wins only with strictly more weeks.
    The two results are never merged.
    """
    primary = parse_structure(text)
    top = max_week_number(text)
    primary_count = len(primary.weeks)

    if primary_count >= top / 2:
        return Segmentation("structural", primary, primary_count, None, top)

    alternative = parse_week_mentions(text)
    alt_count = len(alternative.weeks)
    if alt_count > primary_count:
        logger.info(
            "Using week-mention segmentation: %d weeks instead of %d (highest week number %d)",
            alt_count,
            primary_count,
            top,
        )
        return Segmentation("week_mentions", alternative, primary_count, alt_count, top)
    return Segmentation("structural", primary, primary_count, alt_count, top)

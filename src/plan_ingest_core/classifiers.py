"""
Keyword and pattern heuristics that infer plan attributes from extracted text.

Every function is pure and returns a usable default when it finds no signal. Rules live in
ordered tables; keyword matches use word boundaries and never span lines.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from plan_ingest_core.models import DEFAULT_SESSION_MINUTES, WEEKDAYS, Drill, Schedule, WeekScheduleEntry

DEFAULT_CATEGORY = "fitness"
DEFAULT_DURATION = "8 weeks"
DEFAULT_DIFFICULTY = "intermediate"
MIN_SESSIONS = 12
SESSIONS_PER_WEEK = 3
DESCRIPTION_MAX = 200
MAX_TAGS = 5
TITLE_SCAN_LINES = 15

CATEGORY_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("football", ("football", "american football", "nfl", "gridiron", "tackle")),
    ("soccer", ("soccer", "football", "fifa", "futbol", "pitch")),
    ("basketball", ("basketball", "nba", "court", "hoop", "dribble")),
    ("tennis", ("tennis", "racket", "court", "serve", "volley")),
    ("fitness", ("fitness", "gym", "workout", "exercise", "strength", "cardio", "conditioning")),
]

DIFFICULTY_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("beginner", ("beginner", "basic", "starter", "introductory", "novice", "easy", "foundation")),
    ("intermediate", ("intermediate", "moderate", "standard", "regular", "medium")),
    ("advanced", ("advanced", "expert", "professional", "elite", "pro", "competitive", "hard", "intense")),
]

TAG_VOCABULARY: tuple[str, ...] = (
    "strength", "cardio", "endurance", "flexibility", "power",
    "speed", "agility", "conditioning", "core", "upper body",
    "lower body", "full body", "recovery", "warm up", "cool down",
    "plyometric", "resistance", "bodyweight", "weights", "running",
    "jumping", "balance", "coordination", "explosive", "stamina",
    "youth", "adult", "professional", "team", "individual",
    "indoor", "outdoor", "gym", "field", "court",
)  # fmt: skip

EQUIPMENT_KEYWORDS = ("cones", "balls", "goals", "bibs", "ladders", "hurdles", "markers")
FOCUS_KEYWORDS = ("shooting", "passing", "dribbling", "defending", "tactics", "fitness")

TITLE_RULES: list[tuple[str, re.Pattern[str]]] = [
    ("title_label", re.compile(r"^title:[ \t]*(.+)", re.IGNORECASE)),
    ("program_label", re.compile(r"^program:[ \t]*(.+)", re.IGNORECASE)),
    ("plan_label", re.compile(r"^plan:[ \t]*(.+)", re.IGNORECASE)),
    ("named_program", re.compile(r"^(.+)\b(?:training|program|plan|workout|routine)\b", re.IGNORECASE)),
    ("first_week", re.compile(r"^week[ \t]*1\b.*?[-:][ \t]*(.+)", re.IGNORECASE)),
    ("first_session", re.compile(r"^session[ \t]*1\b.*?[-:][ \t]*(.+)", re.IGNORECASE)),
]
_CAPITALIZED_LINE_RE = re.compile(r"^[A-Z][a-zA-Z\s]+")
_WEEKDAY_START_RE = re.compile(r"^(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b", re.IGNORECASE)
_TITLE_PUNCT_RE = re.compile(r"[:\-–—]")

# (unit, pattern, aggregate): "first" takes the first match, "max" the largest number seen.
DURATION_RULES: list[tuple[str, re.Pattern[str], str]] = [
    ("weeks", re.compile(r"\b(\d+)[ \t]*weeks?\b", re.IGNORECASE), "first"),
    ("months", re.compile(r"\b(\d+)[ \t]*months?\b", re.IGNORECASE), "first"),
    ("days", re.compile(r"\b(\d+)[ \t]*days?\b(?![ \t]+(?:per|a|each)\b)", re.IGNORECASE), "first"),
    ("weeks", re.compile(r"\bweek[ \t]*(\d+)\b", re.IGNORECASE), "max"),
    ("months", re.compile(r"\bmonth[ \t]*(\d+)\b", re.IGNORECASE), "max"),
]

SESSION_COUNT_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\b(\d+)[ \t]*sessions?\b", re.IGNORECASE),
    re.compile(r"\bsession[ \t]*(\d+)\b", re.IGNORECASE),
    re.compile(r"\bday[ \t]*(\d+)\b", re.IGNORECASE),
    re.compile(r"\bworkout[ \t]*(\d+)\b", re.IGNORECASE),
]
_WEEKS_PHRASE_RE = re.compile(r"\b(\d+)[ \t]*weeks?\b", re.IGNORECASE)

HEADER_LINE_RE = re.compile(r"^(?:week|day|session)[ \t]*\d+", re.IGNORECASE)
_SENTENCE_END_RE = re.compile(r"[.!?]$")

ACTIVITY_RULES: list[re.Pattern[str]] = [
    re.compile(r"^\d+\."),
    re.compile(r"^[A-Z][a-z].*:"),
    re.compile(r"\b(?:drill|exercise|activity|practice)", re.IGNORECASE),
    re.compile(r"\bwarm[ \t-]*up\b|\bcool[ \t-]*down\b", re.IGNORECASE),
]
MAX_ACTIVITIES = 5
MAX_DRILLS = 10
MAX_OBJECTIVES = 3
MAX_FOCUS = 3

OBJECTIVE_WORDS = ("focus", "objective", "goal", "emphasize")
NOTE_WORDS = ("note", "emphasize", "encourage")

_DURATION_RE = re.compile(r"\b(\d+)[ \t]*(minutes?|hours?|mins?|hrs?)\b", re.IGNORECASE)
_TIME_RE = re.compile(r"\b(\d{1,2}):(\d{2})\b|\b(\d{1,2})[ \t]*(am|pm)\b", re.IGNORECASE)
_SCHEDULE_DURATION_RE = re.compile(r"\b(\d+)[ \t]*(min|hour)", re.IGNORECASE)

ACADEMY_RE = re.compile(r"^([A-Z][A-Z\s]+ACADEMY|[A-Z][A-Z\s]+CLUB)", re.IGNORECASE)
SPORT_RE = re.compile(r"\b(soccer|football|basketball|tennis|volleyball|swimming)\b", re.IGNORECASE)
AGE_RE = re.compile(r"(\d+[-–]\d+[ \t]*years?|\bunder[ \t]*\d+|\bu\d+\b|\d+[ \t]*years?)", re.IGNORECASE)
ACADEMY_SCAN_LINES = 20


def _words_re(keyword: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(keyword)}\b", re.IGNORECASE)


def _clean(lines: Iterable[str]) -> list[str]:
    return [ln.strip() for ln in lines if ln and ln.strip()]


def _joined(lines: Iterable[str]) -> str:
    return "\n".join(_clean(lines))


def _vote(text: str, table: list[tuple[str, tuple[str, ...]]], default: str, *, count_all: bool) -> str:
    # Strict ">" keeps the earlier table entry on ties.
    best, best_score = default, 0
    for name, keywords in table:
        if count_all:
            score = sum(len(_words_re(k).findall(text)) for k in keywords)
        else:
            score = sum(1 for k in keywords if _words_re(k).search(text))
        if score > best_score:
            best, best_score = name, score
    return best


def humanize_filename(filename: str | None) -> str:
    stem = re.sub(r"\.[^/.]+$", "", filename or "")
    stem = re.sub(r"[_-]", " ", stem).strip()
    if not stem:
        return "Training Plan"
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), stem)


def extract_title(lines: Sequence[str], filename: str | None) -> str:
    for line in _clean(lines)[:TITLE_SCAN_LINES]:
        if len(line) < 5 or len(line) > 100:
            continue
        for _, pattern in TITLE_RULES:
            m = pattern.search(line)
            if m and m.group(1):
                title = _TITLE_PUNCT_RE.sub("", m.group(1)).strip()
                if len(title) > 5:
                    return title
        if _CAPITALIZED_LINE_RE.match(line) and not _WEEKDAY_START_RE.match(line) and 10 < len(line) < 80:
            return line
    return humanize_filename(filename)


def extract_category(lines: Sequence[str]) -> str:
    return _vote(_joined(lines), CATEGORY_KEYWORDS, DEFAULT_CATEGORY, count_all=True)


def extract_difficulty(lines: Sequence[str]) -> str:
    return _vote(_joined(lines), DIFFICULTY_KEYWORDS, DEFAULT_DIFFICULTY, count_all=False)


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}{'s' if n > 1 else ''}"


def extract_duration(lines: Sequence[str]) -> str:
    text = _joined(lines)
    for unit, pattern, aggregate in DURATION_RULES:
        numbers = [int(n) for n in pattern.findall(text) if int(n) > 0]
        if not numbers:
            continue
        n = numbers[0] if aggregate == "first" else max(numbers)
        if unit == "days":
            return _plural(math.ceil(n / 7), "week")
        return _plural(n, "month" if unit == "months" else "week")
    return DEFAULT_DURATION


def extract_sessions_count(lines: Sequence[str]) -> int:
    text = _joined(lines)
    best = 0
    for pattern in SESSION_COUNT_PATTERNS:
        for n in pattern.findall(text):
            best = max(best, int(n))
    if best == 0:
        m = _WEEKS_PHRASE_RE.search(text)
        if m:
            best = int(m.group(1)) * SESSIONS_PER_WEEK
    return max(best, MIN_SESSIONS)


def extract_description(lines: Sequence[str]) -> str:
    picked: list[str] = []
    for line in _clean(lines):
        if len(line) < 30 or HEADER_LINE_RE.match(line):
            continue
        if _SENTENCE_END_RE.search(line) and len(line) >= 50:
            picked.append(line)
            if len(picked) >= 2:
                break

    description = " ".join(picked)
    if len(description) < 50:
        description = (
            f"A comprehensive {extract_difficulty(lines)} level {extract_category(lines)} training "
            "program designed to improve performance and achieve fitness goals."
        )
    if len(description) > DESCRIPTION_MAX:
        description = description[: DESCRIPTION_MAX - 3] + "..."
    return description


def extract_tags(lines: Sequence[str]) -> list[str]:
    text = _joined(lines)
    tags = [t for t in TAG_VOCABULARY if _words_re(t).search(text)]
    category = extract_category(lines)
    if category not in tags:
        tags.insert(0, category)
    return tags[:MAX_TAGS]


def found_weekdays(lines: Sequence[str]) -> list[str]:
    text = _joined(lines)
    return [d for d in WEEKDAYS if _words_re(d).search(text)]


def extract_schedule(lines: Sequence[str]) -> Schedule:
    days = found_weekdays(lines)
    if days:
        return Schedule(type="weekly", days=days, pattern=f"{len(days)} days per week")
    return Schedule(type="flexible", days=[], pattern="User-defined schedule")


# Session-level helpers, applied to a day's or week's content lines.


def is_activity(line: str) -> bool:
    s = line.strip()
    return any(p.search(s) for p in ACTIVITY_RULES)


def is_drill(line: str) -> bool:
    low = line.lower()
    return "drill" in low or "exercise" in low or bool(re.match(r"^\d+\.", line.strip()))


def is_objective(line: str) -> bool:
    low = line.lower()
    return any(w in low for w in OBJECTIVE_WORDS)


def is_note(line: str) -> bool:
    low = line.lower()
    return line.startswith("*") or any(w in low for w in NOTE_WORDS)


def extract_activities(content: Sequence[str]) -> list[str]:
    return [ln.strip() for ln in content if is_activity(ln)][:MAX_ACTIVITIES]


def drill_name(line: str) -> str:
    s = line.strip()
    colon = s.find(":")
    if colon != -1:
        name = s[:colon].strip()
    else:
        dot = s.find(".")
        name = s[dot + 1 : dot + 30].strip() if dot != -1 and dot < 50 else ""
    return name or s[:30].strip()


def parse_duration_minutes(text: str | None, default: int = DEFAULT_SESSION_MINUTES) -> int:
    """Minutes from "90 minutes" / "2 hrs"-style text; anything unparsable or zero gives `default`."""
    m = _DURATION_RE.search(text or "")
    if not m:
        return default
    value = int(m.group(1))
    minutes = value * 60 if m.group(2).lower().startswith("h") else value
    return minutes if minutes > 0 else default


def extract_drills(content: Sequence[str]) -> list[Drill]:
    drills: list[Drill] = []
    for line in content:
        if not is_drill(line):
            continue
        minutes = parse_duration_minutes(line, default=0)
        drills.append(
            Drill(
                name=drill_name(line),
                description=line.strip(),
                duration_minutes=minutes or None,
            )
        )
    return drills[:MAX_DRILLS]


def extract_objectives(content: Sequence[str]) -> list[str]:
    return [ln.strip() for ln in content if is_objective(ln)][:MAX_OBJECTIVES]


def extract_notes(content: Sequence[str]) -> list[str]:
    return [ln.strip() for ln in content if is_note(ln)]


def extract_equipment(content: Sequence[str]) -> list[str]:
    text = _joined(content)
    return [item for item in EQUIPMENT_KEYWORDS if _words_re(item).search(text)]


def extract_focus(content: Sequence[str]) -> list[str]:
    text = _joined(content)
    return [k for k in FOCUS_KEYWORDS if _words_re(k).search(text)][:MAX_FOCUS]


def extract_time(text: str) -> str | None:
    """First clock time as HH:MM (24h), from "16:30" or "4 pm"."""
    m = _TIME_RE.search(text or "")
    if not m:
        return None
    if m.group(1):
        hour, minute = int(m.group(1)), m.group(2)
        if hour > 23 or int(minute) > 59:
            return None
        return f"{hour:02d}:{minute}"
    hour = int(m.group(3))
    if hour < 1 or hour > 12:
        return None
    if m.group(4).lower() == "pm" and hour != 12:
        hour += 12
    elif m.group(4).lower() == "am" and hour == 12:
        hour = 0
    return f"{hour:02d}:00"


def extract_week_description(content: Sequence[str]) -> str:
    meaningful = [
        ln for ln in _clean(content) if len(ln) > 20 and not HEADER_LINE_RE.match(ln) and not is_activity(ln)
    ]
    text = " ".join(meaningful[:2])
    if len(text) > DESCRIPTION_MAX:
        return text[:DESCRIPTION_MAX] + "..."
    return text


def extract_week_schedule(content: Sequence[str]) -> list[WeekScheduleEntry]:
    entries: list[WeekScheduleEntry] = []
    for line in _clean(content):
        for day in WEEKDAYS:
            if not _words_re(day).search(line):
                continue
            time_m = _TIME_RE.search(line)
            dur_m = _SCHEDULE_DURATION_RE.search(line)
            entries.append(
                WeekScheduleEntry(
                    day=day.capitalize(),
                    time=time_m.group(0) if time_m else "08:00",
                    duration=dur_m.group(0) if dur_m else "90min",
                    focus=line,
                )
            )
    return entries


@dataclass(frozen=True)
class AcademyInfo:
    academy_name: str
    sport: str
    age_group: str
    program: str
    location: str
    difficulty: str


def extract_academy_info(text: str, *, title: str, category: str, difficulty: str) -> AcademyInfo:
    head = (text or "").split("\n")[:ACADEMY_SCAN_LINES]

    academy = ""
    for line in head:
        m = ACADEMY_RE.match(line.strip())
        if m:
            academy = m.group(1).strip()
            break

    sport_m = SPORT_RE.search(text or "")
    age_m = AGE_RE.search(text or "")
    program = next(
        (ln.strip() for ln in head if "COACHING" in ln or "PLAN" in ln or "PROGRAM" in ln),
        "",
    )

    return AcademyInfo(
        academy_name=academy or title or "Training Academy",
        sport=sport_m.group(1).lower() if sport_m else (category or "soccer"),
        age_group=age_m.group(1) if age_m else "Youth",
        program=program or title or "Training Program",
        location="Training Facility",
        difficulty=difficulty or DEFAULT_DIFFICULTY,
    )

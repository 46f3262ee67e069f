from __future__ import annotations

import pytest

from plan_ingest_core.structure import (
    match_day_header,
    match_week_header,
    max_week_number,
    parse_structure,
    parse_week_mentions,
    segment_document,
)


@pytest.mark.parametrize(
    ("line", "next_line", "expected"),
    [
        ("Week 3", "", "week"),
        ("WEEK 10 - Finishing", "", "week"),
        ("Training Week 2", "", "training_week"),
        ("Session 4", "", "session"),
        ("Day 1: Arrival", "", "day"),
        ("W2 first touch", "Players work on first touch under pressure today", "short_line"),
        ("W2 first touch", "short", None),
        ("Weekend tournament", "", None),
        ("Midweek recovery", "", None),
    ],
)
def test_match_week_header(line: str, next_line: str, expected: str | None) -> None:
    assert match_week_header(line, next_line) == expected


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("Monday 90 minutes", ("monday", "90 minutes")),
        ("Tuesday 2 hrs", ("tuesday", "2 hours")),
        ("Friday session 45 mins", ("friday", "45 minutes")),
        ("Daily session: ball mastery", ("session", "")),
        ("60 min conditioning session", ("session", "60 minutes")),
        ("Monday rest", None),
        ("Passing drill", None),
    ],
)
def test_match_day_header(line: str, expected: tuple[str, str] | None) -> None:
    assert match_day_header(line) == expected


def test_parse_structure_groups_days_under_weeks() -> None:
    text = "\n".join(
        [
            "Spring Soccer Program",
            "Week 1 - Foundations",
            "Focus on first touch this week",
            "Monday 60 minutes",
            "Passing drill",
            "",
            "Wednesday 90 minutes",
            "Shooting drill",
            "Week 2",
            "Friday 1 hour",
            "Small-sided games",
        ]
    )

    structure = parse_structure(text)

    assert structure.preamble == ["Spring Soccer Program"]
    assert [w.title for w in structure.weeks] == ["Week 1 - Foundations", "Week 2"]
    first = structure.weeks[0]
    assert first.content == ["Week 1 - Foundations", "Focus on first touch this week"]
    assert [(d.day, d.duration) for d in first.days] == [("monday", "60 minutes"), ("wednesday", "90 minutes")]
    assert first.days[0].content == ["Monday 60 minutes", "Passing drill"]
    assert structure.weeks[1].days[0].duration == "1 hours"
    assert structure.line_count == 10


def test_day_headers_before_any_week_are_preamble() -> None:
    structure = parse_structure("Monday 60 minutes\nIntro")
    assert structure.weeks == []
    assert structure.preamble == ["Monday 60 minutes", "Intro"]


def test_max_week_number() -> None:
    assert max_week_number("week 2 then Week 11 and week3") == 11
    assert max_week_number("no weeks here") == 0


def test_parse_week_mentions_skips_backward_references() -> None:
    text = "Plan overview. Week 1 basics. Week 2 builds on week 1. Week 3 games."

    structure = parse_week_mentions(text)

    assert [w.week_number for w in structure.weeks] == [1, 2, 3]
    assert [w.title for w in structure.weeks] == ["Week 1", "Week 2", "Week 3"]
    assert structure.weeks[1].content == ["Week 2 builds on week 1."]


def test_segment_prefers_structural_when_enough_weeks() -> None:
    text = "Week 1\nMonday 60 minutes\nWeek 2\nMonday 60 minutes\nWeek 4 preview"

    seg = segment_document(text)

    assert seg.strategy == "structural"
    assert seg.primary_weeks == 3
    assert seg.alternative_weeks is None
    assert seg.max_week_number == 4


def test_segment_switches_to_week_mentions_when_structure_is_sparse() -> None:
    # Only the first line is a week header; the other weeks are mentioned inline.
    text = "\n".join(
        [
            "Week 1",
            "Intro block, then in week 2 we add passing, week 3 adds shooting,",
            "then week 4 adds defending, week 5 adds tactics and week 6 is a tournament.",
        ]
    )

    seg = segment_document(text)

    assert seg.primary_weeks == 1
    assert seg.max_week_number == 6
    assert seg.strategy == "week_mentions"
    assert seg.alternative_weeks == 6
    assert [w.week_number for w in seg.structure.weeks] == [1, 2, 3, 4, 5, 6]


def test_segment_keeps_structural_when_alternative_is_not_better() -> None:
    seg = segment_document("Intro\nWeek 8 only")

    assert seg.max_week_number == 8
    assert seg.primary_weeks == 1
    assert seg.alternative_weeks == 1
    assert seg.strategy == "structural"

from __future__ import annotations

import pytest

from plan_ingest_core.classifiers import (
    TAG_VOCABULARY,
    drill_name,
    extract_academy_info,
    extract_activities,
    extract_category,
    extract_description,
    extract_difficulty,
    extract_drills,
    extract_duration,
    extract_equipment,
    extract_focus,
    extract_notes,
    extract_objectives,
    extract_schedule,
    extract_sessions_count,
    extract_tags,
    extract_time,
    extract_title,
    extract_week_schedule,
    humanize_filename,
    parse_duration_minutes,
)


def test_title_from_label_and_program_lines() -> None:
    assert extract_title(["Title: Elite Striker Camp"], "x.txt") == "Elite Striker Camp"
    assert extract_title(["U12 Soccer Training Program"], "x.txt") == "U12 Soccer Training"
    assert extract_title(["Week 1 - Ball Mastery"], "x.txt") == "Ball Mastery"


def test_title_skips_weekday_lines_and_falls_back_to_filename() -> None:
    assert extract_title(["Monday afternoon block", "ok"], "spring_camp-plan.docx") == "Spring Camp Plan"
    assert extract_title([], None) == "Training Plan"
    assert humanize_filename("my_plan.v2.txt") == "My Plan.V2"


def test_category_votes_with_word_boundaries() -> None:
    assert extract_category(["Soccer pitch work", "FIFA rules", "soccer passing"]) == "soccer"
    assert extract_category(["Basketball court", "hoop drills"]) == "basketball"
    # "courtyard" and "served" must not count as tennis keywords.
    assert extract_category(["Meet in the courtyard", "lunch served"]) == "fitness"
    assert extract_category([]) == "fitness"


def test_difficulty() -> None:
    assert extract_difficulty(["Advanced elite squad"]) == "advanced"
    assert extract_difficulty(["Beginner basics for novice players"]) == "beginner"
    assert extract_difficulty(["Nothing to see"]) == "intermediate"
    # "professional" in "semiprofessional" is not a whole word.
    assert extract_difficulty(["semiprofessional"]) == "intermediate"


@pytest.mark.parametrize(
    ("lines", "expected"),
    [
        (["A 6 week block"], "6 weeks"),
        (["Runs for 3 months"], "3 months"),
        (["A 10 day camp"], "2 weeks"),
        (["Train 3 days per week"], "8 weeks"),
        (["Week 1", "Week 9"], "9 weeks"),
        (["Month 2 review"], "2 months"),
        (["1 week intro"], "1 week"),
        (["no hint"], "8 weeks"),
    ],
)
def test_duration(lines: list[str], expected: str) -> None:
    assert extract_duration(lines) == expected


def test_sessions_count() -> None:
    assert extract_sessions_count(["24 sessions in total"]) == 24
    assert extract_sessions_count(["Session 15 recap"]) == 15
    assert extract_sessions_count(["A 6 weeks programme"]) == 18
    assert extract_sessions_count(["Two sessions"]) == 12


def test_description_prefers_long_sentences() -> None:
    lines = [
        "Week 1 is about getting comfortable on the ball with simple games.",
        "This programme builds confident ball handling through repetition.",
        "Players progress to opposed drills once technique is consistent.",
    ]
    description = extract_description(lines)
    assert description.startswith("This programme builds")
    assert len(description) <= 200

    generic = extract_description(["short"])
    assert generic.startswith("A comprehensive intermediate level fitness training program")


def test_description_accepts_fifty_character_sentence() -> None:
    sentence = "Players should arrive early to warm up thoroughly."
    assert len(sentence) == 50

    assert extract_description(["Spring Plan", sentence]) == sentence


def test_tags_lead_with_category_and_cap_at_five() -> None:
    text = ["soccer pitch soccer speed agility balance power core"]
    tags = extract_tags(text)
    assert tags[0] == "soccer"
    assert len(tags) == 5
    assert all(t in TAG_VOCABULARY or t == "soccer" for t in tags)


def test_schedule() -> None:
    schedule = extract_schedule(["Monday and Friday", "wednesday too"])
    assert schedule.type == "weekly"
    assert schedule.days == ["monday", "wednesday", "friday"]
    assert schedule.pattern == "3 days per week"
    assert extract_schedule(["whenever"]).type == "flexible"


def test_session_level_helpers() -> None:
    content = [
        "1. Rondo drill: 15 minutes keep-away",
        "Warm up jog",
        "Shooting exercise 20 mins",
        "Objective: first touch under pressure",
        "* Note: keep groups small",
        "Bring cones and balls",
    ]
    assert extract_activities(content)[:2] == ["1. Rondo drill: 15 minutes keep-away", "Warm up jog"]
    drills = extract_drills(content)
    assert [d.name for d in drills] == ["1. Rondo drill", "Shooting exercise 20 mins"]
    assert [d.duration_minutes for d in drills] == [15, 20]
    assert extract_objectives(content) == ["Objective: first touch under pressure"]
    assert extract_notes(content) == ["* Note: keep groups small"]
    assert extract_equipment(content) == ["cones", "balls"]
    assert extract_focus(["Shooting and passing", "more shooting"]) == ["shooting", "passing"]


def test_drill_name_without_colon() -> None:
    assert drill_name("3. Short passing in pairs") == "Short passing in pairs"
    assert drill_name("Dribbling drill") == "Dribbling drill"


@pytest.mark.parametrize(
    ("text", "expected"),
    [("90 minutes", 90), ("2 hours", 120), ("45 mins", 45), ("0 minutes", 90), ("", 90), (None, 90)],
)
def test_parse_duration_minutes(text: str | None, expected: int) -> None:
    assert parse_duration_minutes(text) == expected


@pytest.mark.parametrize(
    ("text", "expected"),
    [("Kick-off 16:30", "16:30"), ("at 4 pm", "16:00"), ("12 am start", "00:00"), ("25:00", None), ("none", None)],
)
def test_extract_time(text: str, expected: str | None) -> None:
    assert extract_time(text) == expected


def test_week_schedule_entries() -> None:
    entries = extract_week_schedule(["Monday 16:00 60 min technique", "Rest day"])
    assert len(entries) == 1
    assert entries[0].day == "Monday"
    assert entries[0].time == "16:00"
    assert entries[0].duration == "60 min"


def test_academy_info() -> None:
    text = "RIVERSIDE FOOTBALL ACADEMY\nU12 COACHING PLAN\nSoccer sessions for 10-12 years"
    info = extract_academy_info(text, title="Riverside", category="soccer", difficulty="beginner")
    assert info.academy_name == "RIVERSIDE FOOTBALL ACADEMY"
    assert info.sport == "football"
    assert info.age_group == "U12"
    assert info.program == "U12 COACHING PLAN"

    bare = extract_academy_info("", title="", category="", difficulty="")
    assert bare.academy_name == "Training Academy"
    assert bare.sport == "soccer"
    assert bare.difficulty == "intermediate"

from __future__ import annotations

from plan_ingest_core.assembler import RAW_TEXT_MAX, TrainingPlanAssembler
from plan_ingest_core.extractors.base import success
from plan_ingest_core.formats import DocumentFormat
from plan_ingest_core.models import Creator
from plan_ingest_core.util import plan_id_for_document


def _twelve_week_plan() -> str:
    lines = ["Riverside Soccer Program"]
    for n in range(1, 13):
        lines += [
            f"Week {n}",
            "Monday 90 minutes",
            "Passing drill with cones",
            "Rondo in small groups",
            "Wednesday 90 minutes",
            "Shooting drill for accuracy",
            "Finishing under pressure",
            "Friday 90 minutes",
            "Small sided games",
            "Cool down and stretching",
        ]
    return "\n".join(lines)


def _assemble(text: str, make_doc, clock, **kwargs):  # noqa: ANN001, ANN202
    data = text.encode()
    document = make_doc(data)
    extraction = success(DocumentFormat.TEXT, text, data_len=len(data))
    return TrainingPlanAssembler(clock=clock).assemble(text, document, Creator(), extraction, **kwargs)


def test_twelve_week_document(make_doc, clock) -> None:  # noqa: ANN001
    text = _twelve_week_plan()

    plan = _assemble(text, make_doc, clock)

    assert plan.id == plan_id_for_document("doc_1")
    assert plan.title == "Riverside Soccer"
    assert plan.academy_name == plan.title
    assert plan.category == "soccer"
    assert plan.difficulty == "intermediate"
    assert plan.duration == "12 weeks"
    assert plan.sessions_count == 12
    assert plan.schedule.days == ["monday", "wednesday", "friday"]
    assert plan.source_document_id == "doc_1"
    assert plan.created_at == clock()
    assert plan.platform == "web"

    assert [w.week_number for w in plan.weeks] == list(range(1, 13))
    assert all(len(w.daily_sessions) == 3 for w in plan.weeks)
    assert all(w.total_duration == 270 for w in plan.weeks)
    assert plan.weeks[0].daily_sessions[0].title == "Riverside Soccer - Week 1, Monday Training"

    assert plan.segmentation is not None
    assert plan.segmentation.strategy == "structural"
    assert plan.segmentation.primary_weeks == 12
    assert plan.extraction is not None
    assert plan.extraction.format == "text"
    assert plan.extraction.is_fallback is False
    assert plan.extraction.extracted_length == len(text)
    assert plan.raw_content == text


def test_assembly_is_deterministic(make_doc, clock) -> None:  # noqa: ANN001
    text = _twelve_week_plan()

    first = _assemble(text, make_doc, clock)
    second = _assemble(text, make_doc, clock)

    assert first.to_json_dict() == second.to_json_dict()


def test_reprocess_fields_and_raw_text_cap(make_doc, clock) -> None:  # noqa: ANN001
    text = "Week 1\nMonday 60 minutes\n" + "x" * (RAW_TEXT_MAX + 500)

    plan = _assemble(text, make_doc, clock, version=3, is_reprocessed=True)

    assert plan.version == 3
    assert plan.is_reprocessed is True
    assert len(plan.raw_content) == RAW_TEXT_MAX


def test_week_mention_document(make_doc, clock) -> None:  # noqa: ANN001
    text = "\n".join(
        [
            "Week 1",
            "Intro block, then in week 2 we add passing, week 3 adds shooting,",
            "then week 4 adds defending.",
        ]
    )

    plan = _assemble(text, make_doc, clock)

    assert plan.segmentation is not None
    assert plan.segmentation.strategy == "week_mentions"
    assert [w.week_number for w in plan.weeks] == [1, 2, 3, 4]
    assert [w.title for w in plan.weeks] == [f"Week {n} Training" for n in range(1, 5)]
    assert all(w.daily_sessions[0].duration_minutes == 120 for w in plan.weeks)


def test_empty_text_still_builds_a_plan(make_doc, clock) -> None:  # noqa: ANN001
    plan = _assemble("", make_doc, clock)

    assert plan.weeks == []
    assert plan.title == "Plan"
    assert plan.duration == "8 weeks"
    assert plan.sessions_count == 12
    assert plan.description.startswith("A comprehensive intermediate level fitness")

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from plan_ingest_core.classifiers import (
    extract_academy_info,
    extract_category,
    extract_description,
    extract_difficulty,
    extract_duration,
    extract_schedule,
    extract_sessions_count,
    extract_tags,
    extract_title,
)
from plan_ingest_core.extractors.base import NormalizedText
from plan_ingest_core.models import Creator, Document, ExtractionInfo, SegmentationInfo, TrainingPlan
from plan_ingest_core.sessions import build_week_sessions
from plan_ingest_core.structure import segment_document
from plan_ingest_core.util import plan_id_for_document, utcnow

logger = logging.getLogger(__name__)

RAW_TEXT_MAX = 10_000


class TrainingPlanAssembler:
    """Pure text -> TrainingPlan step. Reading bytes and persisting the plan happen elsewhere."""

    def __init__(self, *, clock: Callable[[], datetime] = utcnow):
        self._clock = clock

    def assemble(
        self,
        text: str,
        document: Document,
        creator: Creator,
        extraction: NormalizedText,
        *,
        version: int = 1,
        is_reprocessed: bool = False,
    ) -> TrainingPlan:
        lines = [ln.strip() for ln in (text or "").split("\n") if ln.strip()]

        title = extract_title(lines, document.original_name)
        category = extract_category(lines)
        difficulty = extract_difficulty(lines)

        segmentation = segment_document(text)
        academy = extract_academy_info(text, title=title, category=category, difficulty=difficulty)
        weeks = build_week_sessions(segmentation.structure, academy)

        plan = TrainingPlan(
            id=plan_id_for_document(document.id),
            title=title,
            academy_name=title,
            source_document_id=document.id,
            original_name=document.original_name,
            category=category,
            duration=extract_duration(lines),
            difficulty=difficulty,
            sessions_count=extract_sessions_count(lines),
            description=extract_description(lines),
            tags=extract_tags(lines),
            weeks=weeks,
            schedule=extract_schedule(lines),
            creator=creator,
            created_at=self._clock(),
            version=version,
            is_reprocessed=is_reprocessed,
            raw_content=(text or "")[:RAW_TEXT_MAX],
            platform=document.platform_origin,
            extraction=ExtractionInfo(
                format=extraction.format.value,
                processing_method=extraction.processing_method,
                is_fallback=extraction.is_fallback,
                extracted_length=len(text or ""),
            ),
            segmentation=SegmentationInfo(
                strategy=segmentation.strategy,
                primary_weeks=segmentation.primary_weeks,
                alternative_weeks=segmentation.alternative_weeks,
            ),
        )
        logger.info(
            "Assembled training plan %s from %s: %d weeks, strategy=%s",
            plan.id,
            document.id,
            len(weeks),
            segmentation.strategy,
        )
        return plan

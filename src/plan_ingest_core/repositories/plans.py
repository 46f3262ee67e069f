from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from plan_ingest_core.models import TrainingPlan
from plan_ingest_core.storage.kv import KeyValueStore

logger = logging.getLogger(__name__)

TRAINING_PLANS_KEY = "training_plans"


class TrainingPlanRepository:
    """`training_plans` collection. At most one plan per source document is kept."""

    def __init__(self, store: KeyValueStore, *, key: str = TRAINING_PLANS_KEY):
        self._store = store
        self._key = key

    async def _raw(self) -> list[Any]:
        value = await self._store.get(self._key)
        return value if isinstance(value, list) else []

    async def list_plans(self) -> list[TrainingPlan]:
        plans: list[TrainingPlan] = []
        for raw in await self._raw():
            try:
                plans.append(TrainingPlan.model_validate(raw))
            except PydanticValidationError:
                logger.warning("Skipping unreadable stored training plan", exc_info=True)
        return plans

    async def get_plan(self, plan_id: str) -> TrainingPlan | None:
        for plan in await self.list_plans():
            if plan.id == plan_id:
                return plan
        return None

    async def find_by_source_document(self, document_id: str) -> TrainingPlan | None:
        for plan in await self.list_plans():
            if plan.source_document_id == document_id:
                return plan
        return None

    async def save_plan(self, plan: TrainingPlan) -> None:
        """Replace any plan with the same id or source document, else append."""
        raw = await self._raw()
        kept = [
            r
            for r in raw
            if not (
                isinstance(r, dict)
                and (r.get("id") == plan.id or r.get("sourceDocumentId") == plan.source_document_id)
            )
        ]
        kept.append(plan.to_json_dict())
        await self._store.set(self._key, kept)
        logger.debug("Saved training plan %s (version %d)", plan.id, plan.version)

    async def delete_plan(self, plan_id: str) -> bool:
        raw = await self._raw()
        kept = [r for r in raw if not (isinstance(r, dict) and r.get("id") == plan_id)]
        if len(kept) == len(raw):
            return False
        await self._store.set(self._key, kept)
        return True

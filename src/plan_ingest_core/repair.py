from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from plan_ingest_core.errors import DocumentNotFoundError
from plan_ingest_core.formats import CSV_MIME, DOCX_MIME, TEXT_MIME, XLSX_MIME
from plan_ingest_core.integrity import CheckStatus, IntegrityChecker, IntegrityResult
from plan_ingest_core.models import Document
from plan_ingest_core.repositories.documents import DocumentRepository
from plan_ingest_core.storage.backends import StorageBackend
from plan_ingest_core.util import utcnow

logger = logging.getLogger(__name__)

REPAIRABLE_TYPES = frozenset({TEXT_MIME, CSV_MIME, DOCX_MIME, XLSX_MIME})


@dataclass(frozen=True)
class RepairResult:
    repaired: bool
    actions: list[str]
    post_repair_status: CheckStatus
    message: str
    integrity: IntegrityResult | None = field(default=None, compare=False)

    def to_dict(self) -> dict[str, object]:
        return {
            "repaired": self.repaired,
            "actions": list(self.actions),
            "postRepairStatus": self.post_repair_status,
            "message": self.message,
        }


def can_repair(document: Document | None) -> bool:
    """Cheap pre-check used by maintenance to skip hopeless repair attempts."""
    if document is None or not document.id:
        return False
    if document.storage_handle is None or not document.storage_handle.is_present():
        return False
    return document.mime_type in REPAIRABLE_TYPES


def _summary(repaired: bool, actions: list[str]) -> str:
    if repaired:
        return f"Document repaired successfully: {', '.join(actions)}"
    if actions:
        return f"Document could not be repaired: {', '.join(actions)}"
    return "No repairs needed or possible"


class RepairEngine:
    def __init__(
        self,
        checker: IntegrityChecker,
        backend: StorageBackend,
        documents: DocumentRepository,
        *,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._checker = checker
        self._backend = backend
        self._documents = documents
        self._clock = clock

    async def repair(self, document_id: str) -> RepairResult:
        """
        Apply the narrow metadata/handle fixes, persist, then re-run the integrity check.

        Individual step failures end up in `actions`; only a missing document raises.
        """
        document = await self._documents.get_document(document_id)
        if document is None:
            raise DocumentNotFoundError(
                "Document not found for repair",
                ["Refresh the document list", "Upload the document again"],
            )

        now = self._clock()
        actions: list[str] = []
        updates: dict[str, Any] = {}

        if document.uploaded_at is None:
            updates["uploaded_at"] = now
            actions.append("Added missing upload timestamp")
        if document.platform_origin is None:
            updates["platform_origin"] = self._backend.platform
            actions.append("Added missing platform identifier")
        if not isinstance(document.processed, bool):
            updates["processed"] = False
            actions.append("Fixed missing processed flag")

        try:
            recovery = await self._backend.recover(document)
        except Exception as e:  # noqa: BLE001
            logger.warning("Handle recovery failed for %s", document_id, exc_info=True)
            actions.append(f"Could not verify stored file data: {e}")
        else:
            if recovery.handle is not None:
                updates["storage_handle"] = recovery.handle
            if recovery.action:
                actions.append(recovery.action)

        repaired = bool(updates)
        if repaired:
            updates["repaired_at"] = now
            document = document.model_copy(update=updates)
            try:
                await self._documents.save_document(document)
            except Exception as e:  # noqa: BLE001
                logger.warning("Could not persist repaired document %s", document_id, exc_info=True)
                actions.append(f"Could not save repaired document: {e}")

        post = await self._checker.verify(document)
        logger.info(
            "Repair of %s finished: repaired=%s status=%s",
            document_id,
            repaired,
            post.overall_status,
        )
        return RepairResult(
            repaired=repaired,
            actions=actions,
            post_repair_status=post.overall_status,
            message=_summary(repaired, actions),
            integrity=post,
        )

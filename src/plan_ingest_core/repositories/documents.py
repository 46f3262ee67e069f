from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from plan_ingest_core.models import Document
from plan_ingest_core.storage.kv import KeyValueStore

logger = logging.getLogger(__name__)

DOCUMENTS_KEY = "coaching_documents"


def load_document(raw: Any) -> Document | None:
    """
    Parse one stored record without repairing it.

    Fields that fail validation are dropped (so they read back as None and the integrity
    checker can flag them); a record without an id is unusable and yields None.
    """
    if not isinstance(raw, dict) or not raw.get("id"):
        return None
    payload = dict(raw)
    try:
        return Document.model_validate(payload)
    except PydanticValidationError as e:
        bad = {err["loc"][0] for err in e.errors() if err["loc"]}
        if "id" in bad:
            return None
        for key in bad:
            payload.pop(key, None)
        logger.warning("Dropped invalid fields %s from stored document %s", sorted(map(str, bad)), raw.get("id"))
    try:
        return Document.model_validate(payload)
    except PydanticValidationError:
        logger.warning("Skipping unreadable stored document %s", raw.get("id"), exc_info=True)
        return None


class DocumentRepository:
    """`coaching_documents` collection: one JSON array of Document records."""

    def __init__(self, store: KeyValueStore, *, key: str = DOCUMENTS_KEY):
        self._store = store
        self._key = key

    async def _raw(self) -> list[Any]:
        value = await self._store.get(self._key)
        return value if isinstance(value, list) else []

    async def list_documents(self) -> list[Document]:
        docs: list[Document] = []
        for raw in await self._raw():
            doc = load_document(raw)
            if doc is not None:
                docs.append(doc)
        return docs

    async def get_document(self, document_id: str) -> Document | None:
        for doc in await self.list_documents():
            if doc.id == document_id:
                return doc
        return None

    async def save_document(self, doc: Document) -> None:
        """Insert or replace by id. Read-modify-write: concurrent writers race, last one wins."""
        raw = await self._raw()
        record = doc.to_json_dict()
        for i, existing in enumerate(raw):
            if isinstance(existing, dict) and existing.get("id") == doc.id:
                raw[i] = record
                break
        else:
            raw.append(record)
        await self._store.set(self._key, raw)
        logger.debug("Saved document %s", doc.id)

    async def delete_document(self, document_id: str) -> bool:
        raw = await self._raw()
        kept = [r for r in raw if not (isinstance(r, dict) and r.get("id") == document_id)]
        if len(kept) == len(raw):
            return False
        await self._store.set(self._key, kept)
        return True

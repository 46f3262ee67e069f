from __future__ import annotations

import re
from datetime import UTC, datetime
from uuid import NAMESPACE_URL, uuid4, uuid5


def utcnow() -> datetime:
    return datetime.now(UTC)


def new_document_id(now: datetime | None = None) -> str:
    ts = int((now or utcnow()).timestamp() * 1000)
    return f"doc_{ts}_{uuid4().hex[:9]}"


def plan_id_for_document(document_id: str) -> str:
    """
    Deterministic plan id derived from the source document id.

    Reprocessing a document therefore overwrites the same plan record.
    """
    return f"plan_{uuid5(NAMESPACE_URL, f'training-plan:{document_id}').hex}"


_UNSAFE_FILENAME_RE = re.compile(r"[^\w.-]+", flags=re.UNICODE)


def safe_filename(name: str | None) -> str:
    cleaned = _UNSAFE_FILENAME_RE.sub("_", (name or "").strip()).strip("._")
    return cleaned[:160] or "document"

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator
from datetime import UTC, datetime

import psycopg
import pytest

from plan_ingest_core.capabilities import RuntimeCapabilities
from plan_ingest_core.migrations.runner import apply_migrations
from plan_ingest_core.models import Document, StorageHandle

FIXED_NOW = datetime(2025, 3, 10, 9, 30, tzinfo=UTC)


@pytest.fixture(scope="session")
def pg_dsn() -> str:
    dsn = os.environ.get("PG_DSN")
    if not dsn:
        pytest.skip("PG_DSN not set; skipping DB integration tests")
    return dsn


@pytest.fixture(scope="session")
def pg_schema(pg_dsn: str) -> Generator[str, None, None]:
    schema = f"test_{uuid.uuid4().hex[:10]}"
    apply_migrations(pg_dsn, schema=schema)
    yield schema
    with psycopg.connect(pg_dsn) as conn:
        conn.execute(f'drop schema if exists "{schema}" cascade')
        conn.commit()


@pytest.fixture()
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture()
def web_caps() -> RuntimeCapabilities:
    return RuntimeCapabilities.for_platform("web")


@pytest.fixture()
def mobile_caps() -> RuntimeCapabilities:
    return RuntimeCapabilities.for_platform("mobile")


def make_document(data: bytes = b"Week 1\nMonday 60 minutes\nPassing drill", **overrides: object) -> Document:
    """Inline (web) document holding `data`, with every metadata field filled in."""
    fields: dict[str, object] = {
        "id": "doc_1",
        "original_name": "plan.txt",
        "mime_type": "text/plain",
        "size_bytes": len(data),
        "uploaded_at": FIXED_NOW,
        "platform_origin": "web",
        "storage_handle": StorageHandle(kind="inline", inline_data=list(data)),
        "processed": False,
    }
    fields.update(overrides)
    return Document(**fields)


@pytest.fixture()
def make_doc() -> Callable[..., Document]:
    return make_document

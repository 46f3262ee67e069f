from __future__ import annotations

import pytest

from plan_ingest_core.errors import DocumentNotFoundError
from plan_ingest_core.formats import PDF_MIME
from plan_ingest_core.integrity import IntegrityChecker
from plan_ingest_core.models import StorageHandle
from plan_ingest_core.repair import RepairEngine, can_repair
from plan_ingest_core.repositories.documents import DocumentRepository
from plan_ingest_core.storage.backends import FilesystemStorageBackend, InlineStorageBackend
from plan_ingest_core.storage.kv import InMemoryKeyValueStore


def _engine(caps, backend, clock):  # noqa: ANN001, ANN202
    repo = DocumentRepository(InMemoryKeyValueStore())
    checker = IntegrityChecker(caps, backend, repo, clock=clock)
    return RepairEngine(checker, backend, repo, clock=clock), checker, repo


def test_can_repair(make_doc) -> None:  # noqa: ANN001
    assert can_repair(make_doc()) is True
    assert can_repair(None) is False
    assert can_repair(make_doc(storage_handle=None)) is False
    assert can_repair(make_doc(mime_type=PDF_MIME, original_name="plan.pdf")) is False


@pytest.mark.asyncio
async def test_missing_platform_only(web_caps, clock, make_doc) -> None:  # noqa: ANN001
    backend = InlineStorageBackend()
    engine, checker, repo = _engine(web_caps, backend, clock)
    doc = make_doc(platform_origin=None)
    await repo.save_document(doc)
    before = await checker.verify(doc)

    result = await engine.repair(doc.id)

    assert result.repaired is True
    assert result.actions == ["Added missing platform identifier"]
    assert result.post_repair_status == before.overall_status
    stored = await repo.get_document(doc.id)
    assert stored is not None
    assert stored.platform_origin == "web"
    assert stored.repaired_at == clock()


@pytest.mark.asyncio
async def test_nothing_to_repair(web_caps, clock, make_doc) -> None:  # noqa: ANN001
    engine, _, repo = _engine(web_caps, InlineStorageBackend(), clock)
    await repo.save_document(make_doc())

    result = await engine.repair("doc_1")

    assert result.repaired is False
    assert result.actions == []
    assert result.message == "No repairs needed or possible"
    assert result.post_repair_status == "passed"


@pytest.mark.asyncio
async def test_fills_timestamp_and_processed_flag(web_caps, clock, make_doc) -> None:  # noqa: ANN001
    engine, _, repo = _engine(web_caps, InlineStorageBackend(), clock)
    await repo.save_document(make_doc(uploaded_at=None, processed=None))

    result = await engine.repair("doc_1")

    assert result.actions == ["Added missing upload timestamp", "Fixed missing processed flag"]
    assert result.message.startswith("Document repaired successfully: ")
    stored = await repo.get_document("doc_1")
    assert stored is not None
    assert stored.uploaded_at == clock()
    assert stored.processed is False


@pytest.mark.asyncio
async def test_restores_lost_inline_data_from_file_ref(web_caps, clock, make_doc) -> None:  # noqa: ANN001
    backend = InlineStorageBackend()
    data = b"Week 1\nMonday 60 minutes"
    stored_bytes = await backend.store("doc_1", "plan.txt", data)
    engine, _, repo = _engine(web_caps, backend, clock)
    assert stored_bytes.handle.inline_data == list(data)
    await repo.save_document(make_doc(data, storage_handle=StorageHandle(kind="inline", inline_data=[])))

    result = await engine.repair("doc_1")

    assert "Restored missing web file data" in result.actions
    assert result.post_repair_status == "passed"
    stored = await repo.get_document("doc_1")
    assert stored is not None
    assert stored.storage_handle is not None
    assert bytes(stored.storage_handle.inline_data or []) == data


@pytest.mark.asyncio
async def test_unrecoverable_inline_data_is_reported(web_caps, clock, make_doc) -> None:  # noqa: ANN001
    engine, _, repo = _engine(web_caps, InlineStorageBackend(), clock)
    await repo.save_document(make_doc(storage_handle=None))

    result = await engine.repair("doc_1")

    assert result.repaired is False
    assert result.actions == ["Could not restore web file data - file may need re-upload"]
    assert result.message == "Document could not be repaired: Could not restore web file data - file may need re-upload"
    assert result.post_repair_status == "failed"


@pytest.mark.asyncio
async def test_unknown_document_raises(web_caps, clock) -> None:  # noqa: ANN001
    engine, _, _ = _engine(web_caps, InlineStorageBackend(), clock)
    with pytest.raises(DocumentNotFoundError, match="Document not found for repair"):
        await engine.repair("missing")


@pytest.mark.asyncio
async def test_missing_device_file_is_reported_not_repaired(mobile_caps, clock, tmp_path, make_doc) -> None:  # noqa: ANN001
    backend = FilesystemStorageBackend(tmp_path)
    engine, _, repo = _engine(mobile_caps, backend, clock)
    gone = StorageHandle(kind="path", local_path=str(tmp_path / "doc_1_plan.txt"))
    await repo.save_document(make_doc(platform_origin="mobile", storage_handle=gone))

    result = await engine.repair("doc_1")

    assert result.repaired is False
    assert result.actions == ["Local file missing - document may need re-upload"]
    assert result.message == "Document could not be repaired: Local file missing - document may need re-upload"
    assert result.post_repair_status == "failed"

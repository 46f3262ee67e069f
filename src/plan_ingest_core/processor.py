from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from plan_ingest_core.assembler import TrainingPlanAssembler
from plan_ingest_core.capabilities import RuntimeCapabilities, detect_capabilities
from plan_ingest_core.config import Settings, load_settings
from plan_ingest_core.db import PostgresConfig
from plan_ingest_core.enhancement import EnhancementGateway, HttpEnhancementGateway, enhance_plan
from plan_ingest_core.errors import DocumentNotFoundError, PlanIngestError, ValidationError, wrap_platform_error
from plan_ingest_core.extractors import TextExtractionService
from plan_ingest_core.extractors.base import RECOMMENDED_FORMATS
from plan_ingest_core.formats import format_file_size, validate_file_extension
from plan_ingest_core.integrity import IntegrityChecker, IntegrityResult
from plan_ingest_core.migrations.runner import apply_migrations
from plan_ingest_core.models import Document, TrainingPlan
from plan_ingest_core.repair import RepairEngine, RepairResult, can_repair
from plan_ingest_core.repositories import DocumentRepository, TrainingPlanRepository, load_creator
from plan_ingest_core.storage.backends import FilesystemStorageBackend, InlineStorageBackend, StorageBackend
from plan_ingest_core.storage.kv import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueStore
from plan_ingest_core.storage.postgres import PostgresKeyValueStore
from plan_ingest_core.util import new_document_id, utcnow

logger = logging.getLogger(__name__)

MAINTENANCE_INTERVAL = timedelta(hours=24)


@dataclass(frozen=True)
class UploadedFile:
    name: str
    mime_type: str
    data: bytes
    uri: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ValidationReport:
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class StoredDocument:
    document: Document
    integrity: IntegrityResult


@dataclass(frozen=True)
class MaintenanceSummary:
    total_documents: int
    checked_documents: int
    issues_found: int
    repairs_attempted: int
    timestamp: datetime

    def to_dict(self) -> dict[str, object]:
        return {
            "totalDocuments": self.total_documents,
            "checkedDocuments": self.checked_documents,
            "issuesFound": self.issues_found,
            "repairsAttempted": self.repairs_attempted,
            "timestamp": self.timestamp.isoformat(),
        }


def _aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=UTC)


class DocumentProcessor:
    """
    Entry point tying storage, integrity, extraction and plan assembly together.

    Every error leaving a public coroutine is a PlanIngestError whose message carries the
    platform prefix ("Web Platform ..." / "Mobile Platform ...") and remediation suggestions.
    """

    def __init__(
        self,
        capabilities: RuntimeCapabilities,
        backend: StorageBackend,
        store: KeyValueStore,
        gateway: EnhancementGateway | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._caps = capabilities
        self._backend = backend
        self._store = store
        self._gateway = gateway
        self._clock = clock

        self.documents = DocumentRepository(store)
        self.plans = TrainingPlanRepository(store)
        self.checker = IntegrityChecker(capabilities, backend, self.documents, clock=clock)
        self.repairer = RepairEngine(self.checker, backend, self.documents, clock=clock)
        self.extraction = TextExtractionService(capabilities, backend)
        self.assembler = TrainingPlanAssembler(clock=clock)

    @property
    def capabilities(self) -> RuntimeCapabilities:
        return self._caps

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    def _wrap(self, exc: BaseException, context: str) -> PlanIngestError:
        return wrap_platform_error(exc, context, platform=self._caps.platform)

    def validate_upload(self, upload: UploadedFile) -> ValidationReport:
        errors: list[str] = []
        warnings: list[str] = []
        suggestions: list[str] = []

        if not upload.name:
            errors.append("File name is missing")
        if upload.size == 0:
            errors.append("File is empty")
            suggestions.append("Check that the file was saved correctly")
        elif upload.size > self._caps.file_size_limit:
            errors.append(
                f"File too large: {format_file_size(upload.size)} "
                f"(limit {format_file_size(self._caps.file_size_limit)})"
            )
            suggestions.append("Split the plan into smaller documents")
        if upload.mime_type not in self._caps.supported_formats:
            errors.append(f"Unsupported file type: {upload.mime_type or 'unknown'}")
            suggestions.extend(RECOMMENDED_FORMATS)
        elif upload.name:
            ok, message = validate_file_extension(upload.name, upload.mime_type)
            if not ok:
                warnings.append(message)

        return ValidationReport(valid=not errors, errors=errors, warnings=warnings, suggestions=suggestions)

    async def store_document(self, upload: UploadedFile) -> Document:
        try:
            report = self.validate_upload(upload)
            if not report.valid:
                raise ValidationError("; ".join(report.errors), report.suggestions)

            now = self._clock()
            document_id = new_document_id(now)
            stored = await self._backend.store(document_id, upload.name, upload.data)
            document = Document(
                id=document_id,
                original_name=upload.name,
                mime_type=upload.mime_type,
                size_bytes=upload.size,
                uploaded_at=now,
                platform_origin=self._backend.platform,
                storage_handle=stored.handle,
                uri=stored.uri or upload.uri,
                processed=False,
            )
            await self.documents.save_document(document)
        except Exception as e:
            raise self._wrap(e, "Document Storage") from e

        logger.info("Stored document %s (%s, %d bytes)", document.id, document.mime_type, upload.size)
        return document

    async def store_document_with_integrity_check(self, upload: UploadedFile) -> StoredDocument:
        document = await self.store_document(upload)
        try:
            result = await self.checker.verify(document)
            document = document.model_copy(update={"integrity_check": result.snapshot(self._clock())})
            await self.documents.save_document(document)
        except Exception as e:
            raise self._wrap(e, "Document Storage with Integrity Check") from e
        return StoredDocument(document=document, integrity=result)

    async def _require_document(self, document_id: str) -> Document:
        document = await self.documents.get_document(document_id)
        if document is None:
            raise DocumentNotFoundError(
                "Document not found in storage",
                ["Refresh the document list", "Upload the document again"],
            )
        return document

    async def process_training_plan(self, document_id: str, *, force: bool = False) -> TrainingPlan:
        """
        Build (or return) the training plan for a stored document.

        Without `force` an existing plan for the document is returned unchanged. With `force`
        the plan is rebuilt under the same id with its version bumped.
        """
        try:
            existing = await self.plans.find_by_source_document(document_id)
            if existing is not None and not force:
                logger.info("Training plan already exists for %s", document_id)
                return existing

            document = await self._require_document(document_id)
            data = await self._backend.read(document)

            extraction = self.extraction.extract_bytes(document, data)
            creator = await load_creator(self._store)
            plan = self.assembler.assemble(
                extraction.text,
                document,
                creator,
                extraction,
                version=existing.version + 1 if existing is not None else 1,
                is_reprocessed=existing is not None,
            )
            if self._gateway is not None:
                plan = await enhance_plan(self._gateway, plan, clock=self._clock)

            await self.plans.save_plan(plan)
            await self.documents.save_document(
                document.model_copy(
                    update={
                        "processed": True,
                        "processed_at": self._clock(),
                        "linked_training_plan_id": plan.id,
                    }
                )
            )
        except Exception as e:
            raise self._wrap(e, "Training Plan Processing") from e

        logger.info(
            "Processed training plan %s for %s: %d sessions, %d chars (fallback=%s)",
            plan.id,
            document_id,
            plan.sessions_count,
            len(extraction.text),
            extraction.is_fallback,
        )
        return plan

    async def verify_integrity(self, document_id: str) -> IntegrityResult:
        try:
            document = await self._require_document(document_id)
        except Exception as e:
            raise self._wrap(e, "Integrity Check") from e
        return await self.checker.verify(document)

    async def repair_document(self, document_id: str) -> RepairResult:
        try:
            return await self.repairer.repair(document_id)
        except Exception as e:
            raise self._wrap(e, "Document Repair") from e

    async def run_integrity_maintenance(self, now: datetime | None = None) -> MaintenanceSummary:
        """
        Background sweep: re-check documents not checked in the last 24 hours, try to repair
        failed ones, and persist each new snapshot. Per-document failures are logged and skipped.
        """
        now = _aware(now or self._clock())
        documents = await self.documents.list_documents()
        checked = issues = repairs = 0

        for document in documents:
            snapshot = document.integrity_check
            if snapshot is not None and now - _aware(snapshot.timestamp) < MAINTENANCE_INTERVAL:
                continue
            try:
                result = await self.checker.verify(document)
                checked += 1
                if result.overall_status in ("failed", "error"):
                    issues += 1
                    if can_repair(document):
                        repairs += 1
                        try:
                            repaired = await self.repairer.repair(document.id)
                        except Exception:  # noqa: BLE001
                            logger.warning("Could not repair document %s", document.id, exc_info=True)
                        else:
                            result = repaired.integrity or result

                current = await self.documents.get_document(document.id) or document
                await self.documents.save_document(
                    current.model_copy(update={"integrity_check": result.snapshot(now)})
                )
            except Exception:  # noqa: BLE001
                logger.warning("Integrity maintenance failed for %s", document.id, exc_info=True)

        summary = MaintenanceSummary(
            total_documents=len(documents),
            checked_documents=checked,
            issues_found=issues,
            repairs_attempted=repairs,
            timestamp=now,
        )
        logger.info("Integrity maintenance completed", extra={"fields": summary.to_dict()})
        return summary

    async def delete_document(self, document_id: str) -> bool:
        try:
            document = await self.documents.get_document(document_id)
            if document is None:
                return False
            await self._backend.release(document)
            deleted = await self.documents.delete_document(document_id)
        except Exception as e:
            raise self._wrap(e, "Document Deletion") from e
        logger.debug("Deleted document %s", document_id)
        return deleted

    async def get_storage_info(self) -> dict[str, Any]:
        try:
            documents = await self.documents.list_documents()
            plans = await self.plans.list_plans()
        except Exception as e:
            raise self._wrap(e, "Storage Info Retrieval") from e
        return {
            "documentsCount": len(documents),
            "plansCount": len(plans),
            "totalStorageUsed": sum(d.size_bytes or 0 for d in documents),
            "platform": self._caps.platform,
            "storageType": self._backend.storage_type,
            "storageLimit": self._caps.file_size_limit,
            "supportedFormats": self._caps.get_supported_formats(),
        }

    def get_capabilities(self) -> dict[str, Any]:
        return {
            "platform": self._caps.platform,
            "wordProcessing": self._caps.word is not None,
            "excelProcessing": self._caps.spreadsheet is not None,
            "csvProcessing": True,
            "pdfProcessing": self._caps.pdf is not None,
            "localFileSystem": self._backend.storage_type == "path",
            "enhancement": self._gateway is not None,
            "maxFileSize": self._caps.file_size_limit,
            "supportedFormats": self._caps.get_supported_formats(),
            "modulesLoaded": self._caps.modules_loaded(),
        }

    async def health_check(self) -> dict[str, Any]:
        timestamp = self._clock().isoformat()
        try:
            storage = await self.get_storage_info()
        except Exception as e:  # noqa: BLE001
            logger.warning("Health check failed", exc_info=True)
            return {
                "status": "unhealthy",
                "error": getattr(e, "message", str(e)),
                "platform": self._caps.platform,
                "timestamp": timestamp,
            }
        return {
            "status": "healthy",
            "capabilities": self.get_capabilities(),
            "storage": storage,
            "platform": self._caps.platform,
            "notes": list(self._caps.notes),
            "timestamp": timestamp,
        }


def build_store(settings: Settings) -> KeyValueStore:
    if settings.store_backend == "json":
        return JsonFileKeyValueStore(settings.store_path)
    if settings.store_backend == "postgres":
        cfg = PostgresConfig.from_settings(settings)
        return PostgresKeyValueStore(cfg.build_dsn(), schema=cfg.schema)
    return InMemoryKeyValueStore()


async def migrate_store(settings: Settings) -> list[str]:
    """Apply pending SQL migrations for the postgres store; a no-op for the other backends."""
    if settings.store_backend != "postgres":
        return []
    cfg = PostgresConfig.from_settings(settings)
    applied = await asyncio.to_thread(apply_migrations, cfg.build_dsn(), schema=cfg.schema)
    if applied:
        logger.info("Applied migrations: %s", ", ".join(applied))
    return applied


def build_backend(settings: Settings) -> StorageBackend:
    if settings.platform == "web":
        return InlineStorageBackend()
    return FilesystemStorageBackend(settings.documents_dir)


def build_gateway(settings: Settings) -> EnhancementGateway | None:
    if not settings.enhancement_enabled or not settings.enhancement_url:
        return None
    return HttpEnhancementGateway(
        base_url=settings.enhancement_url,
        api_key=settings.enhancement_api_key,
        batch_size=settings.enhancement_batch_size,
        batch_delay_s=settings.enhancement_batch_delay_s,
        timeout_s=settings.enhancement_timeout_s,
    )


async def create_processor(settings: Settings | None = None) -> DocumentProcessor:
    settings = settings or load_settings()
    capabilities = await detect_capabilities(settings.platform, timeout_s=settings.init_timeout_s)
    await migrate_store(settings)
    return DocumentProcessor(
        capabilities,
        build_backend(settings),
        build_store(settings),
        build_gateway(settings),
    )

from __future__ import annotations

import codecs
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from plan_ingest_core.capabilities import RuntimeCapabilities
from plan_ingest_core.errors import StorageError
from plan_ingest_core.formats import (
    DOC_MIME,
    WEB_FILE_SIZE_LIMIT,
    XLS_MIME,
    DocumentFormat,
    classify_format,
    file_extension,
    format_file_size,
    is_text_like,
    processing_method,
    validate_file_extension,
)
from plan_ingest_core.models import Document, IntegritySnapshot
from plan_ingest_core.repositories.documents import DocumentRepository
from plan_ingest_core.storage.backends import StorageBackend
from plan_ingest_core.util import utcnow

logger = logging.getLogger(__name__)

CheckStatus = Literal["passed", "warning", "failed", "error"]

CHECK_NAMES = ("basic", "storage", "readability", "processing")
SAMPLE_BYTES = 100
SIZE_TOLERANCE = 0.1

RECOMMENDATIONS: dict[str, str] = {
    "basic": "Fix file metadata issues before processing",
    "storage": "Re-upload the file to fix storage issues",
    "readability": "Check if file is corrupted or in wrong format",
    "processing": "Use a different file format for better compatibility",
}
READY_MESSAGE = "File integrity verified - ready for processing"
PIPELINE_ERROR_RECOMMENDATIONS = ("Retry file upload", "Check file format compatibility")


@dataclass(frozen=True)
class CheckResult:
    status: CheckStatus
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    metadata: dict[str, object] = field(default_factory=dict)

    @classmethod
    def from_findings(
        cls,
        issues: list[str],
        warnings: list[str],
        metadata: dict[str, object] | None = None,
    ) -> CheckResult:
        status: CheckStatus = "failed" if issues else ("warning" if warnings else "passed")
        return cls(status=status, issues=issues, warnings=warnings, metadata=metadata or {})

    def to_dict(self) -> dict[str, object]:
        return {**self.metadata, "status": self.status, "issues": list(self.issues), "warnings": list(self.warnings)}


@dataclass(frozen=True)
class IntegrityResult:
    document_id: str
    timestamp: datetime
    platform: str | None
    overall_status: CheckStatus
    checks: Mapping[str, CheckResult]
    recommendations: list[str]
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        out: dict[str, object] = {
            "documentId": self.document_id,
            "timestamp": self.timestamp.isoformat(),
            "platform": self.platform,
            "overallStatus": self.overall_status,
            "checks": {name: check.to_dict() for name, check in self.checks.items()},
            "recommendations": list(self.recommendations),
        }
        if self.error is not None:
            out["error"] = self.error
        return out

    def snapshot(self, checked_at: datetime | None = None) -> IntegritySnapshot:
        return IntegritySnapshot(
            timestamp=self.timestamp,
            status=self.overall_status,
            last_checked=checked_at or self.timestamp,
        )


def evaluate_overall_status(statuses: list[CheckStatus] | tuple[CheckStatus, ...]) -> CheckStatus:
    """error > failed > (all passed -> passed) > warning."""
    if "error" in statuses:
        return "error"
    if "failed" in statuses:
        return "failed"
    if all(s == "passed" for s in statuses):
        return "passed"
    return "warning"


def build_recommendations(checks: Mapping[str, CheckResult]) -> list[str]:
    recs = [RECOMMENDATIONS[name] for name, c in checks.items() if c.status in {"failed", "error"} and name in RECOMMENDATIONS]
    return recs or [READY_MESSAGE]


def _decode_sample(sample: bytes) -> str:
    # Incremental decoding holds back a multi-byte character cut off at the sample boundary.
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    return decoder.decode(sample, final=False)


class IntegrityChecker:
    """
    Four independent checks over a stored document.

    `verify` has no side effects and never raises; callers persist `result.snapshot()`.
    """

    def __init__(
        self,
        capabilities: RuntimeCapabilities,
        backend: StorageBackend,
        documents: DocumentRepository,
        *,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._caps = capabilities
        self._backend = backend
        self._documents = documents
        self._clock = clock

    async def verify(self, document: Document) -> IntegrityResult:
        try:
            checks = {
                "basic": await self._guard("Basic", self.check_basic(document)),
                "storage": await self._guard("Storage", self.check_storage(document)),
                "readability": await self._guard("Readability", self.check_readability(document)),
                "processing": await self._guard("Processing readiness", self.check_processing(document)),
            }
            overall = evaluate_overall_status([c.status for c in checks.values()])
            result = IntegrityResult(
                document_id=document.id,
                timestamp=self._clock(),
                platform=document.platform_origin,
                overall_status=overall,
                checks=checks,
                recommendations=build_recommendations(checks),
            )
        except Exception as e:  # noqa: BLE001
            logger.exception("Integrity pipeline failed for %s", getattr(document, "id", None))
            return IntegrityResult(
                document_id=getattr(document, "id", "") or "",
                timestamp=self._clock(),
                platform=getattr(document, "platform_origin", None),
                overall_status="error",
                checks={},
                recommendations=list(PIPELINE_ERROR_RECOMMENDATIONS),
                error=str(e),
            )

        logger.debug(
            "Integrity check completed",
            extra={
                "fields": {
                    "document_id": document.id,
                    "status": overall,
                    "failed_checks": [n for n, c in checks.items() if c.status == "failed"],
                }
            },
        )
        return result

    @staticmethod
    async def _guard(label: str, check: Awaitable[CheckResult]) -> CheckResult:
        try:
            return await check
        except Exception as e:  # noqa: BLE001
            logger.warning("%s check raised", label, exc_info=True)
            return CheckResult(status="error", issues=[f"{label} check failed: {e}"])

    async def check_basic(self, document: Document) -> CheckResult:
        issues: list[str] = []
        warnings: list[str] = []

        if not document.id:
            issues.append("Missing document ID")
        if not document.original_name:
            issues.append("Missing original filename")
        if not document.mime_type:
            issues.append("Missing file type")
        if not document.size_bytes or document.size_bytes <= 0:
            issues.append("Invalid file size")
        if document.uploaded_at is None:
            issues.append("Missing upload timestamp")

        if document.mime_type and document.mime_type not in self._caps.supported_formats:
            issues.append(f"Unsupported file type: {document.mime_type}")

        limit = self._caps.file_size_limit
        if document.size_bytes and document.size_bytes > limit:
            issues.append(f"File too large: {document.size_bytes} bytes (limit: {limit})")

        if document.original_name and document.mime_type:
            ok, message = validate_file_extension(document.original_name, document.mime_type)
            if not ok:
                warnings.append(message)

        return CheckResult.from_findings(
            issues,
            warnings,
            {
                "filename": document.original_name,
                "type": document.mime_type,
                "size": document.size_bytes,
                "sizeFormatted": format_file_size(document.size_bytes),
            },
        )

    async def check_storage(self, document: Document) -> CheckResult:
        inspection = await self._backend.inspect(document)
        issues = list(inspection.issues)
        warnings = list(inspection.warnings)

        expected = document.size_bytes or 0
        actual = inspection.actual_size
        if inspection.resolved and actual is not None and expected > 0:
            if abs(expected - actual) > expected * SIZE_TOLERANCE:
                warnings.append(f"Size mismatch: expected {expected}, got {actual}")

        stored = await self._documents.get_document(document.id)
        if stored is None:
            issues.append("Document not found in storage after save")
        elif stored.storage_handle is None or not stored.storage_handle.is_present():
            issues.append("File data lost during storage")

        return CheckResult.from_findings(
            issues,
            warnings,
            {
                "platform": document.platform_origin,
                "storageType": self._backend.storage_type,
                "actualSize": actual,
            },
        )

    async def check_readability(self, document: Document) -> CheckResult:
        issues: list[str] = []
        warnings: list[str] = []

        sample = b""
        try:
            sample = await self._backend.read_sample(document, SAMPLE_BYTES)
        except StorageError as e:
            issues.append(f"Cannot read file: {e.message}")

        readable_size = 0
        if sample:
            inspection = await self._backend.inspect(document)
            readable_size = inspection.actual_size or len(sample)
        else:
            issues.append("File is not readable")
            issues.append("File appears to be empty")

        sample_text = ""
        if sample and is_text_like(document.mime_type):
            sample_text = _decode_sample(sample)
            if "\ufffd" in sample_text:
                warnings.append("File may contain corrupted characters")
            if not sample_text.strip() and readable_size > SAMPLE_BYTES:
                warnings.append("File appears to contain only whitespace or binary data")

        return CheckResult.from_findings(
            issues,
            warnings,
            {
                "readableSize": readable_size,
                "sampleLength": len(sample_text),
                "hasSample": bool(sample_text),
            },
        )

    async def check_processing(self, document: Document) -> CheckResult:
        issues: list[str] = []
        warnings: list[str] = []
        fmt = classify_format(document.mime_type, document.original_name)

        if fmt is DocumentFormat.UNKNOWN:
            issues.append(f"No text extractor for file type: {document.mime_type or 'unknown'}")
        elif not self._caps.library_available(fmt):
            issues.append(f"{processing_method(fmt)} library not available for {fmt.value} processing")

        if fmt is DocumentFormat.PDF:
            if self._caps.is_web():
                issues.append("PDF processing not supported on web platform")
            else:
                warnings.append("PDF support is limited to documents with selectable text")

        ct = (document.mime_type or "").lower()
        if ct in {DOC_MIME, XLS_MIME} or file_extension(document.original_name) in {".doc", ".xls"}:
            warnings.append("Legacy Office format: content will be replaced by a conversion notice")

        if self._caps.is_web() and (document.size_bytes or 0) > WEB_FILE_SIZE_LIMIT:
            warnings.append("Large files may cause browser performance issues")

        processing_test = False
        if fmt in {DocumentFormat.TEXT, DocumentFormat.CSV}:
            try:
                sample = await self._backend.read_sample(document, SAMPLE_BYTES)
                processing_test = len(_decode_sample(sample)) > 0
            except StorageError as e:
                warnings.append(f"Processing test failed: {e.message}")

        return CheckResult.from_findings(
            issues,
            warnings,
            {
                "fileType": ct,
                "format": fmt.value,
                "librariesAvailable": self._caps.modules_loaded(),
                "processingTestPassed": processing_test,
            },
        )

from __future__ import annotations

import logging

from plan_ingest_core.capabilities import RuntimeCapabilities
from plan_ingest_core.errors import StorageError
from plan_ingest_core.extractors.base import NormalizedText, build_fallback_text, fallback, normalize_text
from plan_ingest_core.extractors.pdf import extract_pdf
from plan_ingest_core.extractors.spreadsheet import extract_spreadsheet
from plan_ingest_core.extractors.text import extract_csv, extract_text_file
from plan_ingest_core.extractors.word import extract_word
from plan_ingest_core.formats import DocumentFormat, classify_format
from plan_ingest_core.models import Document
from plan_ingest_core.storage.backends import StorageBackend

logger = logging.getLogger(__name__)

__all__ = [
    "NormalizedText",
    "TextExtractionService",
    "build_fallback_text",
    "extract_csv",
    "extract_pdf",
    "extract_spreadsheet",
    "extract_text_file",
    "extract_word",
    "normalize_text",
]


class TextExtractionService:
    """
    Dispatches a stored document to its format extractor.

    `extract` never raises: unreadable bytes, unknown formats and decoder crashes all come
    back as a fallback NormalizedText.
    """

    def __init__(self, capabilities: RuntimeCapabilities, backend: StorageBackend):
        self._caps = capabilities
        self._backend = backend

    async def extract(self, document: Document) -> NormalizedText:
        fmt = classify_format(document.mime_type, document.original_name)
        try:
            data = await self._backend.read(document)
        except StorageError as e:
            return fallback(fmt, document, [e.message, *e.suggestions])
        return self.extract_bytes(document, data)

    def extract_bytes(self, document: Document, data: bytes) -> NormalizedText:
        fmt = classify_format(document.mime_type, document.original_name)
        logger.debug("Extracting %s as %s (%d bytes)", document.id, fmt.value, len(data))
        try:
            if fmt is DocumentFormat.WORD:
                return extract_word(document, data, self._caps.word)
            if fmt is DocumentFormat.EXCEL:
                return extract_spreadsheet(document, data, self._caps.spreadsheet)
            if fmt is DocumentFormat.CSV:
                return extract_csv(document, data)
            if fmt is DocumentFormat.TEXT:
                return extract_text_file(document, data)
            if fmt is DocumentFormat.PDF:
                return extract_pdf(document, data, self._caps.pdf)
        except Exception as e:  # noqa: BLE001
            logger.exception("Extractor for %s crashed", fmt.value)
            return fallback(fmt, document, [f"Extraction error: {e}"], data_len=len(data))
        return fallback(
            fmt,
            document,
            [f"Unsupported format: {document.mime_type or 'unknown'}"],
            data_len=len(data),
        )

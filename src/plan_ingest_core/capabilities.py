from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Literal

from plan_ingest_core.decoders import (
    PdfDecoder,
    SpreadsheetDecoder,
    WordDecoder,
    load_pdf_decoder,
    load_spreadsheet_decoder,
    load_word_decoder,
)
from plan_ingest_core.formats import (
    MOBILE_FILE_SIZE_LIMIT,
    MOBILE_FORMATS,
    WEB_FILE_SIZE_LIMIT,
    WEB_FORMATS,
    DocumentFormat,
)

logger = logging.getLogger(__name__)

Platform = Literal["web", "mobile"]


@dataclass(frozen=True)
class RuntimeCapabilities:
    """
    What this process can do, decided once at start-up and passed to every component.

    A decoder set to None means the library is unavailable; components fall back instead of
    re-detecting it per call.
    """

    platform: Platform
    supported_formats: tuple[str, ...]
    file_size_limit: int
    word: WordDecoder | None = None
    spreadsheet: SpreadsheetDecoder | None = None
    pdf: PdfDecoder | None = None
    notes: tuple[str, ...] = field(default_factory=tuple)

    def is_web(self) -> bool:
        return self.platform == "web"

    def is_mobile(self) -> bool:
        return self.platform != "web"

    def get_supported_formats(self) -> list[str]:
        return list(self.supported_formats)

    def get_file_size_limit(self) -> int:
        return self.file_size_limit

    def library_available(self, fmt: DocumentFormat) -> bool:
        if fmt is DocumentFormat.WORD:
            return self.word is not None
        if fmt is DocumentFormat.EXCEL:
            return self.spreadsheet is not None
        if fmt is DocumentFormat.PDF:
            return self.pdf is not None
        return fmt in {DocumentFormat.TEXT, DocumentFormat.CSV}

    def modules_loaded(self) -> dict[str, bool]:
        return {
            "word": self.word is not None,
            "spreadsheet": self.spreadsheet is not None,
            "pdf": self.pdf is not None,
        }

    @classmethod
    def for_platform(
        cls,
        platform: Platform,
        *,
        word: WordDecoder | None = None,
        spreadsheet: SpreadsheetDecoder | None = None,
        pdf: PdfDecoder | None = None,
        notes: tuple[str, ...] = (),
    ) -> RuntimeCapabilities:
        if platform == "web":
            formats, limit = WEB_FORMATS, WEB_FILE_SIZE_LIMIT
        else:
            formats, limit = MOBILE_FORMATS, MOBILE_FILE_SIZE_LIMIT
        return cls(
            platform=platform,
            supported_formats=formats,
            file_size_limit=limit,
            word=word,
            spreadsheet=spreadsheet,
            pdf=pdf,
            notes=notes,
        )


async def detect_capabilities(platform: Platform, *, timeout_s: float = 5.0) -> RuntimeCapabilities:
    """
    Load optional decoders within a bounded wait.

    Each loader runs off the event loop, one after another, under a single deadline. Decoders
    not loaded when the deadline passes stay None and the result carries an
    "initialization timeout" note.
    """
    loaders = (
        ("word", load_word_decoder),
        ("spreadsheet", load_spreadsheet_decoder),
        ("pdf", load_pdf_decoder),
    )
    loaded: dict[str, Any] = {}
    notes: tuple[str, ...] = ()
    try:
        async with asyncio.timeout(timeout_s):
            for name, loader in loaders:
                loaded[name] = await asyncio.to_thread(loader)
    except TimeoutError:
        logger.warning(
            "Decoder initialization timed out after %.1fs; continuing without %s",
            timeout_s,
            ", ".join(name for name, _ in loaders if name not in loaded),
        )
        notes = ("initialization timeout",)

    caps = RuntimeCapabilities.for_platform(
        platform,
        word=loaded.get("word"),
        spreadsheet=loaded.get("spreadsheet"),
        pdf=loaded.get("pdf"),
        notes=notes,
    )
    logger.debug(
        "Runtime capabilities detected",
        extra={"fields": {"platform": platform, "modules": caps.modules_loaded()}},
    )
    return caps

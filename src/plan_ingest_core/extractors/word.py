from __future__ import annotations

from plan_ingest_core.decoders import WordDecoder
from plan_ingest_core.extractors.base import NormalizedText, fallback, normalize_text, success
from plan_ingest_core.formats import DOC_MIME, DOCX_MIME, OLE2_SIGNATURE, ZIP_SIGNATURE, DocumentFormat
from plan_ingest_core.models import Document


def _declared_word(document: Document) -> bool:
    ct = (document.mime_type or "").lower()
    name = (document.original_name or "").lower()
    return ct in {DOCX_MIME, DOC_MIME} or name.endswith((".docx", ".doc"))


def extract_word(document: Document, data: bytes, decoder: WordDecoder | None) -> NormalizedText:
    fmt = DocumentFormat.WORD
    n = len(data)

    if not _declared_word(document):
        return fallback(
            fmt,
            document,
            [
                f"File type mismatch: {document.mime_type or 'unknown'}",
                "This appears to be an Excel or other file format",
                "Use the correct document type for processing",
            ],
            data_len=n,
        )
    if data.startswith(OLE2_SIGNATURE):
        return fallback(
            fmt,
            document,
            [
                "Legacy Word (.doc) format cannot be read directly",
                "Save the document as Word (.docx) and upload it again",
            ],
            data_len=n,
        )
    if not data.startswith(ZIP_SIGNATURE):
        return fallback(
            fmt,
            document,
            [
                "File type mismatch: content is not a Word (.docx) document",
                "Check the file type and try again",
            ],
            data_len=n,
        )
    if decoder is None:
        return fallback(
            fmt,
            document,
            ["Word processing library (python-docx) not available", "Try converting to plain text format"],
            data_len=n,
        )

    try:
        raw = decoder.decode(data)
    except Exception as e:  # noqa: BLE001
        return fallback(
            fmt,
            document,
            [
                f"Processing failed: {e}",
                "File is not a valid Word document",
                "This may be an Excel file with a .docx extension",
            ],
            data_len=n,
        )

    text = normalize_text(raw)
    if not text:
        return fallback(fmt, document, ["Document appears to be empty or corrupted"], data_len=n)
    return success(fmt, text, data_len=n, library=decoder.library)

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from plan_ingest_core.formats import DocumentFormat, format_file_size, processing_method
from plan_ingest_core.models import Document

logger = logging.getLogger(__name__)

FORMAT_LABELS: dict[DocumentFormat, str] = {
    DocumentFormat.WORD: "Word",
    DocumentFormat.EXCEL: "Excel",
    DocumentFormat.CSV: "CSV",
    DocumentFormat.TEXT: "Text",
    DocumentFormat.PDF: "PDF",
    DocumentFormat.UNKNOWN: "Unknown",
}

RECOMMENDED_FORMATS = (
    "Word Document (.docx) - Best compatibility",
    "Plain Text (.txt) - Universal support",
    "CSV (.csv) - For structured data",
)


@dataclass(frozen=True)
class NormalizedText:
    text: str
    format: DocumentFormat
    processing_method: str
    is_fallback: bool
    metrics: dict[str, object] = field(default_factory=dict)


# C0 controls except tab and newline; CR is handled before this runs.
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")
_BLANK_RUN_RE = re.compile(r"\n{3,}")


def normalize_text(text: str) -> str:
    t = (text or "").replace("\r\n", "\n").replace("\r", "\n")
    t = _CONTROL_RE.sub("", t)
    t = "\n".join(line.rstrip() for line in t.split("\n"))
    t = _BLANK_RUN_RE.sub("\n\n", t)
    return t.strip()


def decode_text_bytes(data: bytes) -> tuple[str, str]:
    """Decode as UTF-8 (BOM tolerated), else Latin-1, which accepts any byte sequence."""
    try:
        return data.decode("utf-8-sig"), "utf-8"
    except UnicodeDecodeError:
        return data.decode("latin-1"), "latin-1"


def _upload_date(document: Document) -> str:
    if document.uploaded_at is None:
        return "unknown"
    return document.uploaded_at.date().isoformat()


def build_fallback_text(fmt: DocumentFormat, document: Document, issues: Sequence[str] = ()) -> str:
    """
    Deterministic notice that stands in for unextractable content.

    Always names the original file and its size so downstream stages still have something
    meaningful to show.
    """
    name = document.original_name or "unknown"
    size = format_file_size(document.size_bytes)
    uploaded = _upload_date(document)

    lines = [
        f"{FORMAT_LABELS[fmt]} Document Processing Notice",
        "=" * 40,
        "",
        f"Document: {name}",
        f"Size: {size}",
        f"Uploaded: {uploaded}",
        f"Platform: {document.platform_origin or 'unknown'}",
        "",
    ]
    if issues:
        lines.append("Issues:")
        lines.extend(f"• {issue}" for issue in issues)
        lines.append("")
    lines += [
        "This document could not be processed automatically.",
        "Please convert to a supported text format for full processing capabilities.",
        "",
        "Recommended formats:",
        *(f"- {r}" for r in RECOMMENDED_FORMATS),
        "",
        "Document Information Available:",
        f"- Original filename: {name}",
        f"- File type: {document.mime_type or 'unknown'}",
        f"- Upload date: {uploaded}",
        f"- File size: {size}",
    ]
    return "\n".join(lines)


def fallback(
    fmt: DocumentFormat,
    document: Document,
    issues: Sequence[str],
    *,
    data_len: int | None = None,
) -> NormalizedText:
    logger.warning(
        "Using fallback text for %s (%s): %s",
        document.id,
        fmt.value,
        "; ".join(issues),
    )
    text = build_fallback_text(fmt, document, issues)
    return NormalizedText(
        text=text,
        format=fmt,
        processing_method=processing_method(fmt),
        is_fallback=True,
        metrics={"chars": len(text), "bytes": data_len, "issues": list(issues)},
    )


def success(fmt: DocumentFormat, text: str, *, data_len: int, **metrics: object) -> NormalizedText:
    return NormalizedText(
        text=text,
        format=fmt,
        processing_method=processing_method(fmt),
        is_fallback=False,
        metrics={"chars": len(text), "lines": text.count("\n") + 1, "bytes": data_len, **metrics},
    )

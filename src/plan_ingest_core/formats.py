from __future__ import annotations

import math
from enum import Enum

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOC_MIME = "application/msword"
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
XLS_MIME = "application/vnd.ms-excel"
CSV_MIME = "text/csv"
TEXT_MIME = "text/plain"
PDF_MIME = "application/pdf"

WEB_FORMATS: tuple[str, ...] = (TEXT_MIME, CSV_MIME, DOCX_MIME, XLSX_MIME)
MOBILE_FORMATS: tuple[str, ...] = WEB_FORMATS + (PDF_MIME, XLS_MIME)

WEB_FILE_SIZE_LIMIT = 5 * 1024 * 1024
MOBILE_FILE_SIZE_LIMIT = 10 * 1024 * 1024

EXTENSIONS_BY_MIME: dict[str, tuple[str, ...]] = {
    DOCX_MIME: (".docx",),
    DOC_MIME: (".doc",),
    XLSX_MIME: (".xlsx",),
    XLS_MIME: (".xls",),
    CSV_MIME: (".csv",),
    TEXT_MIME: (".txt",),
    PDF_MIME: (".pdf",),
}

# Container signatures: OOXML files are zip archives, legacy Office files are OLE2 compound docs.
ZIP_SIGNATURE = b"PK\x03\x04"
OLE2_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
PDF_SIGNATURE = b"%PDF"


class DocumentFormat(str, Enum):
    WORD = "word"
    EXCEL = "excel"
    CSV = "csv"
    TEXT = "text"
    PDF = "pdf"
    UNKNOWN = "unknown"


_PROCESSING_METHODS = {
    DocumentFormat.PDF: "pypdf",
    DocumentFormat.WORD: "python-docx",
    DocumentFormat.EXCEL: "openpyxl",
    DocumentFormat.CSV: "Direct text reading",
    DocumentFormat.TEXT: "Direct text reading",
}


def classify_format(mime_type: str | None, filename: str | None) -> DocumentFormat:
    ct = (mime_type or "").lower()
    name = (filename or "").lower()

    # Exact MIME types (or extensions) first, in this order.
    if ct == PDF_MIME or name.endswith(".pdf"):
        return DocumentFormat.PDF
    if ct in {DOCX_MIME, DOC_MIME} or name.endswith((".docx", ".doc")):
        return DocumentFormat.WORD
    if ct in {XLSX_MIME, XLS_MIME} or name.endswith((".xlsx", ".xls")):
        return DocumentFormat.EXCEL
    if ct == CSV_MIME or name.endswith(".csv"):
        return DocumentFormat.CSV
    if ct == TEXT_MIME or name.endswith(".txt"):
        return DocumentFormat.TEXT

    if "word" in ct or "document" in ct:
        return DocumentFormat.WORD
    if "excel" in ct or "sheet" in ct:
        return DocumentFormat.EXCEL
    if "text" in ct or "plain" in ct:
        return DocumentFormat.TEXT

    return DocumentFormat.UNKNOWN


def processing_method(fmt: DocumentFormat) -> str:
    return _PROCESSING_METHODS.get(fmt, "Unknown")


def is_text_like(mime_type: str | None) -> bool:
    return "text" in (mime_type or "").lower()


def file_extension(filename: str | None) -> str:
    name = (filename or "").lower()
    if "." not in name:
        return ""
    return "." + name.rsplit(".", 1)[-1]


def validate_file_extension(filename: str, mime_type: str) -> tuple[bool, str]:
    expected = EXTENSIONS_BY_MIME.get(mime_type, ())
    if not expected:
        return True, "Unknown file type for extension validation"
    ext = file_extension(filename)
    if ext in expected:
        return True, "Extension matches file type"
    return False, f"Extension {ext or '(none)'} doesn't match type {mime_type}"


def format_file_size(size: int | None) -> str:
    if not size or size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    i = min(int(math.floor(math.log(size, 1024))), len(units) - 1)
    value = round(size / (1024**i), 2)
    if value == int(value):
        return f"{int(value)} {units[i]}"
    return f"{value} {units[i]}"

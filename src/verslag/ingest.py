"""Text extraction from PDF, Word, spreadsheet and plain-text files."""

import csv
import io
import logging
from pathlib import Path

import openpyxl
import pdfplumber
import xlrd
from docx import Document as DocxDocument

from .errors import (
    DocumentParseError,
    FileTooLargeError,
    InputValidationError,
    UnsupportedFileError,
)
from .models import EXTENSION_TYPES, Document, DocumentType

logger = logging.getLogger(__name__)

MAX_FILE_BYTES = 10 * 1024 * 1024


def validate_file(path: Path, max_bytes: int = MAX_FILE_BYTES) -> int:
    """Check a file can be ingested and return its size in bytes.

    Raises:
        UnsupportedFileError: If the extension is not accepted.
        FileTooLargeError: If the file is larger than ``max_bytes``.
    """
    if path.suffix.lower() not in EXTENSION_TYPES:
        allowed = ", ".join(sorted(EXTENSION_TYPES))
        raise UnsupportedFileError(f"File type not supported: {path.name}. Allowed types: {allowed}")
    try:
        size = path.stat().st_size
    except OSError as e:
        raise InputValidationError(f"Cannot read {path.name}: {e}") from e
    if size > max_bytes:
        raise FileTooLargeError(
            f'File "{path.name}" is too large. Maximum size is {max_bytes // (1024 * 1024)}MB.'
        )
    return size


def declare_document(path: Path, max_bytes: int = MAX_FILE_BYTES) -> Document:
    """Describe a file without reading it, for estimation and deferred ingestion."""
    size = validate_file(path, max_bytes)
    return Document(
        name=path.name,
        type=DocumentType.from_filename(path.name),
        size=size,
        path=path,
    )


def load_document(path: Path, max_bytes: int = MAX_FILE_BYTES) -> Document:
    """Validate and extract a file's text.

    Args:
        path: File to read.
        max_bytes: Upload size limit.

    Returns:
        Document with name, type, size and stripped text content.

    Raises:
        UnsupportedFileError: If the extension is not accepted.
        FileTooLargeError: If the file is too large.
        DocumentParseError: If the file cannot be read or parsed.
    """
    declared = declare_document(path, max_bytes)
    suffix = path.suffix.lower()
    try:
        data = path.read_bytes()
        if declared.type == DocumentType.PDF:
            content = _read_pdf(data)
        elif declared.type == DocumentType.WORD:
            content = _read_docx(data)
        elif suffix == ".csv":
            content = _read_csv(data)
        elif suffix == ".xls":
            content = _read_xls(data)
        elif declared.type == DocumentType.SPREADSHEET:
            content = _read_workbook(data)
        else:
            content = data.decode("utf-8", errors="replace")
    except Exception as e:
        logger.error("Failed to parse %s: %s", path.name, e)
        raise DocumentParseError(path.name, f"{declared.type.value} parsing error: {e}") from e

    return Document(
        name=declared.name,
        content=content.strip(),
        type=declared.type,
        size=declared.size,
        path=path,
    )


def _read_pdf(data: bytes) -> str:
    with pdfplumber.open(io.BytesIO(data)) as pdf:
        pages = [page.extract_text() or "" for page in pdf.pages]
    return "\n\n".join(pages)


def _read_docx(data: bytes) -> str:
    doc = DocxDocument(io.BytesIO(data))
    return "\n".join(p.text for p in doc.paragraphs)


def _row_text(row) -> str:
    return " | ".join(str(cell) for cell in row if cell not in (None, ""))


def _read_workbook(data: bytes) -> str:
    wb = openpyxl.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    parts = []
    try:
        for sheet in wb.worksheets:
            parts.append(f"Sheet: {sheet.title}\n")
            for row in sheet.iter_rows(values_only=True):
                text = _row_text(row)
                if text:
                    parts.append(text)
            parts.append("")
    finally:
        wb.close()
    return "\n".join(parts)


def _xls_cell(value):
    # xlrd returns every number as a float
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _read_xls(data: bytes) -> str:
    book = xlrd.open_workbook(file_contents=data)
    parts = []
    for sheet in book.sheets():
        parts.append(f"Sheet: {sheet.name}\n")
        for index in range(sheet.nrows):
            text = _row_text(_xls_cell(v) for v in sheet.row_values(index))
            if text:
                parts.append(text)
        parts.append("")
    return "\n".join(parts)


def _read_csv(data: bytes) -> str:
    reader = csv.reader(io.StringIO(data.decode("utf-8-sig", errors="replace")))
    return "\n".join(text for text in (_row_text(row) for row in reader) if text)

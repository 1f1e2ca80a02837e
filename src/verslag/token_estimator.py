"""Character-ratio token estimation for text and file descriptors."""

import dataclasses
import math

from .config import Settings
from .models import Document, DocumentType

# ~200 KB of raw PDF per page, ~500 tokens of extractable text per page
PDF_BYTES_PER_PAGE = 200_000
PDF_TOKENS_PER_PAGE = 500
# Word documents are zipped XML; roughly 30% of the bytes are recoverable text
WORD_TEXT_RATIO = 0.3
SPREADSHEET_TOKENS_PER_KB = 50
UNKNOWN_BYTES_PER_TOKEN = 10

TRUNCATION_NOTICE = "\n\n[... Content truncated due to length. Total length: {length} characters ...]"

_DEFAULTS = Settings()


def estimate_tokens(text: str | None, chars_per_token: int = _DEFAULTS.chars_per_token) -> int:
    """Approximate token count of a string. Empty or missing text is 0."""
    if not text:
        return 0
    return math.ceil(len(text) / chars_per_token)


def estimate_file_tokens(size: int, doc_type: DocumentType, settings: Settings | None = None) -> int:
    """Estimate extractable tokens from a file's byte size and type.

    Raw byte size is a poor proxy for text volume, so each format gets its own
    correction factor. Every estimate is capped at the per-document maximum.

    Args:
        size: Declared file size in bytes.
        doc_type: Source format of the file.
        settings: Limits to apply. Defaults to the built-in settings.

    Returns:
        Estimated token count, never above ``settings.max_document_tokens``.
    """
    settings = settings or _DEFAULTS
    size = max(size, 0)
    if doc_type == DocumentType.PDF:
        pages = math.ceil(size / PDF_BYTES_PER_PAGE)
        tokens = pages * PDF_TOKENS_PER_PAGE
    elif doc_type == DocumentType.WORD:
        tokens = math.ceil(size * WORD_TEXT_RATIO / settings.chars_per_token)
    elif doc_type == DocumentType.SPREADSHEET:
        tokens = math.ceil(size / 1024 * SPREADSHEET_TOKENS_PER_KB)
    elif doc_type == DocumentType.TEXT:
        tokens = math.ceil(size / settings.chars_per_token)
    else:
        tokens = math.ceil(size / UNKNOWN_BYTES_PER_TOKEN)
    return min(tokens, settings.max_document_tokens)


def truncate_text(text: str, max_tokens: int, chars_per_token: int = _DEFAULTS.chars_per_token) -> str:
    """Cut text down to ``max_tokens``, appending a truncation notice.

    The notice is counted against the budget, so the estimate of the result
    never exceeds ``max_tokens``.
    """
    max_chars = max(max_tokens, 0) * chars_per_token
    if len(text) <= max_chars:
        return text

    notice = TRUNCATION_NOTICE.format(length=len(text))
    if max_chars <= len(notice):
        return text[:max_chars]
    return text[: max_chars - len(notice)] + notice


def summarize_documents(documents: list[Document], max_tokens: int, chars_per_token: int = _DEFAULTS.chars_per_token) -> list[Document]:
    """Truncate every document above ``max_tokens``; shorter ones pass through unchanged."""
    result = []
    for doc in documents:
        content = doc.content or ""
        tokens = estimate_tokens(content, chars_per_token)
        if tokens <= max_tokens:
            result.append(doc)
            continue
        result.append(
            dataclasses.replace(
                doc,
                content=truncate_text(content, max_tokens, chars_per_token),
                truncated=True,
                original_tokens=tokens,
                original_size=len(content),
            )
        )
    return result


def format_token_count(tokens: int | float) -> str:
    """Human-readable token count, e.g. ``"850 tokens"`` or ``"12.3K tokens"``."""
    if tokens < 1000:
        return f"{int(tokens)} tokens"
    return f"{tokens / 1000:.1f}K tokens"

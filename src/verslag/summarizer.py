"""Recursive LLM summarization of oversized documents."""

import asyncio
import dataclasses
import logging
from collections.abc import Awaitable, Callable

from .config import Settings
from .models import Document
from .prompts import summary_messages
from .token_estimator import estimate_tokens, truncate_text

logger = logging.getLogger(__name__)

# ~3000 tokens per summarization call
MAX_CHUNK_CHARS = 12000
MAX_DEPTH = 3

Dispatch = Callable[[list[dict[str, str]], str], Awaitable[str]]


def split_text(text: str, max_chars: int = MAX_CHUNK_CHARS) -> list[str]:
    """Split text on paragraph boundaries into chunks of at most ``max_chars``.

    A single paragraph longer than ``max_chars`` is cut into fixed-size pieces.
    """
    chunks: list[str] = []
    current = ""
    for para in text.split("\n\n"):
        while len(para) > max_chars:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(para[:max_chars])
            para = para[max_chars:]
        candidate = f"{current}\n\n{para}" if current else para
        if len(candidate) > max_chars:
            chunks.append(current)
            current = para
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks


async def summarize_text(text: str, dispatch: Dispatch, model: str, depth: int = 0) -> str:
    """Summarize text, splitting and re-summarizing until it fits one chunk.

    Args:
        text: Text to condense.
        dispatch: Budget-gated call returning the generated text.
        model: Model to summarize with.
        depth: Current recursion depth.

    Returns:
        The summary. Past MAX_DEPTH the joined summaries are truncated instead.
    """
    if len(text) <= MAX_CHUNK_CHARS:
        return await dispatch(summary_messages(text), model)
    if depth >= MAX_DEPTH:
        return text[:MAX_CHUNK_CHARS]

    chunks = split_text(text)
    logger.debug("Text too long (%d chars), summarizing %d chunks", len(text), len(chunks))
    summaries = await asyncio.gather(*(dispatch(summary_messages(chunk), model) for chunk in chunks))
    return await summarize_text("\n\n".join(summaries), dispatch, model, depth + 1)


async def summarize_document(document: Document, dispatch: Dispatch, settings: Settings) -> Document:
    """Replace an oversized document's content with an LLM summary capped at the per-document maximum."""
    content = document.content or ""
    tokens = estimate_tokens(content, settings.chars_per_token)
    if tokens <= settings.max_document_tokens:
        return document

    summary = await summarize_text(content, dispatch, settings.summary_model)
    summary = truncate_text(summary, settings.max_document_tokens, settings.chars_per_token)
    logger.info(
        "Summarized %s: %d -> %d tokens",
        document.name,
        tokens,
        estimate_tokens(summary, settings.chars_per_token),
    )
    return dataclasses.replace(
        document,
        content=summary,
        is_optimized=True,
        original_tokens=tokens,
        original_size=len(content),
    )

"""Pack documents into a per-call token budget."""

import dataclasses

from .config import Settings
from .models import Document, OptimizedContext
from .token_estimator import estimate_tokens, summarize_documents, truncate_text


def optimize(
    documents: list[Document],
    instruction_text: str,
    max_tokens: int,
    settings: Settings | None = None,
) -> OptimizedContext:
    """Decide which documents fit into a generation call.

    Documents are first capped individually at the per-document maximum, then
    packed in input order: callers express priority by list order. The first
    document that does not fit is either truncated into the remaining budget
    (when more than the partial-inclusion threshold is left) or dropped, and
    every later document is dropped without being tried.

    Args:
        documents: Candidate documents in priority order.
        instruction_text: Section instructions, always sent and counted first.
        max_tokens: Token budget for instructions plus documents.
        settings: Limits to apply. Defaults to the built-in settings.

    Returns:
        The included documents with their token total and inclusion counts.
        Never raises; the result is empty when the instructions alone exceed
        the budget.
    """
    settings = settings or Settings()
    cpt = settings.chars_per_token
    capped = summarize_documents(documents, settings.max_document_tokens, cpt)

    total = estimate_tokens(instruction_text, cpt)
    included: list[Document] = []
    partial = 0

    for doc in capped:
        doc_tokens = estimate_tokens(doc.content, cpt)
        if total + doc_tokens <= max_tokens:
            included.append(doc)
            total += doc_tokens
            continue

        remaining = max_tokens - total
        if remaining > settings.partial_threshold_tokens:
            content = doc.content or ""
            trimmed = dataclasses.replace(
                doc,
                content=truncate_text(content, remaining - settings.partial_margin_tokens, cpt),
                partially_included=True,
                original_tokens=doc.original_tokens or doc_tokens,
                original_size=doc.original_size or len(content),
            )
            included.append(trimmed)
            total += estimate_tokens(trimmed.content, cpt)
            partial = 1
        break

    return OptimizedContext(
        documents=tuple(included),
        total_tokens=total,
        documents_included=len(included) - partial,
        documents_partial=partial,
        documents_skipped=len(documents) - len(included),
    )

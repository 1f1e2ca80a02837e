"""Project the token cost of a whole report run without calling the provider."""

from .config import Settings
from .models import CostBreakdown, Document, Section, SectionEstimate
from .token_estimator import estimate_file_tokens, estimate_tokens


def _files_tokens(documents: tuple[Document, ...] | list[Document], settings: Settings) -> int:
    return sum(estimate_file_tokens(doc.size, doc.type, settings) for doc in documents)


def project(
    sections: list[Section],
    global_documents: list[Document],
    settings: Settings | None = None,
) -> CostBreakdown:
    """Estimate token consumption per stage, mirroring generation order.

    Regular sections are capped at the per-section maximum plus a fixed call
    overhead. Overview sections then get a bounded share of everything
    projected so far, and the final review adds a capped share of the total.

    Args:
        sections: Report sections in display order.
        global_documents: Documents prepended to every section.
        settings: Limits to apply. Defaults to the built-in settings.

    Returns:
        A breakdown with one entry per section and the grand total.
    """
    settings = settings or Settings()
    cpt = settings.chars_per_token

    global_tokens = min(_files_tokens(global_documents, settings), settings.max_global_tokens)
    total = 0

    regular: list[SectionEstimate] = []
    for section in (s for s in sections if not s.overview_mode):
        context = (
            global_tokens
            + _files_tokens(section.documents, settings)
            + estimate_tokens(section.instructions, cpt)
            + estimate_tokens(section.manual_text, cpt)
        )
        tokens = min(context, settings.max_section_tokens) + settings.call_overhead_tokens
        regular.append(SectionEstimate(section.name, tokens, section.id))
        total += tokens

    overview: list[SectionEstimate] = []
    for section in (s for s in sections if s.overview_mode):
        from_sections = int(min(total * settings.overview_context_share, settings.max_overview_context_tokens))
        tokens = (
            from_sections
            + _files_tokens(section.documents, settings)
            + estimate_tokens(section.instructions, cpt)
            + settings.call_overhead_tokens
        )
        overview.append(SectionEstimate(section.name, tokens, section.id))
        total += tokens

    review = int(min(total * settings.review_share, settings.max_review_tokens))
    total += review

    return CostBreakdown(
        global_documents=global_tokens,
        sections=tuple(regular),
        overview_sections=tuple(overview),
        final_review=review,
        total=total,
    )

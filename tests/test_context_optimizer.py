"""Tests for packing documents into a per-call token budget."""

from verslag.config import Settings
from verslag.context_optimizer import optimize
from verslag.models import Document
from verslag.token_estimator import estimate_tokens

INSTRUCTIONS = "y" * 400  # 100 tokens


def _docs(*token_counts: int) -> list[Document]:
    return [Document(name=f"doc{i}.txt", content="x" * (tokens * 4)) for i, tokens in enumerate(token_counts, start=1)]


def test_drops_document_when_remaining_below_threshold():
    result = optimize(_docs(2000, 2000, 2000), INSTRUCTIONS, 4500)
    assert [d.name for d in result.documents] == ["doc1.txt", "doc2.txt"]
    assert result.total_tokens == 4100
    assert result.documents_included == 2
    assert result.documents_partial == 0
    assert result.documents_skipped == 1


def test_partially_includes_document_when_remaining_above_threshold():
    result = optimize(_docs(2000, 2000, 2000), INSTRUCTIONS, 4700)
    assert len(result.documents) == 3
    third = result.documents[2]
    assert third.partially_included
    assert estimate_tokens(third.content) == 500
    assert third.original_tokens == 2000
    assert result.documents_included == 2
    assert result.documents_partial == 1
    assert result.documents_skipped == 0
    assert result.total_tokens == 4600


def test_stops_at_first_overflow():
    # doc3 would fit after doc2 is dropped, but packing stops at doc2
    result = optimize(_docs(1000, 3000, 100), INSTRUCTIONS, 1500)
    assert [d.name for d in result.documents] == ["doc1.txt"]
    assert result.documents_skipped == 2


def test_caps_each_document_before_packing():
    result = optimize(_docs(10_000), "", 8000)
    assert result.documents_included == 1
    assert result.documents[0].truncated
    assert result.total_tokens == 3000


def test_instructions_over_budget_give_empty_result():
    result = optimize(_docs(100, 100), "z" * 4000, 500)
    assert result.documents == ()
    assert result.documents_used == 0
    assert result.documents_skipped == 2


def test_no_documents():
    result = optimize([], INSTRUCTIONS, 1000)
    assert result.total_tokens == 100
    assert result.documents_skipped == 0


def test_total_never_exceeds_budget_plus_margin():
    docs = _docs(1200, 2900, 450, 3500, 800, 5000, 60)
    for max_tokens in range(150, 20_000, 137):
        result = optimize(docs, INSTRUCTIONS, max_tokens)
        assert result.total_tokens <= max_tokens + 100
        assert result.total_tokens == estimate_tokens(INSTRUCTIONS) + sum(
            estimate_tokens(d.content) for d in result.documents
        )


def test_more_budget_never_includes_fewer_documents():
    docs = _docs(700, 2600, 1800, 40, 3100, 900)
    previous = 0
    for max_tokens in range(100, 15_000, 50):
        used = optimize(docs, INSTRUCTIONS, max_tokens).documents_used
        assert used >= previous
        previous = used


def test_same_input_same_output():
    docs = _docs(1500, 2500, 2500)
    assert optimize(docs, INSTRUCTIONS, 5000) == optimize(docs, INSTRUCTIONS, 5000)


def test_respects_custom_thresholds():
    settings = Settings(partial_threshold_tokens=1000, partial_margin_tokens=200)
    result = optimize(_docs(2000, 2000), INSTRUCTIONS, 3000, settings)
    # 900 remaining is not above the 1000 threshold
    assert result.documents_partial == 0
    result = optimize(_docs(2000, 2000), INSTRUCTIONS, 3200, settings)
    assert result.documents_partial == 1
    assert estimate_tokens(result.documents[1].content) == 900

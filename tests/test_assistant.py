"""Tests for section suggestions."""

import pytest

from verslag.assistant import parse_section_suggestions, suggest_sections
from verslag.budget import GenerationSession
from verslag.config import Settings
from verslag.errors import BudgetExceededError
from verslag.llm_client import Completion

REPLY = """Here is a structure for your report:

Section 1: Executive Summary
Instructions: Summarize the key findings
and recommendations in one page.

Section 2: [Market Analysis]
Instructions: Describe market size and competitors.

**Section 3: Outlook**
**Instructions:** Forecast next year's revenue.
"""


def test_parse_section_suggestions():
    sections = parse_section_suggestions(REPLY)
    assert [s.name for s in sections] == ["Executive Summary", "Market Analysis", "Outlook"]
    assert sections[0].instructions == "Summarize the key findings and recommendations in one page."
    assert sections[2].instructions == "Forecast next year's revenue."
    assert len({s.id for s in sections}) == 3


def test_parse_without_sections():
    assert parse_section_suggestions("I need more details about your report.") == []


class ReplyClient:
    def __init__(self, text):
        self.text = text
        self.messages = None

    async def complete(self, messages, model, temperature=None, max_tokens=None):
        self.messages = messages
        return Completion(text=self.text)


@pytest.mark.asyncio
async def test_suggest_sections_records_estimated_usage():
    client = ReplyClient(REPLY)
    session = GenerationSession(model="gpt-4o")
    history = [{"role": "user", "content": "A quarterly sales report"}]

    reply, sections = await suggest_sections(client, history, session)

    assert reply == REPLY
    assert len(sections) == 3
    assert client.messages[0]["role"] == "system"
    assert client.messages[1:] == history
    assert session.guard.spent > 0


@pytest.mark.asyncio
async def test_suggest_sections_respects_budget():
    session = GenerationSession(model="gpt-4o", budget=0.0)
    with pytest.raises(BudgetExceededError):
        await suggest_sections(ReplyClient(REPLY), [], session)


@pytest.mark.asyncio
async def test_suggest_sections_uses_configured_prompt():
    client = ReplyClient(REPLY)
    session = GenerationSession(model="gpt-4o", settings=Settings(assistant_prompt="Suggest at most three sections."))

    await suggest_sections(client, [{"role": "user", "content": "A grant proposal"}], session)

    assert client.messages[0] == {"role": "system", "content": "Suggest at most three sections."}

"""Conversational section suggestions."""

import logging
import re

from .budget import GenerationSession
from .llm_client import CompletionClient
from .models import Section
from .prompts import assistant_messages

logger = logging.getLogger(__name__)

SECTION_LINE = re.compile(r"^\s*\**\s*Section\s+\d+\s*:\s*\**\s*(.+?)\s*\**\s*$", re.IGNORECASE)
INSTRUCTIONS_LINE = re.compile(r"^\s*\**\s*Instructions\s*:\s*\**\s*(.*)$", re.IGNORECASE)


def parse_section_suggestions(text: str) -> list[Section]:
    """Parse ``Section N: <name>`` / ``Instructions: ...`` blocks into sections.

    Instruction lines that continue past the first are joined with spaces.
    Sections without a name are dropped.
    """
    sections: list[Section] = []
    name: str | None = None
    instructions: list[str] = []
    in_instructions = False

    def flush() -> None:
        if name:
            sections.append(Section(name=name, instructions=" ".join(instructions).strip()))

    for line in text.splitlines():
        heading = SECTION_LINE.match(line)
        if heading:
            flush()
            name = heading.group(1).strip().strip("[]")
            instructions = []
            in_instructions = False
            continue
        match = INSTRUCTIONS_LINE.match(line)
        if match and name:
            instructions = [match.group(1).strip()]
            in_instructions = True
        elif in_instructions and line.strip():
            instructions.append(line.strip())
    flush()
    return sections


async def suggest_sections(
    client: CompletionClient,
    history: list[dict[str, str]],
    session: GenerationSession,
) -> tuple[str, list[Section]]:
    """Ask the model for section suggestions.

    Args:
        client: Chat-completion client.
        history: Conversation so far, ending with the user's latest message.
        session: Session whose budget guard gates and records the call.

    Returns:
        The raw reply and the sections parsed from it.

    Raises:
        BudgetExceededError: If the session ceiling is already reached.
        ProviderError: If the call fails.
    """
    settings = session.settings
    text, _, _ = await session.complete(
        client,
        assistant_messages(history, settings.assistant_prompt),
        temperature=settings.assistant_temperature,
        max_tokens=settings.assistant_max_tokens,
    )
    sections = parse_section_suggestions(text)
    logger.info("Assistant suggested %d sections", len(sections))
    return text, sections

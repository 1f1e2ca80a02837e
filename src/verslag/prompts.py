"""System prompts and message builders for every LLM call.

The section, review and assistant prompts are defaults; ``Settings`` carries
the prompts actually sent and a settings file can replace them.
"""

from .models import Document, Section

SECTION_SYSTEM_PROMPT = """\
You are a professional report writer. Generate high-quality, professional content based on
the provided instructions and documents.

Write in a formal, professional tone. Be concise, clear, and data-driven. Focus only on the
information provided in the documents and instructions.\
"""

# Always appended to the section prompt, custom or not
SECTION_FORMAT_BLOCK = """
Write a section titled "{name}".
{previous}
Format: Markdown. Use proper headers (##, ###) but do NOT repeat the section title as an H1.
CITATIONS: If you use information from the provided documents, cite them using [Doc Name] format.\
"""

PREVIOUS_CONTEXT_BLOCK = """
PREVIOUS SECTION CONTEXT (Connect to this):
{context}
"""

REVIEW_SYSTEM_PROMPT = """\
You are a senior editor. Your task is to review and unify a multi-section report to ensure:

1. Consistent tone and writing style throughout
2. No contradictions between sections
3. Smooth transitions between sections
4. Professional language
5. Coherent narrative flow
6. Proper formatting and structure

Make necessary adjustments to create a polished, cohesive final report. Do not add any
information not present in the original sections.\
"""

ASSISTANT_SYSTEM_PROMPT = """\
You are an AI assistant helping users configure report structures. When users describe their
report needs, suggest appropriate sections with clear instructions.

Respond with specific section suggestions in the following format:

Section 1: [Section Name]
Instructions: [Clear instructions for what this section should contain]

Section 2: [Section Name]
Instructions: [Clear instructions for what this section should contain]

And so on...

Be specific and practical. Tailor your suggestions to the type of report the user describes.\
"""

SUMMARY_SYSTEM_PROMPT = "Summarize the following text concisely, capturing key points and metrics."


def section_messages(
    section: Section,
    documents: tuple[Document, ...],
    previous_context: str = "",
    system_prompt: str = SECTION_SYSTEM_PROMPT,
) -> list[dict[str, str]]:
    """Messages for generating one section from its optimized documents."""
    previous = PREVIOUS_CONTEXT_BLOCK.format(context=previous_context) if previous_context else ""
    system = system_prompt.rstrip() + "\n" + SECTION_FORMAT_BLOCK.format(name=section.name, previous=previous)

    user = f"Section Name: {section.name}\n\nInstructions: {section.instructions}\n\n"
    if documents:
        user += "CONTEXT DOCUMENTS:\n"
        for doc in documents:
            user += f"--- {doc.name} ---\n{doc.content or ''}\n\n"

    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user.rstrip()},
    ]


def review_messages(
    title: str,
    sections: list[tuple[str, str]],
    system_prompt: str = REVIEW_SYSTEM_PROMPT,
) -> list[dict[str, str]]:
    """Messages for the final review/unify pass over ``(name, content)`` pairs."""
    user = (
        "Please review and unify the following report sections into a cohesive final report:\n\n"
        f"Report Title: {title or 'Professional Report'}\n"
    )
    for name, content in sections:
        user += f"\n## {name}\n\n{content}\n"
    user += (
        "\n\nPlease provide the complete unified report with all sections, ensuring consistency, "
        "professionalism, and coherent flow. Maintain all the important information from each "
        "section while improving overall quality and readability."
    )
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user},
    ]


def summary_messages(text: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
        {"role": "user", "content": text},
    ]


def assistant_messages(
    history: list[dict[str, str]],
    system_prompt: str = ASSISTANT_SYSTEM_PROMPT,
) -> list[dict[str, str]]:
    return [{"role": "system", "content": system_prompt}, *history]


def prompt_text(messages: list[dict[str, str]]) -> str:
    """Concatenated message contents, used to estimate usage the provider did not report."""
    return "\n".join(m["content"] for m in messages)

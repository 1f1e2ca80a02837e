"""Markdown assembly of completed sections and Word export."""

import re
from pathlib import Path

from docx import Document as DocxDocument

from .models import GenerationRecord, Section, SectionStatus

BOLD_PATTERN = re.compile(r"(\*\*.+?\*\*)")
HEADING_PATTERN = re.compile(r"^(#{1,3})\s+(.*)$")


def assemble_markdown(
    title: str,
    sections: list[Section],
    records: dict[str, GenerationRecord],
) -> str:
    """Join completed sections into one Markdown document in display order.

    Args:
        title: Report title, rendered as the H1.
        sections: Sections in display order.
        records: Generation records keyed by section id.

    Returns:
        Markdown text. Sections that did not complete are left out.
    """
    parts = [f"# {title}", ""]
    for section in sections:
        record = records.get(section.id)
        if record is None or record.status != SectionStatus.COMPLETE or not record.content:
            continue
        parts.append(f"## {section.name}")
        parts.append("")
        parts.append(record.content.strip())
        parts.append("")  # blank line after each section
    return "\n".join(parts)


def write_markdown(text: str, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(text, encoding="utf-8")


def default_filename(title: str, suffix: str = ".docx") -> str:
    """File name derived from the title, non-alphanumerics replaced by ``_``."""
    stem = re.sub(r"[^a-zA-Z0-9]", "_", title) or "report"
    return f"{stem}{suffix}"


def _add_runs(paragraph, text: str) -> None:
    """Add text to a paragraph, turning ``**bold**`` spans into bold runs."""
    for part in BOLD_PATTERN.split(text):
        if not part:
            continue
        if part.startswith("**") and part.endswith("**") and len(part) > 4:
            paragraph.add_run(part[2:-2]).bold = True
        else:
            paragraph.add_run(part)


def export_docx(text: str, title: str, output_path: Path) -> Path:
    """Write Markdown-ish report text to a .docx file.

    ``#`` to ``###`` lines become headings 1-3, ``- `` lines become bullets,
    every other non-blank line becomes a body paragraph.

    Args:
        text: Report text, typically the merged review output.
        title: Report title, written in the Title style.
        output_path: Destination .docx path.

    Returns:
        The path written.
    """
    doc = DocxDocument()
    doc.add_heading(title, level=0)

    for line in text.splitlines():
        line = line.rstrip()
        if not line.strip():
            continue
        heading = HEADING_PATTERN.match(line)
        if heading:
            doc.add_heading(heading.group(2).strip(), level=len(heading.group(1)))
        elif line.lstrip().startswith(("- ", "* ")):
            _add_runs(doc.add_paragraph(style="List Bullet"), line.lstrip()[2:])
        else:
            _add_runs(doc.add_paragraph(), line)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    doc.save(str(output_path))
    return output_path

"""Tests for Markdown assembly and Word export."""

from docx import Document as DocxDocument

from verslag.exporter import assemble_markdown, default_filename, export_docx, write_markdown
from verslag.models import GenerationRecord, Section, SectionStatus


def test_assemble_markdown_only_completed_sections():
    intro = Section(name="Intro")
    broken = Section(name="Broken")
    outro = Section(name="Outro")
    records = {
        intro.id: GenerationRecord(intro.id, "Intro", SectionStatus.COMPLETE, content="Hello.\n"),
        broken.id: GenerationRecord(broken.id, "Broken", SectionStatus.ERROR, error="boom"),
        outro.id: GenerationRecord(outro.id, "Outro", SectionStatus.COMPLETE, content="Bye."),
    }

    text = assemble_markdown("Report", [intro, broken, outro], records)

    assert text == "# Report\n\n## Intro\n\nHello.\n\n## Outro\n\nBye.\n"


def test_write_markdown_creates_parent_dirs(tmp_path):
    path = tmp_path / "out" / "report.md"
    write_markdown("# Report", path)
    assert path.read_text(encoding="utf-8") == "# Report"


def test_default_filename():
    assert default_filename("Q3 Report: Sales") == "Q3_Report__Sales.docx"
    assert default_filename("Q3", ".md") == "Q3.md"


def test_export_docx_structure(tmp_path):
    text = (
        "# Overview\n"
        "Revenue grew by **12%** this year.\n"
        "\n"
        "## Details\n"
        "- First point\n"
        "- Second **bold** point\n"
        "### Notes\n"
        "Closing line.\n"
    )
    path = export_docx(text, "Annual Report", tmp_path / "report.docx")

    doc = DocxDocument(str(path))
    paragraphs = [(p.style.name, p.text) for p in doc.paragraphs]
    assert paragraphs == [
        ("Title", "Annual Report"),
        ("Heading 1", "Overview"),
        ("Normal", "Revenue grew by 12% this year."),
        ("Heading 2", "Details"),
        ("List Bullet", "First point"),
        ("List Bullet", "Second bold point"),
        ("Heading 3", "Notes"),
        ("Normal", "Closing line."),
    ]
    bold_runs = [r.text for p in doc.paragraphs for r in p.runs if r.bold]
    assert bold_runs == ["12%", "bold"]

"""Local JSON persistence of the report layout and chat history."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from .models import Document, DocumentType, Section

logger = logging.getLogger(__name__)

DEFAULT_STATE_FILE = Path("verslag.json")


@dataclass
class ReportState:
    """What survives between CLI invocations.

    Document content, global documents and session cost are never stored;
    documents are kept as file references and ingested again at run time.
    """

    title: str = "Report"
    sections: list[Section] = field(default_factory=list)
    chat_history: list[dict[str, str]] = field(default_factory=list)


def _document_to_dict(doc: Document) -> dict:
    return {
        "name": doc.name,
        "path": str(doc.path) if doc.path else None,
        "size": doc.size,
        "type": doc.type.value,
    }


def _document_from_dict(data: dict) -> Document:
    return Document(
        name=data["name"],
        type=DocumentType(data.get("type", DocumentType.TEXT.value)),
        size=int(data.get("size", 0)),
        path=Path(data["path"]) if data.get("path") else None,
    )


def _section_to_dict(section: Section) -> dict:
    return {
        "id": section.id,
        "name": section.name,
        "instructions": section.instructions,
        "manual_text": section.manual_text,
        "overview_mode": section.overview_mode,
        "documents": [_document_to_dict(d) for d in section.documents],
    }


def _section_from_dict(data: dict) -> Section:
    kwargs = {"id": data["id"]} if data.get("id") else {}
    return Section(
        name=data["name"],
        instructions=data.get("instructions", ""),
        manual_text=data.get("manual_text", ""),
        overview_mode=bool(data.get("overview_mode", False)),
        documents=tuple(_document_from_dict(d) for d in data.get("documents", [])),
        **kwargs,
    )


def load_state(path: Path = DEFAULT_STATE_FILE) -> ReportState:
    """Read saved state; a missing, unreadable or corrupt file gives an empty state."""
    if not path.exists():
        return ReportState()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return ReportState(
            title=data.get("title") or "Report",
            sections=[_section_from_dict(s) for s in data.get("sections", [])],
            chat_history=list(data.get("chat_history", [])),
        )
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
        logger.warning("Could not load state from %s, starting fresh: %s", path, e)
        return ReportState()


def save_state(state: ReportState, path: Path = DEFAULT_STATE_FILE) -> bool:
    """Write state to disk. Failures are logged, not raised.

    Returns:
        True if the file was written.
    """
    data = {
        "title": state.title,
        "sections": [_section_to_dict(s) for s in state.sections],
        "chat_history": state.chat_history,
    }
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as e:
        logger.warning("Could not save state to %s: %s", path, e)
        return False
    return True

"""Data model: documents, sections, optimized contexts, cost breakdowns and run records."""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .errors import ErrorKind


class DocumentType(Enum):
    PDF = "pdf"
    WORD = "docx"
    SPREADSHEET = "spreadsheet"
    TEXT = "text"
    UNKNOWN = "unknown"

    @classmethod
    def from_filename(cls, name: str) -> "DocumentType":
        """Classify a file by its extension."""
        suffix = Path(name).suffix.lower()
        return EXTENSION_TYPES.get(suffix, cls.UNKNOWN)


EXTENSION_TYPES: dict[str, DocumentType] = {
    ".pdf": DocumentType.PDF,
    ".docx": DocumentType.WORD,
    ".txt": DocumentType.TEXT,
    ".md": DocumentType.TEXT,
    ".json": DocumentType.TEXT,
    ".xlsx": DocumentType.SPREADSHEET,
    ".xls": DocumentType.SPREADSHEET,
    ".csv": DocumentType.SPREADSHEET,
}


@dataclass(frozen=True)
class Document:
    """A named unit of source text.

    ``content`` is exactly what will be transmitted; ``None`` means the file has
    been declared but not ingested yet. ``original_tokens`` and
    ``original_size`` only record pre-truncation values for display.
    """

    name: str
    content: str | None = None
    type: DocumentType = DocumentType.TEXT
    size: int = 0
    path: Path | None = None
    truncated: bool = False
    partially_included: bool = False
    is_optimized: bool = False
    original_tokens: int | None = None
    original_size: int | None = None

    @property
    def loaded(self) -> bool:
        return self.content is not None


def _new_section_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Section:
    """One named unit of a report.

    The id is fixed at creation and keys every per-section map downstream.
    Edit a section with ``dataclasses.replace`` to keep its id.
    """

    name: str
    instructions: str = ""
    documents: tuple[Document, ...] = ()
    manual_text: str = ""
    overview_mode: bool = False
    id: str = field(default_factory=_new_section_id)

    def __post_init__(self):
        object.__setattr__(self, "documents", tuple(self.documents))


@dataclass(frozen=True)
class OptimizedContext:
    """Budget-respecting subset of documents for a single generation call."""

    documents: tuple[Document, ...]
    total_tokens: int
    documents_included: int
    documents_partial: int
    documents_skipped: int

    @property
    def documents_used(self) -> int:
        return self.documents_included + self.documents_partial


@dataclass(frozen=True)
class SectionEstimate:
    name: str
    tokens: int
    section_id: str = ""


@dataclass(frozen=True)
class CostBreakdown:
    """Projected token consumption of a whole report run."""

    global_documents: int = 0
    sections: tuple[SectionEstimate, ...] = ()
    overview_sections: tuple[SectionEstimate, ...] = ()
    final_review: int = 0
    total: int = 0


class SectionStatus(Enum):
    QUEUED = "queued"
    GENERATING = "generating"
    COMPLETE = "complete"
    ERROR = "error"
    PAUSED = "paused"

    @property
    def terminal(self) -> bool:
        return self in (SectionStatus.COMPLETE, SectionStatus.ERROR)


class RunState(Enum):
    IDLE = "idle"
    GENERATING = "generating"
    PAUSED = "paused"
    COMPLETE = "complete"
    CANCELLED = "cancelled"
    ERROR = "error"


@dataclass
class GenerationRecord:
    """Per-section generation state, mutated only by the orchestrator."""

    section_id: str
    name: str
    status: SectionStatus = SectionStatus.QUEUED
    content: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    warnings: list[str] = field(default_factory=list)
    tokens_used: int = 0
    usage_estimated: bool = False
    context: OptimizedContext | None = None


@dataclass
class RunResult:
    state: RunState
    records: dict[str, GenerationRecord]
    merged: str | None = None
    review_error: str | None = None
    session_cost: float = 0.0

    @property
    def failed(self) -> list[GenerationRecord]:
        return [r for r in self.records.values() if r.status == SectionStatus.ERROR]

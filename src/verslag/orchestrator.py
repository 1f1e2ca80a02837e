"""Staged report generation: regular sections, then overview sections, then review."""

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from types import MappingProxyType

from .budget import GenerationSession
from .context_optimizer import optimize
from .errors import ReviewFailedError, SectionValidationError, VerslagError
from .ingest import load_document
from .llm_client import CompletionClient
from .models import (
    Document,
    GenerationRecord,
    RunResult,
    RunState,
    Section,
    SectionStatus,
)
from .prompts import review_messages, section_messages
from .summarizer import summarize_document
from .token_estimator import estimate_tokens, format_token_count, truncate_text

logger = logging.getLogger(__name__)

MANUAL_INPUT_NAME = "Manual Input"


def validate_sections(sections: list[Section]) -> None:
    """Reject runs with no sections, unnamed sections or duplicate ids."""
    if not sections:
        raise SectionValidationError("No sections to generate")
    seen: set[str] = set()
    for index, section in enumerate(sections, start=1):
        if not section.name.strip():
            raise SectionValidationError(f"All sections must have a name (section {index} is empty)")
        if section.id in seen:
            raise SectionValidationError(f"Duplicate section id: {section.id}")
        seen.add(section.id)


class GenerationOrchestrator:
    """Drive one report run and own its per-section records.

    Regular sections are generated in batches sized by the model's concurrency
    window; overview sections start only after every regular section is
    complete or failed, and the review pass only after all sections are.
    Pause and cancel take effect between batches; in-flight calls always
    finish. A failing section is recorded and the run moves on.
    """

    def __init__(
        self,
        session: GenerationSession,
        client: CompletionClient,
        loader: Callable[[Path], Document] = load_document,
        on_update: Callable[[GenerationRecord], None] | None = None,
    ):
        self.session = session
        self.client = client
        self.loader = loader
        self.on_update = on_update
        self.state = RunState.IDLE
        self._records: dict[str, GenerationRecord] = {}
        self._sections: list[Section] = []
        self._global_documents: list[Document] = []
        self._resume = asyncio.Event()
        self._resume.set()
        self._cancelled = False

    @property
    def settings(self):
        return self.session.settings

    @property
    def records(self) -> Mapping[str, GenerationRecord]:
        return MappingProxyType(self._records)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def pause(self) -> None:
        if self.state == RunState.GENERATING:
            self._resume.clear()
            self.state = RunState.PAUSED
            logger.info("Generation paused")

    def resume(self) -> None:
        if self.state == RunState.PAUSED:
            self.state = RunState.GENERATING
            self._resume.set()
            logger.info("Generation resumed")

    def cancel(self) -> None:
        self._cancelled = True
        self._resume.set()
        logger.info("Generation cancelled; completed sections are kept")

    async def run(
        self,
        sections: list[Section],
        global_documents: Iterable[Document] = (),
        title: str = "Report",
        review: bool = True,
    ) -> RunResult:
        """Generate every section, then optionally merge them in a review pass.

        Args:
            sections: Report sections in display order.
            global_documents: Documents prepended to every section's context.
            title: Report title passed to the review pass.
            review: Whether to run the final review/unify stage.

        Returns:
            Final run state, every section record and the merged report, if any.

        Raises:
            SectionValidationError: If the sections are empty, unnamed or
                share ids. Nothing is dispatched in that case.
        """
        validate_sections(sections)
        self._sections = list(sections)
        self._records = {s.id: GenerationRecord(s.id, s.name) for s in sections}
        self._cancelled = False
        self._resume.set()
        self.state = RunState.GENERATING

        warnings: list[str] = []
        self._global_documents = await self._load_documents(global_documents, warnings)
        for warning in warnings:
            logger.warning("Global document skipped: %s", warning)

        regular = [s for s in sections if not s.overview_mode]
        overview = [s for s in sections if s.overview_mode]
        await self._generate_stage(regular)
        await self._generate_stage(overview)

        # A pause during the last batch holds the run before review and finish
        await self._wait_while_paused()
        has_content = any(r.status == SectionStatus.COMPLETE for r in self._records.values())
        if self._cancelled:
            self.state = RunState.CANCELLED
            return self._result()

        merged = None
        review_error = None
        if review and has_content:
            try:
                merged = await self.review(title)
            except ReviewFailedError as e:
                logger.error("%s", e)
                review_error = str(e)

        if not has_content:
            logger.error("No section was generated")
            self.state = RunState.ERROR
        else:
            self.state = RunState.ERROR if review_error else RunState.COMPLETE
        return self._result(merged, review_error)

    async def retry_section(self, section_id: str) -> GenerationRecord:
        """Generate a failed section again without touching any other record."""
        section = self._find(section_id)
        record = self._records[section_id]
        if record.status != SectionStatus.ERROR:
            raise SectionValidationError(f"Section {section.name!r} has not failed ({record.status.value})")
        await self._generate_section(section)
        return record

    async def regenerate_section(self, section_id: str) -> GenerationRecord:
        """Generate a completed section again without touching any other record."""
        section = self._find(section_id)
        record = self._records[section_id]
        if record.status != SectionStatus.COMPLETE:
            raise SectionValidationError(f"Section {section.name!r} is not complete ({record.status.value})")
        await self._generate_section(section)
        return record

    async def review(self, title: str) -> str:
        """Merge every completed section into one unified report.

        All or nothing: there is no partial merge.

        Raises:
            ReviewFailedError: If nothing is complete or the review call fails.
        """
        completed = []
        for section in self._sections:
            record = self._records[section.id]
            if record.status == SectionStatus.COMPLETE and record.content:
                completed.append((section.name, record.content))
        if not completed:
            raise ReviewFailedError(SectionValidationError("No completed sections to review"))

        cpt = self.settings.chars_per_token
        total = sum(estimate_tokens(content, cpt) for _, content in completed)
        if total > self.settings.max_review_tokens:
            share = self.settings.max_review_tokens // len(completed)
            completed = [(name, truncate_text(content, share, cpt)) for name, content in completed]

        messages = review_messages(title, completed, self.settings.review_prompt)
        logger.info("Reviewing %d sections", len(completed))
        try:
            text, _, _ = await self.session.complete(
                self.client,
                messages,
                temperature=self.settings.review_temperature,
                max_tokens=self.settings.review_max_tokens,
            )
        except VerslagError as e:
            raise ReviewFailedError(e) from e
        return text

    async def _generate_stage(self, sections: list[Section]) -> None:
        window = self.settings.concurrency_for(self.session.model)
        for start in range(0, len(sections), window):
            batch = sections[start : start + window]
            if not await self._checkpoint(batch):
                return
            await asyncio.gather(*(self._generate_section(s) for s in batch))

    async def _checkpoint(self, batch: list[Section]) -> bool:
        """Wait while paused; False once the run is cancelled."""
        if not self._resume.is_set():
            for section in batch:
                self._set_status(self._records[section.id], SectionStatus.PAUSED)
            await self._wait_while_paused()
            for section in batch:
                record = self._records[section.id]
                if record.status == SectionStatus.PAUSED:
                    self._set_status(record, SectionStatus.QUEUED)
        return not self._cancelled

    async def _wait_while_paused(self) -> None:
        if not self._resume.is_set():
            logger.debug("Waiting for resume or cancel")
            await self._resume.wait()

    async def _generate_section(self, section: Section) -> None:
        record = self._records[section.id]
        record.content = None
        record.error = None
        record.error_kind = None
        record.warnings = []
        self._set_status(record, SectionStatus.GENERATING)

        try:
            documents = list(self._global_documents)
            documents += await self._load_documents(section.documents, record.warnings)
            if section.manual_text.strip():
                documents.append(Document(name=MANUAL_INPUT_NAME, content=section.manual_text))

            context = optimize(documents, section.instructions, self.settings.max_section_tokens, self.settings)
            record.context = context
            logger.info(
                "Section %r: %s (%d/%d docs)",
                section.name,
                format_token_count(context.total_tokens),
                context.documents_used,
                len(documents),
            )
            if context.documents_skipped or context.documents_partial:
                logger.warning(
                    "Section %r: %d documents skipped, %d partially included due to token limits",
                    section.name,
                    context.documents_skipped,
                    context.documents_partial,
                )

            previous = self._overview_context(section) if section.overview_mode else ""
            messages = section_messages(section, context.documents, previous, self.settings.section_prompt)
            text, tokens, estimated = await self.session.complete(
                self.client,
                messages,
                temperature=self.settings.section_temperature,
                max_tokens=self.settings.section_max_tokens,
            )
        except VerslagError as e:
            logger.warning("Section %r failed: %s", section.name, e)
            record.error = str(e)
            record.error_kind = e.kind
            self._set_status(record, SectionStatus.ERROR)
            return

        record.content = text
        record.tokens_used = tokens
        record.usage_estimated = estimated
        self._set_status(record, SectionStatus.COMPLETE)

    async def _load_documents(self, documents: Iterable[Document], warnings: list[str]) -> list[Document]:
        """Ingest pending documents, skipping any that fail, and summarize if enabled."""
        loaded = []
        for doc in documents:
            if not doc.loaded:
                if doc.path is None:
                    warnings.append(f"{doc.name}: no content")
                    continue
                try:
                    doc = await asyncio.to_thread(self.loader, doc.path)
                except VerslagError as e:
                    logger.warning("Skipping document %s: %s", doc.name, e)
                    warnings.append(str(e))
                    continue
            if self.settings.summarize_oversized:
                try:
                    doc = await summarize_document(doc, self._summary_call, self.settings)
                except VerslagError as e:
                    logger.warning("Summarizing %s failed, falling back to truncation: %s", doc.name, e)
                    warnings.append(f"{doc.name}: summary failed ({e})")
            loaded.append(doc)
        return loaded

    def _overview_context(self, section: Section) -> str:
        """Previews of completed regular sections, for overview sections."""
        limit = self.settings.overview_preview_chars
        parts = []
        for other in self._sections:
            if other.overview_mode or other.id == section.id:
                continue
            record = self._records[other.id]
            if record.status != SectionStatus.COMPLETE or not record.content:
                continue
            preview = record.content[:limit]
            if len(record.content) > limit:
                preview += "..."
            parts.append(f"## {other.name}\n{preview}")
        return truncate_text(
            "\n\n".join(parts),
            self.settings.max_overview_context_tokens,
            self.settings.chars_per_token,
        )

    async def _summary_call(self, messages: list[dict[str, str]], model: str) -> str:
        text, _, _ = await self.session.complete(self.client, messages, model=model)
        return text

    def _find(self, section_id: str) -> Section:
        for section in self._sections:
            if section.id == section_id:
                return section
        raise SectionValidationError(f"Unknown section id: {section_id}")

    def _set_status(self, record: GenerationRecord, status: SectionStatus) -> None:
        record.status = status
        if self.on_update is not None:
            self.on_update(record)

    def _result(self, merged: str | None = None, review_error: str | None = None) -> RunResult:
        return RunResult(
            state=self.state,
            records=dict(self._records),
            merged=merged,
            review_error=review_error,
            session_cost=self.session.guard.spent,
        )

"""CLI entry point for Verslag."""

import asyncio
import dataclasses
import logging
import signal
import sys
from pathlib import Path

import click
from dotenv import load_dotenv

load_dotenv()
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from .assistant import suggest_sections
from .budget import GenerationSession
from .config import DEFAULT_MODEL, Settings, load_pricing_file, load_settings_file
from .cost_estimator import check_rate_limits, estimate_cost
from .errors import ErrorKind, SectionValidationError, VerslagError
from .exporter import assemble_markdown, default_filename, export_docx, write_markdown
from .ingest import declare_document
from .llm_client import LLMClient, validate_api_key
from .models import Document, GenerationRecord, RunResult, RunState, Section
from .orchestrator import GenerationOrchestrator
from .projector import project
from .state_store import DEFAULT_STATE_FILE, ReportState, load_state, save_state
from .token_estimator import format_token_count

console = Console()
logger = logging.getLogger(__name__)

ERROR_HINTS = {
    ErrorKind.INPUT: "fix your input",
    ErrorKind.BUDGET: "raise your budget",
    ErrorKind.TRANSIENT: "retry, the provider had a transient issue",
    ErrorKind.REJECTED: "the provider rejected this content",
    ErrorKind.PARSE: "check the document",
}

api_key_option = click.option("--api-key", envvar="OPENAI_API_KEY", help="OpenAI API key.")
model_option = click.option("--model", envvar="VERSLAG_MODEL", default=DEFAULT_MODEL, show_default=True, help="Model ID.")
budget_option = click.option(
    "--budget", envvar="VERSLAG_MAX_BUDGET", type=float, default=5.0, show_default=True, help="Maximum spend in USD."
)
pricing_option = click.option(
    "--pricing-file",
    envvar="VERSLAG_PRICING_FILE",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON price/rate table overriding the built-in prices.",
)
settings_option = click.option(
    "--settings-file",
    envvar="VERSLAG_SETTINGS_FILE",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON file with custom system prompts and prices.",
)
global_doc_option = click.option(
    "--global-doc",
    "global_docs",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Document added to every section's context.",
)


def _fail(message: str) -> None:
    console.print(f"[red]{message}[/red]")
    sys.exit(1)


def _settings(pricing_file: Path | None, settings_file: Path | None = None, **overrides) -> Settings:
    settings = load_settings_file(settings_file) if settings_file else Settings()
    if pricing_file:
        overrides["pricing"] = load_pricing_file(pricing_file, settings.pricing)
    return dataclasses.replace(settings, **overrides)


def _declare(paths: tuple[Path, ...], settings: Settings | None = None) -> list[Document]:
    max_bytes = (settings or Settings()).max_upload_bytes
    return [declare_document(path, max_bytes) for path in paths]


@click.group()
@click.option(
    "--state-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_STATE_FILE,
    show_default=True,
    help="Where the report layout is stored.",
)
@click.option("--verbose", is_flag=True, help="Show debug logging.")
@click.pass_context
def main(ctx: click.Context, state_file: Path, verbose: bool) -> None:
    """Generate multi-section reports from your documents with an LLM."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    ctx.obj = state_file


@main.command()
@click.argument("title")
@click.pass_obj
def init(state_file: Path, title: str) -> None:
    """Set the report TITLE, keeping any existing sections."""
    state = load_state(state_file)
    state.title = title
    save_state(state, state_file)
    console.print(f"Report [bold]{title}[/bold] ({len(state.sections)} sections) saved to {state_file}")


@main.command("add-section")
@click.argument("name")
@click.option("--instructions", default="", help="What this section should contain.")
@click.option(
    "--doc",
    "docs",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Source document for this section.",
)
@click.option("--manual-text", default="", help="Free text added to the section's context.")
@click.option("--overview", is_flag=True, help="Generate after all other sections, using them as context.")
@click.pass_obj
def add_section(
    state_file: Path,
    name: str,
    instructions: str,
    docs: tuple[Path, ...],
    manual_text: str,
    overview: bool,
) -> None:
    """Append a section called NAME to the report."""
    try:
        if not name.strip():
            raise SectionValidationError("Section name must not be empty")
        documents = _declare(docs)
    except VerslagError as e:
        _fail(str(e))

    state = load_state(state_file)
    state.sections.append(
        Section(
            name=name.strip(),
            instructions=instructions,
            documents=documents,
            manual_text=manual_text,
            overview_mode=overview,
        )
    )
    save_state(state, state_file)
    kind = "overview section" if overview else "section"
    console.print(f"Added {kind} [bold]{name}[/bold] with {len(documents)} documents.")


def _print_breakdown(state: ReportState, global_docs: list[Document], model: str, settings: Settings):
    breakdown = project(state.sections, global_docs, settings)

    table = Table(title=f"Projected usage: {state.title}")
    table.add_column("Stage")
    table.add_column("Item")
    table.add_column("Tokens", justify="right")
    if global_docs:
        table.add_row("Global", f"{len(global_docs)} documents", format_token_count(breakdown.global_documents))
    for est in breakdown.sections:
        table.add_row("Section", est.name, format_token_count(est.tokens))
    for est in breakdown.overview_sections:
        table.add_row("Overview", est.name, format_token_count(est.tokens))
    table.add_row("Review", "Final review", format_token_count(breakdown.final_review))
    table.add_row("[bold]Total[/bold]", "", f"[bold]{format_token_count(breakdown.total)}[/bold]")
    console.print(table)

    cost = estimate_cost(breakdown.total, model, settings.pricing, settings.output_ratio)
    console.print(
        f"Estimated cost on {model}: [bold]${cost.total_cost:.2f}[/bold] "
        f"(input ${cost.input_cost:.2f}, output ${cost.output_cost:.2f})"
    )
    limits = check_rate_limits(breakdown.total, model, settings.pricing)
    if not limits.within_limit:
        console.print(
            f"[yellow]Projected {limits.tokens} tokens is {limits.percentage}% of the "
            f"{limits.limit} tokens/minute limit; generation may be rate limited.[/yellow]"
        )
    return breakdown, cost


@main.command()
@global_doc_option
@model_option
@pricing_option
@settings_option
@click.pass_obj
def estimate(
    state_file: Path,
    global_docs: tuple[Path, ...],
    model: str,
    pricing_file: Path | None,
    settings_file: Path | None,
) -> None:
    """Project token usage and cost without calling the provider."""
    state = load_state(state_file)
    if not state.sections:
        _fail("No sections defined. Use 'verslag add-section' first.")
    try:
        settings = _settings(pricing_file, settings_file)
        _print_breakdown(state, _declare(global_docs, settings), model, settings)
    except VerslagError as e:
        _fail(str(e))


@main.command()
@global_doc_option
@click.option("--output", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Output .docx path.")
@click.option("--no-review", is_flag=True, help="Skip the final review pass and write Markdown.")
@click.option("--sequential", is_flag=True, help="Generate one section at a time.")
@click.option("--summarize", is_flag=True, help="Summarize oversized documents instead of truncating them.")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
@api_key_option
@model_option
@budget_option
@pricing_option
@settings_option
@click.pass_obj
def generate(
    state_file: Path,
    global_docs: tuple[Path, ...],
    output: Path | None,
    no_review: bool,
    sequential: bool,
    summarize: bool,
    yes: bool,
    api_key: str | None,
    model: str,
    budget: float,
    pricing_file: Path | None,
    settings_file: Path | None,
) -> None:
    """Generate every section and write the report."""
    state = load_state(state_file)
    if not state.sections:
        _fail("No sections defined. Use 'verslag add-section' first.")

    try:
        api_key = validate_api_key(api_key)
        settings = _settings(pricing_file, settings_file, sequential=sequential, summarize_oversized=summarize)
        documents = _declare(global_docs, settings)
        _, cost = _print_breakdown(state, documents, model, settings)
    except VerslagError as e:
        _fail(str(e))

    if cost.total_cost > budget:
        console.print(f"[yellow]Estimated cost exceeds the ${budget:.2f} budget; generation stops once it is spent.[/yellow]")
    if not yes and not click.confirm("Proceed with generation?"):
        return

    session = GenerationSession(model=model, settings=settings, budget=budget)
    result = asyncio.run(_generate(state, documents, session, LLMClient(api_key), not no_review))

    for record in result.failed:
        hint = ERROR_HINTS.get(record.error_kind, "")
        console.print(f"[red]Section {record.name!r} failed: {record.error}[/red] [dim]({hint})[/dim]")
    for record in result.records.values():
        for warning in record.warnings:
            console.print(f"[yellow]{record.name}: {warning}[/yellow]")
    if result.review_error:
        console.print(f"[red]{result.review_error}[/red]")
    if result.state == RunState.CANCELLED:
        console.print("[yellow]Generation cancelled. Completed sections are kept.[/yellow]")

    output = output or Path(default_filename(state.title))
    if result.merged:
        export_docx(result.merged, state.title, output)
        console.print(f"Report written to [bold]{output}[/bold]")
    elif result.failed and len(result.failed) == len(result.records):
        console.print("[red]No sections were generated.[/red]")
    else:
        md_path = output.with_suffix(".md")
        write_markdown(assemble_markdown(state.title, state.sections, result.records), md_path)
        console.print(f"Completed sections written to [bold]{md_path}[/bold]")

    console.print(f"\nTotal cost: [bold]${result.session_cost:.4f}[/bold]")


async def _generate(
    state: ReportState,
    global_docs: list[Document],
    session: GenerationSession,
    client: LLMClient,
    review: bool,
) -> RunResult:
    """Run the orchestrator with a progress bar; Ctrl-C cancels between batches."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Generating sections...", total=len(state.sections))

        def on_update(record: GenerationRecord) -> None:
            progress.update(task, description=f"{record.name}: {record.status.value}")
            if record.status.terminal:
                progress.advance(task)

        orchestrator = GenerationOrchestrator(session, client, on_update=on_update)
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, orchestrator.cancel)
        except NotImplementedError:
            logger.debug("Signal handlers unsupported; Ctrl-C will abort immediately")

        try:
            result = await orchestrator.run(state.sections, global_docs, title=state.title, review=review)
        finally:
            try:
                loop.remove_signal_handler(signal.SIGINT)
            except NotImplementedError:
                pass
    return result


@main.command()
@click.argument("description")
@click.option("--apply", is_flag=True, help="Append the suggested sections to the report.")
@api_key_option
@model_option
@budget_option
@settings_option
@click.pass_obj
def suggest(
    state_file: Path,
    description: str,
    apply: bool,
    api_key: str | None,
    model: str,
    budget: float,
    settings_file: Path | None,
) -> None:
    """Ask the assistant to suggest sections for a report described by DESCRIPTION."""
    state = load_state(state_file)
    history = [*state.chat_history, {"role": "user", "content": description}]
    try:
        session = GenerationSession(model=model, settings=_settings(None, settings_file), budget=budget)
        client = LLMClient(api_key)
        reply, sections = asyncio.run(suggest_sections(client, history, session))
    except VerslagError as e:
        _fail(str(e))

    console.print(reply)
    state.chat_history = [*history, {"role": "assistant", "content": reply}]
    if apply:
        state.sections.extend(sections)
        console.print(f"\nAdded [bold]{len(sections)}[/bold] sections.")
    save_state(state, state_file)


if __name__ == "__main__":
    main()

# -*- coding: utf-8 -*-
import logging
import os
from pathlib import Path
import typing as t

import click
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.text import Text

from notion_broker.actions import deliver_submission
from notion_broker.client import BrokerClient
from orchestrator.utils import console, err_console, expand_syllabus_paths
from planner.models import SubmissionRecord
from planner.session import WorkingSession
from settings import load_settings
from settings.log import configure_logging
from syllabus_server.batch import UploadedSyllabus, parse_uploads
from syllabus_server.errors import PipelineError
from syllabus_server.extraction import OpenAICompleter

logger = logging.getLogger(__name__)


def truncate_title(title: str, max_length: int = 45) -> str:
    """Truncate title to max_length characters, adding ellipsis if needed."""
    if len(title) <= max_length:
        return title
    return title[:max_length-3] + "..."


def create_submission_table(records: list[SubmissionRecord]) -> Table:
    """Create a summary table for the records about to be sent."""
    table = Table(title="📚 Submission Records", show_header=True, header_style="bold magenta")
    table.add_column("#", style="dim", width=4)
    table.add_column("Course", style="cyan")
    table.add_column("Title", style="white")
    table.add_column("Due", style="yellow")
    table.add_column("Weight", style="green")
    table.add_column("Type")

    for idx, record in enumerate(records, 1):
        table.add_row(
            str(idx),
            truncate_title(record.course, 20),
            truncate_title(record.title),
            record.due_date or "-",
            record.weight or "-",
            record.type or "-",
        )
    return table


def parse_files(paths: list[str], session: WorkingSession) -> None:
    """Parse syllabus files one at a time into the session."""
    settings = load_settings()
    settings.require("llm_api_key")
    completer = OpenAICompleter(api_key=settings.llm_api_key, model=settings.llm_model,
                                base_url=settings.llm_base_url)

    results = []
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True
    ) as progress:
        parse_task = progress.add_task("Parsing syllabi...", total=len(paths))

        for path in paths:
            name = os.path.basename(path)
            progress.update(parse_task, description=f"Parsing {name}...")
            upload = UploadedSyllabus(file_name=name, content=Path(path).read_bytes())
            [parsed] = parse_uploads([upload], completer)
            marker = "[red]✗[/red]" if parsed.is_placeholder else "[green]✓[/green]"
            console.print(f"   {marker} {path} ({len(parsed.assignments)} assignments)")
            results.append(parsed)
            progress.update(parse_task, advance=1)

    session.load(results)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("paths", nargs=-1, type=click.Path(exists=True))
@click.option("--semester-start", help="Semester start date (YYYY-MM-DD) for expanding recurring due dates.")
@click.option("--semester-end", help="Semester end date (YYYY-MM-DD).")
@click.option("--session-file", type=click.Path(dir_okay=False),
              help="Load the working set from this JSON file when no PATHS are given; always save it back.")
@click.option("--send", is_flag=True, help="Send the records to Notion.")
@click.option("--user-id", help="Integration broker user id with a connected Notion account.")
@click.option("--database-name", help="Name of the Notion database to create.")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
def main(
        paths: tuple[str, ...],
        semester_start: t.Optional[str],
        semester_end: t.Optional[str],
        session_file: t.Optional[str],
        send: bool,
        user_id: t.Optional[str],
        database_name: t.Optional[str],
        verbose: bool,
) -> None:
    """Extract assignments from syllabi and send them to a Notion tracker.

    PATHS: Syllabus PDF/DOCX files or directories containing them.
    """
    configure_logging(verbose, console=err_console)

    if send and not user_id:
        raise click.UsageError("--send requires --user-id")

    try:
        if paths:
            session = WorkingSession()
            files = expand_syllabus_paths(paths)
            console.print(
                Panel.fit(
                    f"[bold blue]📚 Syllabus → Notion[/bold blue]\n"
                    f"Processing [bold]{len(files)}[/bold] syllabus file(s)",
                    border_style="blue"
                )
            )
            if semester_start and semester_end:
                session.set_semester_range(semester_start, semester_end)
            parse_files(files, session)
        elif session_file and Path(session_file).is_file():
            session = WorkingSession.from_json(Path(session_file).read_text(encoding="utf-8"))
            if semester_start and semester_end:
                session.set_semester_range(semester_start, semester_end)
        else:
            raise click.UsageError("Provide one or more syllabus files, or an existing --session-file.")
    except ValueError as e:
        raise click.BadParameter(str(e))
    except PipelineError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    if session_file:
        Path(session_file).write_text(session.to_json(), encoding="utf-8")
        logger.info("Saved working set to %s", session_file)

    records = session.build_submission()
    if records:
        console.print(create_submission_table(records))
    else:
        console.print("[yellow]No assignments found.[/yellow]")

    if not send or not records:
        return

    settings = load_settings()
    try:
        settings.require("composio_api_key")
        broker = BrokerClient(api_key=settings.composio_api_key, base_url=settings.composio_base_url)
        with console.status("[bold green]Creating Notion database..."):
            report = deliver_submission(broker, user_id, records, settings.tool_version, database_name)
    except PipelineError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    stats_text = Text()
    stats_text.append("Created: ", style="white")
    stats_text.append(f"{report.created}", style="bold green")
    stats_text.append("\nFailed: ", style="white")
    stats_text.append(f"{report.failed}", style="bold red" if report.failed else "bold green")
    if report.database_url:
        stats_text.append(f"\n{report.database_url}", style="blue underline")
    console.print(Panel(stats_text, title="📊 " + report.message, border_style="green"))

    if session_file:
        # Delivered; the working set is no longer needed
        session.clear()
        Path(session_file).write_text(session.to_json(), encoding="utf-8")


if __name__ == "__main__":
    main()

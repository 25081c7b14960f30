# src/browsertrace/cli.py
"""
browsertrace Command Line Interface (CLI).

Terminal access to the collected training data, built on `typer` and `rich`.
Collection itself happens in-process through :class:`TraceCollector`; the
CLI only reads the durable logs, exports them, and builds preference pairs
on demand.

Usage
-----
    # Show counts of sessions, SFT examples and preference pairs
    $ browsertrace stats

    # Export SFT examples as an Alpaca-style JSON array
    $ browsertrace export ./dataset

    # List recorded sessions, then compare two attempts at the same task
    $ browsertrace sessions
    $ browsertrace compare 3f2a... 9c41... --reason "reached pricing page directly"
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from browsertrace.core.errors import TraceError
from browsertrace.core.storage import TraceStore
from browsertrace.export import export_alpaca
from browsertrace.synthesis.preference import compare_pair

load_dotenv()

app = typer.Typer(
    help="browsertrace: turn recorded browser-agent sessions into training data.",
    rich_markup_mode="markdown",
)
console = Console()

DataDirOption = Annotated[
    Path | None,
    typer.Option(
        "--data-dir",
        "-d",
        file_okay=False,
        help="Data directory (defaults to BROWSERTRACE_DATA_DIR or ./training-data).",
    ),
]


def _store(data_dir: Path | None) -> TraceStore:
    return TraceStore(data_dir)


def _fail(title: str, exc: Exception) -> typer.Exit:
    console.print(f"\n[bold red]❌ {title}:[/bold red] {escape(str(exc))}")
    return typer.Exit(code=1)


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #


@app.command()  # type: ignore[misc]
def stats(data_dir: DataDirOption = None) -> None:
    """Show how much training data has been collected."""
    store = _store(data_dir)
    counts = store.stats()

    table = Table(title="Training Data Stats")
    table.add_column("Log", style="cyan")
    table.add_column("Entries", justify="right", style="bold")
    table.add_row("Session traces", str(counts.traces))
    table.add_row("SFT examples", str(counts.sft_examples))
    table.add_row("Preference pairs", str(counts.preference_pairs))

    console.print(table)
    console.print(f"[dim]Data location: {store.base_dir}[/dim]")


@app.command()  # type: ignore[misc]
def export(
    output_dir: Annotated[
        Path,
        typer.Argument(file_okay=False, help="Directory that receives train.json."),
    ] = Path("export"),
    data_dir: DataDirOption = None,
) -> None:
    """Export SFT examples to `<OUTPUT_DIR>/train.json` (Alpaca format)."""
    try:
        path = export_alpaca(_store(data_dir), output_dir)
    except TraceError as e:
        raise _fail("Export Error", e) from e

    console.print(
        Panel(
            f"Saved to: [link=file://{path.resolve()}]{path}[/link]",
            title="Export",
            border_style="green",
        )
    )


@app.command()  # type: ignore[misc]
def sessions(data_dir: DataDirOption = None) -> None:
    """List closed sessions recorded in the session log."""
    table = Table(title="Sessions")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Task")
    table.add_column("Success", justify="center")
    table.add_column("Actions", justify="right")
    table.add_column("Rating", justify="right")

    for s in _store(data_dir).iter_sessions():
        table.add_row(
            s.id,
            escape(s.task),
            "[green]✓[/green]" if s.success else "[red]✗[/red]",
            str(len(s.actions)),
            str(s.human_rating) if s.human_rating is not None else "-",
        )
    console.print(table)


@app.command()  # type: ignore[misc]
def compare(
    better_id: Annotated[str, typer.Argument(help="Session id of the better attempt.")],
    worse_id: Annotated[str, typer.Argument(help="Session id of the worse attempt.")],
    reason: Annotated[
        str, typer.Option("--reason", "-r", help="Why the first session is better.")
    ],
    strict: Annotated[
        bool,
        typer.Option("--strict/--no-strict", help="Fail instead of writing an empty pair."),
    ] = False,
    data_dir: DataDirOption = None,
) -> None:
    """Build a preference pair from two recorded sessions."""
    store = _store(data_dir)
    try:
        better = store.load_session(better_id)
        worse = store.load_session(worse_id)
        pair = compare_pair(store, better, worse, reason, strict=strict)
    except TraceError as e:
        raise _fail("Compare Error", e) from e

    if pair.is_degenerate:
        console.print(
            f"[bold yellow]⚠️ No divergence found; wrote empty pair {pair.id}[/bold yellow]"
        )
        return

    console.print(
        f"[bold green]✅ Wrote {pair.id}[/bold green] "
        f"(diverges at action {pair.metadata.divergence_index})"
    )
    console.print(Panel(escape(pair.chosen), title="Chosen", border_style="green"))
    console.print(Panel(escape(pair.rejected), title="Rejected", border_style="red"))


if __name__ == "__main__":
    app()

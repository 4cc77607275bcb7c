# display.py
# All terminal output for the Cog CLI.
#
# This module owns presentation entirely. Other modules log through the
# standard logging tree; configure_logging() routes it through rich.
#
# Colour language:
#   cyan    manifest / routing
#   green   PASSED
#   yellow  FAILED
#   red     ERROR

import json
import logging

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from goldcast_cog.models import CogManifest, Outcome, RunStepResponse, StepRecord

console = Console()

_OUTCOME_COLOURS = {
    Outcome.PASSED: "green",
    Outcome.FAILED: "yellow",
    Outcome.ERROR: "red",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _mono(value: str, max_len: int = 120) -> str:
    if len(value) > max_len:
        return value[:max_len] + "…"
    return value


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


def manifest(cog: CogManifest) -> None:
    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]{cog.label}[/bold cyan] [dim]{cog.name} v{cog.version}[/dim]\n"
            f"[dim]Auth fields:[/dim] [white]{', '.join(f.key for f in cog.auth_fields)}[/white]",
            border_style="cyan",
            padding=(1, 4),
        )
    )

    table = Table(box=box.SIMPLE_HEAVY, border_style="cyan", show_lines=False)
    table.add_column("Step", style="bold white", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Fields", style="dim")
    table.add_column("Expression", style="cyan")

    for definition in cog.step_definitions:
        table.add_row(
            definition.step_id,
            definition.name,
            ", ".join(f.key for f in definition.expected_fields),
            _mono(definition.expression, 80),
        )
    console.print(table)


# ---------------------------------------------------------------------------
# Step results
# ---------------------------------------------------------------------------


def _record_table(record: StepRecord) -> Table:
    table = Table(box=box.MINIMAL, title=f"{record.name} [dim]({record.id})[/dim]", title_justify="left")
    table.add_column("Field", style="dim")
    table.add_column("Value", style="white")
    for key, value in (record.key_value or {}).items():
        rendered = value if isinstance(value, str) else json.dumps(value, default=str)
        table.add_row(escape(key), escape(_mono(rendered)))
    return table


def step_result(step_id: str, response: RunStepResponse, show_records: bool = True) -> None:
    colour = _OUTCOME_COLOURS[response.outcome]
    console.print()
    console.print(
        Panel(
            f"[white]{escape(response.rendered_message())}[/white]",
            title=_label(f"{step_id}: {response.outcome.name}", colour),
            border_style=colour,
            padding=(0, 2),
        )
    )
    if not show_records:
        return
    # Both records wrap the same snapshot; print the base one only.
    for record in response.records[:1]:
        if record.key_value is not None:
            console.print(_record_table(record))


def no_match(sentence: str) -> None:
    console.print()
    console.print(_label("NO MATCH", "red"), f"[red] No step matches:[/red] [white]{escape(sentence)}[/white]")

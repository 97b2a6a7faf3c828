"""CLI entry point for the Trellis pipeline engine.

Provides ``validate``, ``render``, ``court`` and ``history`` sub-commands using
Click and Rich for output formatting.

Usage::

    trellis validate pipeline.yaml --strict
    trellis render pipeline.yaml --format dot
    trellis court responses.json --case-id C01 --confidence 0.7 --classification product_bug
    trellis history .trellis/states
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from trellis.court.config import CourtConfig
from trellis.court.dialectic import DialecticConfig, run_dialectic
from trellis.court.responder import ResponderError, ScriptedResponder
from trellis.court.runner import run_court
from trellis.framework.dsl import (
    ValidationLevel,
    has_errors,
    load_pipeline_file,
    validate_pipeline_def,
)
from trellis.framework.errors import FrameworkError
from trellis.framework.events import WalkEventEmitter, log_event
from trellis.framework.narrate import NarrationObserver
from trellis.framework.render import render_dot, render_mermaid
from trellis.framework.state import list_states, load_state, save_state

console = Console()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


@click.group()
@click.version_option(package_name="trellis")
def main() -> None:
    """Trellis - graph-based agent pipeline orchestration."""


@main.command()
@click.argument("pipeline_yaml", type=click.Path(exists=True))
@click.option("--strict", is_flag=True, help="Treat warnings as errors.")
def validate(pipeline_yaml: str, strict: bool) -> None:
    """Validate a pipeline YAML file without executing it."""
    try:
        definition = load_pipeline_file(pipeline_yaml)
    except FrameworkError as exc:
        console.print(f"[red]Failed to parse pipeline:[/red] {exc}")
        raise SystemExit(1) from exc

    findings = validate_pipeline_def(definition)

    if not findings:
        console.print("[green]Pipeline is valid.[/green]")
        return

    table = Table(title="Validation Results")
    table.add_column("Level", style="bold")
    table.add_column("Location")
    table.add_column("Message")

    for f in findings:
        level_style = "red" if f.level == ValidationLevel.ERROR else "yellow"
        location = f.node_name or ""
        if f.edge_id:
            location = f"edge {f.edge_id}"
        table.add_row(f"[{level_style}]{f.level.value}[/{level_style}]", location, f.message)

    console.print(table)

    if has_errors(findings) or (strict and findings):
        raise SystemExit(1)


@main.command()
@click.argument("pipeline_yaml", type=click.Path(exists=True))
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["mermaid", "dot"]),
    default="mermaid",
    show_default=True,
    help="Output format.",
)
def render(pipeline_yaml: str, output_format: str) -> None:
    """Render a pipeline YAML file as a Mermaid or DOT graph."""
    try:
        definition = load_pipeline_file(pipeline_yaml)
    except FrameworkError as exc:
        console.print(f"[red]Failed to parse pipeline:[/red] {exc}")
        raise SystemExit(1) from exc

    output = render_dot(definition) if output_format == "dot" else render_mermaid(definition)
    click.echo(output, nl=False)


@main.command()
@click.argument("responses_json", type=click.Path(exists=True))
@click.option("--case-id", required=True, help="Identifier of the case under review.")
@click.option(
    "--confidence",
    type=click.FloatRange(0.0, 1.0),
    required=True,
    help="Upstream confidence in the classification.",
)
@click.option("--classification", required=True, help="Upstream classification.")
@click.option("--max-remands", type=int, default=2, show_default=True)
@click.option("--max-handoffs", type=int, default=6, show_default=True)
@click.option("--max-rounds", type=int, default=3, show_default=True, help="Hearing round cap.")
@click.option("--dialectic", is_flag=True, help="Use the dialectic vocabulary and pipeline.")
@click.option(
    "--state-out",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory to save the walker state to.",
)
@click.option("--narrate", is_flag=True, help="Print a line per node as the walk progresses.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def court(
    responses_json: str,
    case_id: str,
    confidence: float,
    classification: str,
    max_remands: int,
    max_handoffs: int,
    max_rounds: int,
    dialectic: bool,
    state_out: str | None,
    narrate: bool,
    verbose: bool,
) -> None:
    """Run an adversarial review from scripted responses.

    RESPONSES_JSON maps each step name to a payload or a list of
    payloads replayed in order.
    """
    _setup_logging(verbose)

    try:
        responder = ScriptedResponder.from_file(responses_json)
    except ResponderError as exc:
        console.print(f"[red]Failed to load responses:[/red] {exc}")
        raise SystemExit(1) from exc

    emitter = WalkEventEmitter()
    emitter.on_any(log_event)
    if narrate:
        emitter.on_any(
            NarrationObserver(sink=lambda line: console.print(line, markup=False, highlight=False))
        )

    try:
        if dialectic:
            cfg = DialecticConfig(
                enabled=True,
                max_turns=max_handoffs,
                max_negations=max_remands,
                max_rounds=max_rounds,
            )
            result = asyncio.run(
                run_dialectic(
                    cfg, case_id, confidence, classification, responder, event_emitter=emitter
                )
            )
        else:
            cfg = CourtConfig(
                enabled=True,
                max_handoffs=max_handoffs,
                max_remands=max_remands,
                max_hearing_rounds=max_rounds,
            )
            result = asyncio.run(
                run_court(
                    cfg, case_id, confidence, classification, responder, event_emitter=emitter
                )
            )
    except FrameworkError as exc:
        console.print(f"[red]Review failed:[/red] {exc}")
        raise SystemExit(1) from exc

    if not result.activated:
        console.print(
            f"[yellow]Review not activated:[/yellow] confidence {confidence:.2f} "
            "is outside the activation band."
        )
        return

    table = Table(title=f"Review of case {case_id}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key, value in result.to_dict().items():
        table.add_row(key, str(value))
    console.print(table)

    if state_out and result.state is not None:
        path = save_state(result.state, state_out)
        console.print(f"Walker state saved to [bold]{path}[/bold]")


@main.command()
@click.argument("state_path", type=click.Path(exists=True))
def history(state_path: str) -> None:
    """Print the step history of a saved walker state.

    STATE_PATH is a state file or a directory, in which case the newest
    state file in it is used.
    """
    path = Path(state_path)
    if path.is_dir():
        states = list_states(path)
        if not states:
            console.print(f"[red]No walker states in {path}[/red]")
            raise SystemExit(1)
        path = states[0]

    try:
        state = load_state(path)
    except (OSError, ValueError, KeyError, TypeError) as exc:
        console.print(f"[red]Failed to load walker state from {path}:[/red] {exc}")
        raise SystemExit(1) from exc

    table = Table(title=f"Walk {state.id} ({state.status})")
    table.add_column("#", justify="right")
    table.add_column("Node", style="cyan")
    table.add_column("Edge")
    table.add_column("Timestamp")
    for i, step in enumerate(state.history, 1):
        table.add_row(str(i), step.node, step.edge_id, step.timestamp)
    console.print(table)


if __name__ == "__main__":
    main()

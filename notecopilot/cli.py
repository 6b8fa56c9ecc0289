"""CLI entry point for notecopilot."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from notecopilot.assistant import Assistant
from notecopilot.config import AssistantConfig, load_config
from notecopilot.config.loader import DEFAULT_CONFIG_TEMPLATE, PROJECT_CONFIG_NAME
from notecopilot.context import TRANSFORM_DESCRIPTIONS, TRANSFORM_NAMES, TRANSFORM_TYPES
from notecopilot.edits import EditCommand, ExecutionResult, generate_preview, parse_edit_commands
from notecopilot.llm import LLMError, ProviderManager
from notecopilot.logging_config import configure_logging
from notecopilot.note import NoteController
from notecopilot.telemetry import TelemetryManager

app = typer.Typer(
    name="notecopilot",
    help="LLM writing assistant that edits Markdown notes through structured commands.",
)

config_app = typer.Typer(help="Manage notecopilot configuration.")
app.add_typer(config_app, name="config")

console = Console()

# Global state
_config: AssistantConfig | None = None


def _get_config() -> AssistantConfig:
    if _config is None:
        return load_config()
    return _config


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Path to notecopilot.yaml")
    ] = None,
) -> None:
    """Global options."""
    global _config
    try:
        _config = load_config(config)
    except ValueError as e:
        rprint(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    configure_logging(_config.log_level, _config.log_format)


def _commands_table(commands: list[EditCommand], results: list[ExecutionResult] | None = None) -> Table:
    table = Table(title=f"Edit commands ({len(commands)})")
    table.add_column("#", justify="right")
    table.add_column("Action", style="cyan")
    table.add_column("Preview")
    if results is not None:
        table.add_column("Result")
    for i, command in enumerate(commands):
        row = [str(i + 1), command.action, escape(generate_preview(command))]
        if results is not None:
            if i < len(results):
                r = results[i]
                status = "[green]ok[/green]" if r.success else "[red]failed[/red]"
                row.append(f"{status} {escape(r.message)}")
            else:
                row.append("[dim]skipped[/dim]")
        table.add_row(*row)
    return table


@app.command()
def ask(
    note: Path = typer.Argument(..., help="Markdown note to work on"),
    message: str = typer.Argument(..., help="Request for the assistant"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Apply edits in memory but don't write the file"),
    no_apply: bool = typer.Option(False, "--no-apply", help="Only show the proposed edits"),
    no_context: bool = typer.Option(False, "--no-context", help="Don't send the note content"),
    transform: list[str] = typer.Option(
        [], "--transform", "-t", help="Restructure the note with a framework (repeatable, see `transforms`)"
    ),
) -> None:
    """Send one request about NOTE and apply the returned edits."""
    cfg = _get_config()
    if not note.is_file():
        rprint(f"[red]Error:[/red] {note} is not a file")
        raise typer.Exit(1)
    unknown = sorted(set(transform).difference(TRANSFORM_TYPES))
    if unknown:
        rprint(f"[red]Error:[/red] Unknown transform(s): {', '.join(unknown)}")
        rprint(f"Available: {', '.join(TRANSFORM_TYPES)}")
        raise typer.Exit(1)

    notes = NoteController()
    try:
        notes.open_file(note)
    except (OSError, UnicodeDecodeError) as e:
        rprint(f"[red]Error:[/red] Cannot read {note}: {escape(str(e))}")
        raise typer.Exit(1)
    telemetry = TelemetryManager()
    telemetry.init()
    assistant = Assistant(cfg, notes, telemetry=telemetry)

    try:
        turn = asyncio.run(
            assistant.chat(
                message,
                include_context=False if no_context else None,
                apply_edits=not no_apply,
                on_chunk=lambda text: console.out(text, end="", highlight=False),
                transforms=transform,
            )
        )
    except LLMError as e:
        rprint(f"\n[red]Error:[/red] {escape(e.message)}")
        raise typer.Exit(1)
    console.out("")

    if not turn.commands:
        return
    rprint(_commands_table(turn.commands, None if no_apply else turn.results))
    if no_apply:
        return
    if dry_run:
        rprint("[yellow](dry run: note not written)[/yellow]")
        return
    if any(r.success for r in turn.results):
        try:
            path = notes.save()
        except OSError as e:
            rprint(f"[red]Error:[/red] Cannot write {note}: {escape(str(e))}")
            raise typer.Exit(1)
        rprint(f"[green]Saved:[/green] {path}")
    if not turn.applied:
        raise typer.Exit(1)


@app.command()
def transforms() -> None:
    """List the document transforms available to `ask --transform`."""
    table = Table(title="Transforms")
    table.add_column("Key", style="cyan")
    table.add_column("Name")
    table.add_column("Description")
    for key in TRANSFORM_TYPES:
        table.add_row(key, TRANSFORM_NAMES[key], TRANSFORM_DESCRIPTIONS[key])
    rprint(table)


@app.command()
def parse(
    file: Path = typer.Argument(..., help="File holding a saved assistant reply"),
) -> None:
    """Show the edit commands contained in a saved reply."""
    if not file.is_file():
        rprint(f"[red]Error:[/red] {file} is not a file")
        raise typer.Exit(1)
    try:
        reply = file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        rprint(f"[red]Error:[/red] Cannot read {file}: {escape(str(e))}")
        raise typer.Exit(1)
    commands = parse_edit_commands(reply)
    if not commands:
        rprint("[yellow]No edit commands found.[/yellow]")
        return
    rprint(_commands_table(commands))


@app.command()
def providers() -> None:
    """Show which providers are configured and which one is active."""
    cfg = _get_config()
    manager = ProviderManager(cfg)
    table = Table(title="Providers")
    table.add_column("Provider", style="cyan")
    table.add_column("Model")
    table.add_column("Configured")
    table.add_column("Active")
    for name, status in manager.providers_status().items():
        provider = manager.get_provider(name)
        table.add_row(
            provider.display_name,
            provider.model_id,
            "[green]yes[/green]" if status["configured"] else "[red]no[/red]",
            "*" if status["active"] else "",
        )
    rprint(table)


@app.command("test-connection")
def test_connection(
    provider: str | None = typer.Option(None, "--provider", "-p", help="Provider to test"),
    force: bool = typer.Option(False, "--force", help="Ignore the cached connection state"),
) -> None:
    """Check that the provider answers."""
    cfg = _get_config()
    manager = ProviderManager(cfg)

    if provider is not None:
        result = asyncio.run(manager.test_provider_connection(provider))
        ok, detail = result.success, result.message
        label = provider
    else:
        state = asyncio.run(manager.check_connection(force_refresh=force))
        ok, detail = state.is_connected, state.last_error or "Connection successful"
        label = manager.provider_display_name

    style = "green" if ok else "red"
    rprint(Panel(escape(detail), title=escape(label), border_style=style))
    if not ok:
        raise typer.Exit(1)


@config_app.command("show")
def config_show() -> None:
    """Show current resolved configuration."""
    cfg = _get_config()
    rprint(Syntax(yaml.dump(cfg.model_dump(), default_flow_style=False), "yaml"))


@config_app.command("init")
def config_init(
    path: Path = typer.Option(Path(PROJECT_CONFIG_NAME), "--path", help="Where to write the config"),
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
) -> None:
    """Create a default notecopilot.yaml."""
    if path.exists() and not force:
        rprint(f"[yellow]{path} already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    path.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(f"[green]Created[/green] {path}")

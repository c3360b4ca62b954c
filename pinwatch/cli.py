"""
Pinwatch CLI - keep protected keys of JSON state files pinned.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from .catalog import DEFAULT_PROTECTED_KEYS
from .daemon.cli import daemon_app
from .daemon.snapshot import capture
from .locator import locate_from_settings
from .settings import get_settings

# Setup
app = typer.Typer(
    name="pinwatch",
    help="Keep selected keys of JSON state files pinned to their captured values",
    add_completion=False,
)
app.add_typer(daemon_app, name="daemon")
console = Console()


def configure_logging():
    """Configure logging based on settings."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


# Configure logging on module import
configure_logging()


@app.command()
def keys():
    """List the protected key catalog."""
    settings = get_settings()
    rules = {key.name: key.rule.value for key in DEFAULT_PROTECTED_KEYS}

    table = Table(title="Protected keys")
    table.add_column("Key", style="cyan")
    table.add_column("Value rule", style="dim")
    for name in settings.protected_keys:
        table.add_row(name, rules.get(name, "-"))
    console.print(table)


@app.command()
def locate():
    """List the tracked files the locator finds."""
    tracked = locate_from_settings(get_settings())
    if not tracked:
        console.print("[yellow]No tracked files found[/yellow]")
        raise typer.Exit(code=1)
    for path in tracked:
        console.print(str(path))


@app.command()
def snapshot(
    files: Optional[List[Path]] = typer.Option(
        None, "--file", "-f", help="Tracked file (repeatable, overrides the locator)"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show the protected values that would be captured and enforced."""
    settings = get_settings()
    tracked = locate_from_settings(settings, files or [])
    store = capture(tracked, settings.protected_keys)

    if json_output:
        console.print_json(json.dumps(store.to_dict()))
        return

    if not store:
        console.print("[yellow]Nothing to capture: no readable tracked files[/yellow]")
        raise typer.Exit(code=1)

    table = Table(title="Snapshot")
    table.add_column("File", style="cyan")
    table.add_column("Key")
    table.add_column("Value", style="green")
    for path, values in store.to_dict().items():
        if not values:
            table.add_row(path, "[dim]-[/dim]", "[dim]no protected keys[/dim]")
        for key, value in values.items():
            table.add_row(path, key, json.dumps(value, ensure_ascii=False))
    console.print(table)


if __name__ == "__main__":
    app()

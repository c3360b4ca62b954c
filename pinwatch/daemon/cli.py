"""
Daemon CLI interface for Pinwatch.

This module provides command-line interface for daemon operations:
- Starting the daemon in the foreground or background
- Stopping a background daemon through its PID file
- Checking daemon status
"""

import json
import logging
import os
import signal
import sys
from pathlib import Path
from typing import List, Optional

import psutil
import typer
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from ..locator import locate_from_settings
from ..settings import get_settings
from .loop import PinwatchDaemon
from .types import DaemonConfig


daemon_app = typer.Typer(help="Pinwatch daemon commands for watching and restoring tracked files")
console = Console()
logger = logging.getLogger(__name__)


@daemon_app.command("start")
def start_daemon(
    files: Optional[List[Path]] = typer.Option(None, "--file", "-f", help="Tracked file (repeatable, overrides the locator)"),
    keys: Optional[List[str]] = typer.Option(None, "--key", "-k", help="Protected key (repeatable, overrides settings)"),
    daemonize: bool = typer.Option(False, "--daemon", "-d", help="Run as background daemon"),
    pid_file: Optional[Path] = typer.Option(None, "--pid-file", help="PID file path"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Log file path"),
):
    """Start the Pinwatch daemon."""
    settings = get_settings()
    pid_file = pid_file or settings.pid_file

    try:
        setup_daemon_logging(log_file, settings.log_level)

        running_pid = read_running_pid(pid_file) if pid_file else None
        if running_pid is not None:
            console.print(f"[red]Daemon already running with PID: {running_pid}[/red]")
            raise typer.Exit(1)

        tracked = locate_from_settings(settings, files or [])
        if not tracked:
            console.print("[red]Error: no tracked files found[/red]")
            raise typer.Exit(1)

        daemon_config = DaemonConfig.from_settings(settings, tracked)
        if keys:
            daemon_config.protected_keys = list(keys)

        config_issues = daemon_config.validate()
        if config_issues:
            console.print("[red]Configuration errors:[/red]")
            for issue in config_issues:
                console.print(f"  - {issue}")
            raise typer.Exit(1)

        daemon = PinwatchDaemon(daemon_config)

        if daemonize:
            start_daemon_background(daemon, pid_file)
        else:
            start_daemon_foreground(daemon, pid_file)

    except typer.Exit:
        raise
    except KeyboardInterrupt:
        console.print("\n[yellow]Daemon startup interrupted[/yellow]")
        raise typer.Exit(130)
    except Exception as e:
        console.print(f"[red]Failed to start daemon: {e}[/red]")
        raise typer.Exit(1)


@daemon_app.command("stop")
def stop_daemon(
    pid_file: Optional[Path] = typer.Option(None, "--pid-file", help="PID file path"),
    timeout: int = typer.Option(30, "--timeout", help="Shutdown timeout in seconds"),
):
    """Stop the Pinwatch daemon."""
    pid_file = pid_file or get_settings().pid_file
    if pid_file and pid_file.exists():
        stop_daemon_by_pid_file(pid_file, timeout)
    else:
        console.print("[yellow]No PID file specified or found. Use Ctrl+C if daemon is running in foreground.[/yellow]")


@daemon_app.command("status")
def daemon_status(
    pid_file: Optional[Path] = typer.Option(None, "--pid-file", help="PID file path"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Check daemon status."""
    pid_file = pid_file or get_settings().pid_file
    pid = read_running_pid(pid_file) if pid_file else None
    status_info = {
        "state": "running" if pid is not None else "stopped",
        "pid": pid,
        "pid_file": str(pid_file) if pid_file else None,
    }

    if json_output:
        console.print(json.dumps(status_info, indent=2))
    else:
        display_daemon_status(status_info)


def start_daemon_foreground(daemon: PinwatchDaemon, pid_file: Optional[Path] = None):
    """Start daemon in foreground mode."""
    console.print("[green]Starting daemon in foreground mode...[/green]")
    console.print("[dim]Press Ctrl+C to stop[/dim]")

    if pid_file:
        write_pid_file(pid_file, os.getpid())
    try:
        daemon.run_forever()
    finally:
        if pid_file:
            pid_file.unlink(missing_ok=True)
        console.print("[green]Daemon stopped[/green]")


def start_daemon_background(daemon: PinwatchDaemon, pid_file: Optional[Path]):
    """Start daemon in background mode."""
    console.print("[green]Starting daemon in background mode...[/green]")

    pid = os.fork()
    if pid > 0:
        # Parent process
        if pid_file:
            write_pid_file(pid_file, pid)
        console.print(f"[green]Daemon started with PID: {pid}[/green]")
        return

    # Child process continues as daemon
    os.setsid()
    os._exit(run_detached(daemon, pid_file))


def run_detached(daemon: PinwatchDaemon, pid_file: Optional[Path]) -> int:
    """Run the daemon in the forked child and return its exit status."""
    exit_code = 0
    try:
        daemon.run_forever()
    except Exception:
        logger.exception("Daemon failed")
        exit_code = 1
    finally:
        if pid_file:
            pid_file.unlink(missing_ok=True)
    return exit_code


def write_pid_file(pid_file: Path, pid: int) -> None:
    pid_file.parent.mkdir(parents=True, exist_ok=True)
    pid_file.write_text(str(pid))


def read_running_pid(pid_file: Path) -> Optional[int]:
    """PID recorded in *pid_file* if that process is still alive, else None."""
    try:
        pid = int(pid_file.read_text().strip())
    except (OSError, ValueError):
        return None
    if pid != os.getpid() and psutil.pid_exists(pid):
        return pid
    return None


def stop_daemon_by_pid_file(pid_file: Path, timeout: int):
    """Stop daemon using PID file."""
    try:
        pid = int(pid_file.read_text().strip())
        console.print(f"[yellow]Stopping daemon with PID: {pid}[/yellow]")

        process = psutil.Process(pid)
        process.send_signal(signal.SIGTERM)

        try:
            process.wait(timeout=timeout)
            console.print("[green]Daemon stopped gracefully[/green]")
        except psutil.TimeoutExpired:
            console.print("[yellow]Forcing daemon shutdown...[/yellow]")
            process.kill()
            console.print("[green]Daemon force stopped[/green]")
        pid_file.unlink(missing_ok=True)

    except FileNotFoundError:
        console.print("[yellow]PID file not found[/yellow]")
    except psutil.NoSuchProcess:
        console.print("[yellow]Daemon process not found[/yellow]")
        pid_file.unlink(missing_ok=True)
    except ValueError:
        console.print("[red]Invalid PID in file[/red]")
        raise typer.Exit(1)


def display_daemon_status(status: dict):
    """Display daemon status in a formatted way."""
    state = status.get("state", "unknown")
    state_color = {
        "running": "green",
        "stopped": "red",
    }.get(state, "white")

    status_text = Text(f"Daemon Status: {state.upper()}", style=state_color)
    console.print(Panel(status_text))
    if status.get("pid") is not None:
        console.print(f"  PID: {status['pid']}")
    if status.get("pid_file"):
        console.print(f"  PID file: {status['pid_file']}")


def setup_daemon_logging(log_file: Optional[Path] = None, level: str = "INFO"):
    """Setup logging for daemon operations."""
    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    handlers = [logging.StreamHandler(sys.stdout)]

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=log_format,
        handlers=handlers,
        force=True,
    )

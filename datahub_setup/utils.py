"""Shared utility functions for the DataHub setup tool.

Provides blocking command execution, Rich-based progress reporting, and the
port helpers used by the config collector to find and free a busy database
port.
"""

from __future__ import annotations

import os
import signal
import subprocess

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.table import Table

console = Console()
err_console = Console(stderr=True)

# ---------------------------------------------------------------------------
# Command execution
# ---------------------------------------------------------------------------


def run_command(
    cmd: list[str],
    timeout: int = 10,
) -> tuple[int, str, str]:
    """Run a command and capture its output.

    Args:
        cmd: List of arguments; no shell is involved.
        timeout: Maximum wall-clock seconds before the process is killed.

    Returns:
        A ``(returncode, stdout, stderr)`` tuple.  A timeout is reported as
        return code ``-1`` with an explanatory stderr string.

    Raises:
        FileNotFoundError: If the executable does not exist.
    """
    try:
        completed = subprocess.run(
            cmd,
            capture_output=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        return (-1, "", f"Command timed out after {timeout}s: {' '.join(cmd)}")

    stdout_str = (completed.stdout or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (completed.stderr or b"").decode("utf-8", errors="replace").strip()
    return (completed.returncode, stdout_str, stderr_str)


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_header(title: str) -> None:
    """Print a full-width rule with *title*."""
    console.print()
    console.print(Rule(f"[bold bright_cyan] {title} [/bold bright_cyan]", style="bright_cyan"))
    console.print()


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_info(message: str) -> None:
    """Print an informational progress line."""
    console.print(f"[green][INFO][/green] {escape(message)}", highlight=False)


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow][WARN][/bold yellow] {escape(message)}", highlight=False)


def print_error(message: str) -> None:
    """Print a red error message to stderr."""
    err_console.print(f"[bold red][ERROR][/bold red] {escape(message)}", highlight=False)


# ---------------------------------------------------------------------------
# Port helpers
# ---------------------------------------------------------------------------

MIN_PORT = 1
MAX_PORT = 65535


def validate_port(port: int) -> bool:
    """Return ``True`` if *port* is a usable TCP port number."""
    return MIN_PORT <= port <= MAX_PORT


def find_port_owners(port: int, timeout: int = 10) -> list[int]:
    """Return the PIDs of processes bound to *port*, sorted and de-duplicated.

    Uses ``lsof -t -i :<port>``.  ``lsof`` exits non-zero when nothing
    matches, which is reported as an empty list.

    Raises:
        FileNotFoundError: If ``lsof`` is not installed.
    """
    returncode, stdout, _ = run_command(["lsof", "-t", "-i", f":{port}"], timeout=timeout)
    if returncode != 0 or not stdout:
        return []
    pids = {int(line) for line in stdout.split() if line.strip().isdigit()}
    return sorted(pids)


def kill_processes(pids: list[int]) -> list[int]:
    """Send SIGKILL to each PID.

    Processes that already exited are ignored.  Returns the PIDs that were
    signalled.

    Raises:
        PermissionError: If a process belongs to another user.
    """
    killed: list[int] = []
    for pid in pids:
        try:
            os.kill(pid, signal.SIGKILL)
        except ProcessLookupError:
            continue
        killed.append(pid)
    return killed

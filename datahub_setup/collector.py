"""Config collector: interactive questions -> validated connection config.

Value prompts (engine, host, port, database name) are checked once and a
bad answer is fatal.  Only yes/no confirmations re-ask until they get a
valid answer.  End of input or Ctrl-C on any prompt is treated the same way
everywhere: the user walked away, so the run aborts.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import partial
from pathlib import Path
from typing import Protocol

from rich.prompt import Confirm, Prompt

from datahub_setup.config import Config
from datahub_setup.errors import ConfigValidationError, ResourceConflict, UserAbort
from datahub_setup.scaffolder.models import (
    ENGINE_PROFILES,
    ConnectionConfig,
    DatabaseChoice,
    NetworkConnection,
    SqliteConnection,
    TargetAction,
    check_database_name,
    engine_for_key,
    normalize_host,
    profile_for,
)
from datahub_setup.utils import (
    console,
    find_port_owners,
    kill_processes,
    print_info,
    print_warning,
    validate_port,
)

DEFAULT_ENGINE_KEY = "1"
DEFAULT_HOST = "localhost"
DEFAULT_DATABASE = "datahub"
DEFAULT_USER = "datahub_user"
DEFAULT_PASSWORD = "datahub_pass"


# ---------------------------------------------------------------------------
# Prompting
# ---------------------------------------------------------------------------


class Prompter(Protocol):
    """What the collector needs from a terminal."""

    def ask(self, question: str, default: str = "", password: bool = False) -> str: ...

    def confirm(self, question: str) -> bool: ...


class ConsolePrompter:
    """Rich-backed prompter reading from the interactive terminal."""

    def ask(self, question: str, default: str = "", password: bool = False) -> str:
        try:
            answer = Prompt.ask(
                f"[yellow][INPUT][/yellow] {question}",
                default=default,
                password=password,
                show_default=not password and bool(default),
                console=console,
            )
        except (EOFError, KeyboardInterrupt) as exc:
            raise UserAbort("No input available; setup aborted.") from exc
        return answer or ""

    def confirm(self, question: str) -> bool:
        try:
            return Confirm.ask(f"[yellow][CONFIRM][/yellow] {question}", console=console)
        except (EOFError, KeyboardInterrupt) as exc:
            raise UserAbort("No input available; setup aborted.") from exc


# ---------------------------------------------------------------------------
# Pure decisions & parsing
# ---------------------------------------------------------------------------


def decide_target_action(exists: bool, non_empty: bool, confirmed: bool) -> TargetAction:
    """Decide what happens to the target root.

    *confirmed* is the user's answer to "overwrite?"; it only matters when
    the directory exists and has content.
    """
    if not exists or not non_empty:
        return TargetAction.CREATE
    if confirmed:
        return TargetAction.REPLACE
    return TargetAction.ABORT


def parse_engine_choice(raw: str) -> DatabaseChoice:
    """Map the menu answer to an engine; empty input picks PostgreSQL."""
    key = raw.strip() or DEFAULT_ENGINE_KEY
    engine = engine_for_key(key)
    if engine is None:
        keys = ", ".join(p.key for p in ENGINE_PROFILES.values())
        raise ConfigValidationError("choice", raw, f"expected one of {keys}")
    return engine


def parse_port(raw: str, default: int) -> int:
    """Parse a port answer; empty input takes *default*."""
    text = raw.strip()
    if not text:
        return default
    if not (text.isascii() and text.isdecimal()):
        raise ConfigValidationError("port", raw, "not an integer")
    port = int(text)
    if not validate_port(port):
        raise ConfigValidationError("port", raw, "must be between 1 and 65535")
    return port


def parse_host(raw: str, default: str) -> str:
    """Validate a host answer; empty input takes *default*."""
    try:
        return normalize_host(raw.strip() or default)
    except ValueError as exc:
        raise ConfigValidationError("host", raw, str(exc)) from exc


def parse_database_name(raw: str, default: str) -> str:
    """Validate a database name answer; empty input takes *default*."""
    try:
        return check_database_name(raw.strip() or default)
    except ValueError as exc:
        raise ConfigValidationError("database name", raw, str(exc)) from exc


def _is_non_empty_dir(path: Path) -> bool:
    return path.is_dir() and any(path.iterdir())


# ---------------------------------------------------------------------------
# Collector
# ---------------------------------------------------------------------------


class ConfigCollector:
    """Asks the setup questions and returns validated values.

    Args:
        prompter: Terminal abstraction; tests pass a scripted one.
        config: Setup configuration (sqlite file name, lookup timeout).
        port_inspector: Returns the PIDs bound to a port.
        process_killer: Terminates the given PIDs.
    """

    def __init__(
        self,
        prompter: Prompter | None = None,
        config: Config | None = None,
        port_inspector: Callable[[int], list[int]] | None = None,
        process_killer: Callable[[list[int]], list[int]] = kill_processes,
    ) -> None:
        self.prompter = prompter or ConsolePrompter()
        self.config = config or Config()
        self.port_inspector = port_inspector or partial(
            find_port_owners, timeout=self.config.port_check_timeout
        )
        self.process_killer = process_killer

    # -- Target root -------------------------------------------------------

    def collect_target_action(self, root: Path) -> TargetAction:
        """Ask whether a non-empty target root may be replaced.

        Nothing is removed here; the materializer applies the decision
        after every other answer has been validated.
        """
        exists = root.exists()
        non_empty = _is_non_empty_dir(root)
        confirmed = False
        if non_empty:
            confirmed = self.prompter.confirm(
                f"Directory '{root}' already exists and is non-empty. Overwrite?"
            )
        action = decide_target_action(exists, non_empty, confirmed)
        if action == TargetAction.ABORT:
            raise UserAbort("Setup aborted by user.")
        return action

    # -- Engine & connection -----------------------------------------------

    def collect_engine(self) -> DatabaseChoice:
        console.print()
        console.print("Select database type:")
        for profile in ENGINE_PROFILES.values():
            if profile.default_port:
                console.print(f"{profile.key}) {profile.label} (default port: {profile.default_port})")
            else:
                console.print(f"{profile.key}) {profile.label} (file-based, no port)")

        raw = self.prompter.ask("Choose database [1-3]", default=DEFAULT_ENGINE_KEY)
        engine = parse_engine_choice(raw)
        print_info(f"Selected database: {engine.value}")
        return engine

    def collect_connection(self, engine: DatabaseChoice | None = None) -> ConnectionConfig:
        """Collect the full connection config for *engine* (asked if omitted)."""
        if engine is None:
            engine = self.collect_engine()

        if engine == DatabaseChoice.SQLITE:
            return SqliteConnection(database_name=self.config.sqlite_filename)

        default_port = profile_for(engine).default_port
        if default_port is None:
            raise ConfigValidationError("choice", engine.value, "engine has no network port")

        host = parse_host(
            self.prompter.ask("Enter database host", default=DEFAULT_HOST), DEFAULT_HOST
        )
        port = parse_port(
            self.prompter.ask(
                f"Enter database port (default: {default_port})",
                default=str(default_port),
            ),
            default_port,
        )
        self.check_port(port)

        name = parse_database_name(
            self.prompter.ask("Enter database name", default=DEFAULT_DATABASE), DEFAULT_DATABASE
        )
        user = self._ask_default("Enter database user", DEFAULT_USER)
        password = self._ask_default("Enter database password", DEFAULT_PASSWORD, password=True)

        return NetworkConnection(
            engine=engine,
            host=host,
            port=port,
            database_name=name,
            username=user,
            password=password,
        )

    def _ask_default(self, question: str, default: str, password: bool = False) -> str:
        answer = self.prompter.ask(question, default=default, password=password).strip()
        return answer or default

    # -- Port conflict -----------------------------------------------------

    def check_port(self, port: int) -> None:
        """Free *port* if a process holds it, with the user's consent."""
        try:
            pids = self.port_inspector(port)
        except FileNotFoundError:
            print_warning(f"lsof is not available; skipping the check for port {port}.")
            return

        if not pids:
            print_info(f"Port {port} is free.")
            return

        pid_list = " ".join(str(pid) for pid in pids)
        print_warning(f"Port {port} is in use by PID(s): {pid_list}")
        if not self.prompter.confirm(f"Kill process on port {port}?"):
            raise UserAbort(f"Port {port} is busy. Cannot proceed.")

        try:
            self.process_killer(pids)
        except PermissionError as exc:
            raise ResourceConflict(
                port, pids, f"Cannot kill process on port {port}: {exc.strerror or exc}"
            ) from exc
        print_info(f"Killed process on port {port}")

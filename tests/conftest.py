"""Shared pytest fixtures for the DataHub setup test suite.

Provides reusable fixtures for:
- A scripted prompter standing in for the terminal
- Connection configs for every engine
- Resolved generation plans
- A materializer whose progress output is captured instead of printed
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import pytest

from datahub_setup.config import Config
from datahub_setup.scaffolder.materializer import FilesystemMaterializer
from datahub_setup.scaffolder.models import (
    DatabaseChoice,
    GenerationPlan,
    NetworkConnection,
    SqliteConnection,
)
from datahub_setup.scaffolder.resolver import resolve


# ---------------------------------------------------------------------------
# Scripted terminal
# ---------------------------------------------------------------------------

class ScriptedPrompter:
    """Answers prompts from fixed lists and records every question asked.

    ``answers`` feed ``ask`` in order, ``confirmations`` feed ``confirm``.
    Running out of answers raises ``EOFError``, like a closed stdin.
    """

    def __init__(
        self,
        answers: Iterable[str] = (),
        confirmations: Iterable[bool] = (),
    ) -> None:
        self.answers = list(answers)
        self.confirmations = list(confirmations)
        self.questions: list[str] = []
        self.confirm_questions: list[str] = []

    def ask(self, question: str, default: str = "", password: bool = False) -> str:
        self.questions.append(question)
        if not self.answers:
            raise EOFError(question)
        return self.answers.pop(0)

    def confirm(self, question: str) -> bool:
        self.confirm_questions.append(question)
        if not self.confirmations:
            raise EOFError(question)
        return self.confirmations.pop(0)


@pytest.fixture
def scripted_prompter():
    """Factory for ``ScriptedPrompter`` instances."""
    return ScriptedPrompter


# ---------------------------------------------------------------------------
# Config & connections
# ---------------------------------------------------------------------------

@pytest.fixture
def setup_config(tmp_path: Path) -> Config:
    """Config that generates into ``tmp_path / "datahub-api"``."""
    return Config(output_dir=tmp_path)


@pytest.fixture
def postgres_connection() -> NetworkConnection:
    return NetworkConnection(
        engine=DatabaseChoice.POSTGRESQL,
        host="localhost",
        port=5432,
        database_name="datahub",
        username="datahub_user",
        password="datahub_pass",
    )


@pytest.fixture
def mysql_connection() -> NetworkConnection:
    return NetworkConnection(
        engine=DatabaseChoice.MYSQL,
        host="localhost",
        port=3306,
        database_name="datahub",
        username="datahub_user",
        password="datahub_pass",
    )


@pytest.fixture
def sqlite_connection() -> SqliteConnection:
    return SqliteConnection(database_name="datahub.db")


# ---------------------------------------------------------------------------
# Plans & materializer
# ---------------------------------------------------------------------------

@pytest.fixture
def postgres_plan(setup_config: Config, postgres_connection) -> GenerationPlan:
    return resolve(postgres_connection, setup_config.project_root)


@pytest.fixture
def mysql_plan(setup_config: Config, mysql_connection) -> GenerationPlan:
    return resolve(mysql_connection, setup_config.project_root)


@pytest.fixture
def sqlite_plan(setup_config: Config, sqlite_connection) -> GenerationPlan:
    return resolve(sqlite_connection, setup_config.project_root)


@pytest.fixture
def progress_log() -> list[str]:
    """Collects materializer progress messages in order."""
    return []


@pytest.fixture
def materializer(setup_config: Config, progress_log: list[str]) -> FilesystemMaterializer:
    """Materializer that declines overwrites and records progress."""
    return FilesystemMaterializer(
        config=setup_config,
        confirm=lambda _question: False,
        progress=progress_log.append,
    )


def snapshot_tree(root: Path) -> dict[str, bytes]:
    """Map every file under *root* (relative posix path) to its bytes."""
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


@pytest.fixture
def snapshot():
    """Expose ``snapshot_tree`` to tests."""
    return snapshot_tree

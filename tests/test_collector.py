"""Unit tests for the config collector (datahub_setup.collector).

Tests cover:
- decide_target_action truth table
- parse_engine_choice / parse_port / parse_host / parse_database_name validation
- ConfigCollector prompts, defaults and connection building
- Port conflict handling (free, busy+kill, busy+decline, no lsof, no permission)
- Target-root confirmation
- ConsolePrompter EOF policy
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from datahub_setup.collector import (
    ConfigCollector,
    ConsolePrompter,
    decide_target_action,
    parse_database_name,
    parse_engine_choice,
    parse_host,
    parse_port,
)
from datahub_setup.config import Config
from datahub_setup.errors import ConfigValidationError, ResourceConflict, UserAbort
from datahub_setup.scaffolder.models import (
    ENGINE_PROFILES,
    DatabaseChoice,
    EngineProfile,
    NetworkConnection,
    SqliteConnection,
    TargetAction,
)

pytestmark = pytest.mark.unit


def _collector(prompter, pids=(), config=None, killer=None) -> ConfigCollector:
    return ConfigCollector(
        prompter,
        config or Config(),
        port_inspector=lambda _port: list(pids),
        process_killer=killer or MagicMock(return_value=list(pids)),
    )


# ---------------------------------------------------------------------------
# decide_target_action
# ---------------------------------------------------------------------------


class TestDecideTargetAction:
    def test_absent_creates(self):
        assert decide_target_action(False, False, False) == TargetAction.CREATE

    def test_empty_creates_without_asking(self):
        assert decide_target_action(True, False, False) == TargetAction.CREATE

    def test_non_empty_confirmed_replaces(self):
        assert decide_target_action(True, True, True) == TargetAction.REPLACE

    def test_non_empty_declined_aborts(self):
        assert decide_target_action(True, True, False) == TargetAction.ABORT


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestParseEngineChoice:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("1", DatabaseChoice.POSTGRESQL),
            ("2", DatabaseChoice.MYSQL),
            ("3", DatabaseChoice.SQLITE),
            (" 2 ", DatabaseChoice.MYSQL),
            ("", DatabaseChoice.POSTGRESQL),
        ],
    )
    def test_valid(self, raw, expected):
        assert parse_engine_choice(raw) == expected

    @pytest.mark.parametrize("raw", ["0", "4", "postgres", "1.0"])
    def test_invalid_is_fatal(self, raw):
        with pytest.raises(ConfigValidationError) as exc_info:
            parse_engine_choice(raw)
        assert exc_info.value.field == "choice"


class TestParsePort:
    def test_empty_takes_default(self):
        assert parse_port("", 5432) == 5432

    def test_explicit(self):
        assert parse_port("15432", 5432) == 15432

    def test_bounds_inclusive(self):
        assert parse_port("1", 5432) == 1
        assert parse_port("65535", 5432) == 65535

    @pytest.mark.parametrize(
        "raw", ["abc", "99999", "0", "-1", "54 32", "5432x", "²", "٣٤"]
    )
    def test_invalid_is_fatal(self, raw):
        with pytest.raises(ConfigValidationError) as exc_info:
            parse_port(raw, 5432)
        assert exc_info.value.field == "port"


class TestParseHost:
    def test_empty_takes_default(self):
        assert parse_host("", "localhost") == "localhost"

    def test_bracketed_ipv6_is_unwrapped(self):
        assert parse_host("[::1]", "localhost") == "::1"

    @pytest.mark.parametrize("raw", ["db/x", "db?x", "user@db", "not:ipv6", "db host"])
    def test_invalid_is_fatal(self, raw):
        with pytest.raises(ConfigValidationError) as exc_info:
            parse_host(raw, "localhost")
        assert exc_info.value.field == "host"


class TestParseDatabaseName:
    def test_empty_takes_default(self):
        assert parse_database_name("  ", "datahub") == "datahub"

    @pytest.mark.parametrize("raw", ["a?b", "a/b", "a#b", "a b"])
    def test_invalid_is_fatal(self, raw):
        with pytest.raises(ConfigValidationError) as exc_info:
            parse_database_name(raw, "datahub")
        assert exc_info.value.field == "database name"


# ---------------------------------------------------------------------------
# Connection collection
# ---------------------------------------------------------------------------


class TestCollectConnection:
    def test_postgres_with_defaults(self, scripted_prompter):
        prompter = scripted_prompter(answers=["1", "", "", "", "", ""])
        connection = _collector(prompter).collect_connection()

        assert isinstance(connection, NetworkConnection)
        assert connection.engine == DatabaseChoice.POSTGRESQL
        assert connection.host == "localhost"
        assert connection.port == 5432
        assert connection.database_name == "datahub"
        assert connection.username == "datahub_user"
        assert connection.password == "datahub_pass"

    def test_mysql_default_port(self, scripted_prompter):
        prompter = scripted_prompter(answers=["2", "", "", "", "", ""])
        connection = _collector(prompter).collect_connection()
        assert connection.engine == DatabaseChoice.MYSQL
        assert connection.port == 3306

    def test_explicit_answers(self, scripted_prompter):
        prompter = scripted_prompter(
            answers=["1", "db.internal", "6543", "analytics", "admin", "p@ss:word"]
        )
        connection = _collector(prompter).collect_connection()
        assert connection.host == "db.internal"
        assert connection.port == 6543
        assert connection.database_name == "analytics"
        assert connection.username == "admin"
        assert connection.password == "p@ss:word"

    def test_sqlite_asks_only_engine(self, scripted_prompter):
        prompter = scripted_prompter(answers=["3"])
        connection = _collector(prompter).collect_connection()
        assert isinstance(connection, SqliteConnection)
        assert connection.database_name == "datahub.db"
        assert len(prompter.questions) == 1

    def test_sqlite_filename_from_config(self, scripted_prompter):
        prompter = scripted_prompter(answers=["3"])
        collector = _collector(prompter, config=Config(sqlite_filename="local.db"))
        assert collector.collect_connection().database_name == "local.db"

    def test_engine_passed_in_skips_menu(self, scripted_prompter):
        prompter = scripted_prompter(answers=["", "", "", "", ""])
        connection = _collector(prompter).collect_connection(DatabaseChoice.MYSQL)
        assert connection.engine == DatabaseChoice.MYSQL
        assert not any("Choose database" in q for q in prompter.questions)

    def test_invalid_choice_is_fatal_without_retry(self, scripted_prompter):
        prompter = scripted_prompter(answers=["9", "1"])
        with pytest.raises(ConfigValidationError):
            _collector(prompter).collect_connection()
        assert prompter.answers == ["1"]

    @pytest.mark.parametrize("bad_port", ["99999", "abc"])
    def test_invalid_port_is_fatal_before_port_check(self, scripted_prompter, bad_port):
        inspector = MagicMock(return_value=[])
        prompter = scripted_prompter(answers=["1", "", bad_port, "", "", ""])
        collector = ConfigCollector(prompter, Config(), port_inspector=inspector)
        with pytest.raises(ConfigValidationError):
            collector.collect_connection()
        inspector.assert_not_called()

    def test_invalid_host_is_fatal_before_port_check(self, scripted_prompter):
        inspector = MagicMock(return_value=[])
        prompter = scripted_prompter(answers=["1", "db/evil", "", "", "", ""])
        collector = ConfigCollector(prompter, Config(), port_inspector=inspector)
        with pytest.raises(ConfigValidationError):
            collector.collect_connection()
        inspector.assert_not_called()

    def test_invalid_database_name_is_fatal(self, scripted_prompter):
        prompter = scripted_prompter(answers=["1", "", "", "a?b", "", ""])
        with pytest.raises(ConfigValidationError) as exc_info:
            _collector(prompter).collect_connection()
        assert exc_info.value.field == "database name"

    def test_networked_engine_without_port_is_rejected(self, scripted_prompter):
        portless = EngineProfile(key="2", label="MySQL", url_scheme="mysql+pymysql")
        prompter = scripted_prompter(answers=["", "", "", "", ""])
        with patch.dict(ENGINE_PROFILES, {DatabaseChoice.MYSQL: portless}):
            with pytest.raises(ConfigValidationError):
                _collector(prompter).collect_connection(DatabaseChoice.MYSQL)
        assert prompter.questions == []

    def test_ipv6_host(self, scripted_prompter):
        prompter = scripted_prompter(answers=["1", "[::1]", "", "", "", ""])
        connection = _collector(prompter).collect_connection()
        assert connection.host == "::1"
        assert "@[::1]:5432/" in connection.connection_url

    def test_password_prompt_is_hidden(self, scripted_prompter):
        prompter = MagicMock()
        prompter.ask.side_effect = ["1", "", "", "", "", ""]
        _collector(prompter).collect_connection()
        password_call = prompter.ask.call_args_list[-1]
        assert "password" in password_call.args[0]
        assert password_call.kwargs["password"] is True

    def test_eof_propagates(self, scripted_prompter):
        prompter = scripted_prompter(answers=["1", "localhost"])
        with pytest.raises(EOFError):
            _collector(prompter).collect_connection()


# ---------------------------------------------------------------------------
# Port conflict
# ---------------------------------------------------------------------------


class TestCheckPort:
    def test_free_port_asks_nothing(self, scripted_prompter):
        prompter = scripted_prompter()
        _collector(prompter, pids=[]).check_port(5432)
        assert prompter.confirm_questions == []

    def test_busy_port_killed_with_consent(self, scripted_prompter):
        killer = MagicMock(return_value=[101, 202])
        prompter = scripted_prompter(confirmations=[True])
        _collector(prompter, pids=[101, 202], killer=killer).check_port(5432)
        killer.assert_called_once_with([101, 202])
        assert "5432" in prompter.confirm_questions[0]

    def test_busy_port_declined_aborts_without_kill(self, scripted_prompter):
        killer = MagicMock()
        prompter = scripted_prompter(confirmations=[False])
        with pytest.raises(UserAbort, match="Port 5432 is busy"):
            _collector(prompter, pids=[101], killer=killer).check_port(5432)
        killer.assert_not_called()

    def test_kill_without_permission_is_conflict(self, scripted_prompter):
        killer = MagicMock(side_effect=PermissionError(1, "Operation not permitted"))
        prompter = scripted_prompter(confirmations=[True])
        with pytest.raises(ResourceConflict) as exc_info:
            _collector(prompter, pids=[1], killer=killer).check_port(5432)
        assert exc_info.value.port == 5432
        assert exc_info.value.pids == [1]

    def test_missing_lsof_treated_as_free(self, scripted_prompter):
        prompter = scripted_prompter()
        collector = ConfigCollector(
            prompter,
            Config(),
            port_inspector=MagicMock(side_effect=FileNotFoundError("lsof")),
        )
        collector.check_port(5432)
        assert prompter.confirm_questions == []

    def test_default_inspector_uses_config_timeout(self, scripted_prompter):
        collector = ConfigCollector(scripted_prompter(), Config(port_check_timeout=4))
        with patch("datahub_setup.utils.run_command", return_value=(1, "", "")) as run:
            collector.check_port(5432)
        assert run.call_args.kwargs["timeout"] == 4


# ---------------------------------------------------------------------------
# Target root
# ---------------------------------------------------------------------------


class TestCollectTargetAction:
    def test_missing_root(self, scripted_prompter, tmp_path: Path):
        prompter = scripted_prompter()
        action = _collector(prompter).collect_target_action(tmp_path / "datahub-api")
        assert action == TargetAction.CREATE
        assert prompter.confirm_questions == []

    def test_empty_root(self, scripted_prompter, tmp_path: Path):
        root = tmp_path / "datahub-api"
        root.mkdir()
        prompter = scripted_prompter()
        assert _collector(prompter).collect_target_action(root) == TargetAction.CREATE

    def test_non_empty_confirmed(self, scripted_prompter, tmp_path: Path):
        root = tmp_path / "datahub-api"
        root.mkdir()
        (root / "keep.txt").write_text("x")
        prompter = scripted_prompter(confirmations=[True])
        assert _collector(prompter).collect_target_action(root) == TargetAction.REPLACE
        # Deciding never touches the directory.
        assert (root / "keep.txt").read_text() == "x"

    def test_non_empty_declined(self, scripted_prompter, tmp_path: Path):
        root = tmp_path / "datahub-api"
        root.mkdir()
        (root / "keep.txt").write_text("x")
        prompter = scripted_prompter(confirmations=[False])
        with pytest.raises(UserAbort):
            _collector(prompter).collect_target_action(root)
        assert (root / "keep.txt").read_text() == "x"


# ---------------------------------------------------------------------------
# ConsolePrompter
# ---------------------------------------------------------------------------


class TestConsolePrompter:
    def test_ask_returns_answer(self):
        with patch("datahub_setup.collector.Prompt.ask", return_value="db.local"):
            assert ConsolePrompter().ask("Enter database host", default="localhost") == "db.local"

    def test_ask_eof_is_user_abort(self):
        with patch("datahub_setup.collector.Prompt.ask", side_effect=EOFError):
            with pytest.raises(UserAbort):
                ConsolePrompter().ask("Enter database host")

    def test_confirm_eof_is_user_abort(self):
        with patch("datahub_setup.collector.Confirm.ask", side_effect=EOFError):
            with pytest.raises(UserAbort):
                ConsolePrompter().confirm("Overwrite?")

    def test_confirm_interrupt_is_user_abort(self):
        with patch("datahub_setup.collector.Confirm.ask", side_effect=KeyboardInterrupt):
            with pytest.raises(UserAbort):
                ConsolePrompter().confirm("Overwrite?")

    def test_password_hides_default(self):
        with patch("datahub_setup.collector.Prompt.ask", return_value="") as ask:
            ConsolePrompter().ask("Enter database password", default="datahub_pass", password=True)
        assert ask.call_args.kwargs["password"] is True
        assert ask.call_args.kwargs["show_default"] is False

"""Tests for CLI commands."""

import json
import logging
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from tests.conftest import make_record
from work_ports.cli import main
from work_ports.config import Config
from work_ports.inspector import InspectionError

RECORDS = [
    make_record(
        port=3000,
        process_name="node",
        pid="111",
        command_line="vite dev",
        address="127.0.0.1",
    ),
    make_record(
        port=5432,
        process_name="postgres",
        pid="222",
        command_line="postgres -D /data",
        address="*",
    ),
]


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def close_log_handlers():
    """Release the log file handler configure() attaches to the root logger."""
    yield
    root = logging.getLogger()
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()


@pytest.fixture(autouse=True)
def wide_terminal(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give rich enough columns that table cells aren't folded."""
    monkeypatch.setenv("COLUMNS", "200")


class TestListCommand:
    """Tests for the list command."""

    def test_lists_dev_ports_by_default(self, runner: CliRunner) -> None:
        with patch("work_ports.inspector.collect_listeners", return_value=RECORDS):
            result = runner.invoke(main, ["list"])

        assert result.exit_code == 0, result.output
        assert "Development servers" in result.output
        assert "3000" in result.output
        assert "postgres" not in result.output
        assert "1 port found" in result.output

    def test_bare_invocation_lists(self, runner: CliRunner) -> None:
        with patch("work_ports.inspector.collect_listeners", return_value=RECORDS):
            result = runner.invoke(main, [])

        assert result.exit_code == 0, result.output
        assert "Development servers" in result.output

    def test_bare_invocation_accepts_list_options(self, runner: CliRunner) -> None:
        with patch("work_ports.inspector.collect_listeners", return_value=RECORDS):
            result = runner.invoke(main, ["--all"])

        assert result.exit_code == 0, result.output
        assert "Other ports" in result.output
        assert "postgres" in result.output

    def test_bare_invocation_forwards_filters(self, runner: CliRunner) -> None:
        with patch("work_ports.inspector.collect_listeners", return_value=RECORDS):
            result = runner.invoke(main, ["-a", "-p", "5432", "--format", "json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["dev"] == []
        assert [g["port"] for g in data["others"]] == [5432]
        assert data["others"][0]["protocol"] == "TCP"

    def test_all_includes_other_ports(self, runner: CliRunner) -> None:
        with patch("work_ports.inspector.collect_listeners", return_value=RECORDS):
            result = runner.invoke(main, ["list", "--all"])

        assert result.exit_code == 0, result.output
        assert "Other ports" in result.output
        assert "postgres" in result.output
        assert "TYPE" in result.output
        assert "TCP" in result.output

    def test_json_output(self, runner: CliRunner) -> None:
        with patch("work_ports.inspector.collect_listeners", return_value=RECORDS):
            result = runner.invoke(main, ["list", "--all", "--format", "json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert [g["port"] for g in data["dev"]] == [3000]
        assert [g["port"] for g in data["others"]] == [5432]
        assert data["total"] == 2

    def test_port_and_process_filters(self, runner: CliRunner) -> None:
        with patch("work_ports.inspector.collect_listeners", return_value=RECORDS):
            result = runner.invoke(
                main, ["list", "--all", "-n", "POSTGRES", "-p", "5432", "--format", "json"]
            )

        data = json.loads(result.stdout)
        assert data["dev"] == []
        assert [g["port"] for g in data["others"]] == [5432]

    def test_limit_option(self, runner: CliRunner) -> None:
        records = [
            make_record(port=p, pid=str(p), command_line="vite dev") for p in (3000, 3001, 3002)
        ]
        with patch("work_ports.inspector.collect_listeners", return_value=records):
            result = runner.invoke(main, ["list", "--limit", "2", "--format", "json"])

        data = json.loads(result.stdout)
        assert [g["port"] for g in data["dev"]] == [3000, 3001]

    def test_display_defaults_from_config(self, runner: CliRunner) -> None:
        """Config [display] settings apply when options are omitted."""
        cfg = Config()
        cfg.display.show_all = True
        cfg.save()

        with patch("work_ports.inspector.collect_listeners", return_value=RECORDS):
            result = runner.invoke(main, ["list", "--format", "json"])

        data = json.loads(result.stdout)
        assert data["total"] == 2

    def test_no_ports_found(self, runner: CliRunner) -> None:
        with patch("work_ports.inspector.collect_listeners", return_value=[]):
            result = runner.invoke(main, ["list"])

        assert result.exit_code == 0
        assert "No ports found" in result.output

    def test_inspection_failure_exits_1(self, runner: CliRunner) -> None:
        with patch(
            "work_ports.inspector.collect_listeners",
            side_effect=InspectionError("lsof not found"),
        ):
            result = runner.invoke(main, ["list"])

        assert result.exit_code == 1
        assert "lsof not found" in result.output

    def test_invalid_config_exits_1(self, runner: CliRunner) -> None:
        cfg = Config()
        cfg.config_path.parent.mkdir(parents=True)
        cfg.config_path.write_text('[display]\nsort = "sideways"\n')

        with patch("work_ports.inspector.collect_listeners") as collect:
            result = runner.invoke(main, ["list"])

        assert result.exit_code == 1
        assert "Config error" in result.output
        collect.assert_not_called()

    def test_malformed_ports_entry_exits_1(self, runner: CliRunner) -> None:
        cfg = Config()
        cfg.config_path.parent.mkdir(parents=True)
        cfg.config_path.write_text('[ports]\n3000 = "React"\n')

        with patch("work_ports.inspector.collect_listeners") as collect:
            result = runner.invoke(main, ["list"])

        assert result.exit_code == 1
        assert "Config error" in result.output
        collect.assert_not_called()

    def test_rejects_bad_sort(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["list", "--sort", "sideways"])
        assert result.exit_code == 2


class TestInitCommand:
    """Tests for the init command."""

    def test_creates_config(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["init"])

        assert result.exit_code == 0
        cfg = Config()
        assert cfg.config_path.exists()
        assert Config.load() == cfg

    def test_keeps_existing_config(self, runner: CliRunner) -> None:
        cfg = Config()
        cfg.rules.score_threshold = 55
        cfg.save()

        result = runner.invoke(main, ["init"])

        assert result.exit_code == 0
        assert "already exists" in result.output
        assert Config.load().rules.score_threshold == 55

    def test_force_overwrites(self, runner: CliRunner) -> None:
        cfg = Config()
        cfg.rules.score_threshold = 55
        cfg.save()

        result = runner.invoke(main, ["init", "--force"])

        assert result.exit_code == 0
        assert Config.load().rules.score_threshold == 30


class TestConfigCommands:
    """Tests for config subcommands."""

    def test_show(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["config", "show"])

        assert result.exit_code == 0
        assert "Exists: False" in result.output
        assert "score_threshold = 30" in result.output
        assert "5432 = PostgreSQL (Database)" in result.output

    def test_reset(self, runner: CliRunner) -> None:
        cfg = Config()
        cfg.display.limit = 9
        cfg.save()

        result = runner.invoke(main, ["config", "reset", "--yes"])

        assert result.exit_code == 0
        assert Config.load().display.limit == 0

    def test_edit_creates_and_opens(self, runner: CliRunner, monkeypatch) -> None:
        monkeypatch.setenv("EDITOR", "true")
        with patch("subprocess.run") as run:
            result = runner.invoke(main, ["config", "edit"])

        assert result.exit_code == 0
        cfg = Config()
        assert cfg.config_path.exists()
        run.assert_called_once_with(["true", str(cfg.config_path)])

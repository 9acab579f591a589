"""Shared test fixtures for work-ports."""

import logging
from pathlib import Path

import pytest
import structlog

from work_ports.models import ListenerRecord


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point HOME at a temp dir so config and log files never touch the real one."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture(autouse=True)
def quiet_structlog():
    """Drop debug/info structlog events emitted outside configure()."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING),
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


def make_record(
    port: int = 3000,
    process_name: str = "node",
    pid: str = "111",
    command_line: str = "node server.js",
    start_time: str = "Sat Oct 18 14:03:11 2026",
    address: str = "127.0.0.1",
    protocol: str = "TCP",
) -> ListenerRecord:
    """Create a ListenerRecord with sensible defaults for testing."""
    return ListenerRecord(
        port=port,
        process_name=process_name,
        pid=pid,
        command_line=command_line,
        start_time=start_time,
        address=address,
        protocol=protocol,
    )

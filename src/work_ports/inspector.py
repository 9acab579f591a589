"""Listening-socket inventory via lsof, enriched with psutil process details."""

import re
import subprocess
from dataclasses import dataclass
from datetime import datetime

import psutil
import structlog

from work_ports.models import START_TIME_FORMAT, ListenerRecord

log = structlog.get_logger()

# +c 0: full command names; -iUDP is ORed with the TCP LISTEN selection
LSOF_ARGS = ["lsof", "-nP", "+c", "0", "-iTCP", "-sTCP:LISTEN", "-iUDP"]

_HEX_ESCAPE = re.compile(r"\\x([0-9a-fA-F]{2})")


class InspectionError(RuntimeError):
    """Raised when the socket table can't be read."""


@dataclass(frozen=True)
class SocketEntry:
    """One row of lsof output."""

    process_name: str
    pid: str
    protocol: str  # TCP or UDP
    address: str
    port: int


@dataclass(frozen=True)
class ProcessDetails:
    """Command line and start time of one process."""

    command_line: str = ""
    start_time: str = ""


def _unescape(value: str) -> str:
    """Decode lsof's \\xNN escapes (spaces in command names come out as \\x20)."""
    return _HEX_ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), value)


def split_address(name: str) -> tuple[str, int] | None:
    """Split an lsof NAME like '127.0.0.1:3000' or '[::1]:5173' into (address, port)."""
    address, sep, port_str = name.rpartition(":")
    if not sep or not address or not port_str.isdigit():
        return None
    port = int(port_str)
    if not 0 < port <= 65535:
        return None
    return address, port


def parse_lsof_output(raw: str) -> list[SocketEntry]:
    """Parse lsof text output into socket entries.

    Lines that don't carry a usable pid and local port are dropped.
    """
    lines = raw.strip().split("\n")

    header_idx = None
    for i, line in enumerate(lines):
        if line.startswith("COMMAND"):
            header_idx = i
            break

    if header_idx is None:
        return []

    entries = []
    for line in lines[header_idx + 1 :]:
        parts = line.split()
        if len(parts) < 9:
            continue

        command, pid, protocol, name = parts[0], parts[1], parts[7], parts[8]
        # Connected sockets ("local->remote") aren't listeners
        if not pid.isdigit() or "->" in name:
            log.debug("lsof_line_skipped", line=line)
            continue

        split = split_address(name)
        if split is None:
            log.debug("lsof_line_skipped", line=line)
            continue

        address, port = split
        entries.append(
            SocketEntry(
                process_name=_unescape(command),
                pid=pid,
                protocol=protocol.upper(),
                address=address,
                port=port,
            )
        )

    return entries


def list_sockets(timeout: float = 10.0) -> list[SocketEntry]:
    """Run lsof and return listening TCP and bound UDP sockets.

    Raises:
        InspectionError: If lsof is missing, times out or fails.
    """
    try:
        completed = subprocess.run(
            LSOF_ARGS,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise InspectionError("lsof not found; install it or add it to PATH") from e
    except subprocess.TimeoutExpired as e:
        raise InspectionError(f"lsof timed out after {timeout}s") from e

    stderr = completed.stderr.strip()
    if completed.returncode != 0:
        # lsof exits 1 when nothing matched the selection
        if completed.returncode == 1 and not completed.stdout.strip() and not stderr:
            return []
        raise InspectionError(
            f"lsof exited with status {completed.returncode}: {stderr or 'no error output'}"
        )

    entries = parse_lsof_output(completed.stdout)
    log.debug("sockets_listed", count=len(entries))
    return entries


def describe_process(pid: str) -> ProcessDetails:
    """Look up a process's command line and start time.

    Returns empty details if the process is gone or can't be inspected.
    """
    if not pid.isdigit():
        return ProcessDetails()

    try:
        proc = psutil.Process(int(pid))
        with proc.oneshot():
            command_line = " ".join(proc.cmdline()) or proc.name()
            created = proc.create_time()
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        log.debug("process_unavailable", pid=pid)
        return ProcessDetails()

    start_time = datetime.fromtimestamp(created).strftime(START_TIME_FORMAT)
    return ProcessDetails(command_line=command_line, start_time=start_time)


def collect_listeners(timeout: float = 10.0) -> list[ListenerRecord]:
    """Inventory listening sockets as ListenerRecords, one lookup per distinct pid."""
    entries = list_sockets(timeout)
    details: dict[str, ProcessDetails] = {}
    records = []
    for entry in entries:
        if entry.pid not in details:
            details[entry.pid] = describe_process(entry.pid)
        info = details[entry.pid]
        records.append(
            ListenerRecord(
                port=entry.port,
                process_name=entry.process_name,
                pid=entry.pid,
                command_line=info.command_line,
                start_time=info.start_time,
                address=entry.address,
                protocol=entry.protocol,
            )
        )
    return records

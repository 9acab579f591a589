"""Listener records and the aggregates derived from them."""

from dataclasses import dataclass, field

# Shape of ListenerRecord.start_time, same as `ps -o lstart`
START_TIME_FORMAT = "%a %b %d %H:%M:%S %Y"


@dataclass(frozen=True)
class ListenerRecord:
    """One socket/process pair observed listening on the host.

    Produced once per run by the inspector and never mutated afterwards.
    """

    port: int
    process_name: str
    pid: str
    command_line: str = ""
    start_time: str = ""  # e.g. "Sat Oct 18 14:03:11 2026"
    address: str = ""
    protocol: str = ""  # TCP or UDP


@dataclass
class PortGroup:
    """All listener records sharing one port.

    Representative fields come from the first record seen for the port.
    """

    port: int
    process_names: list[str] = field(default_factory=list)  # duplicates kept
    pids: list[str] = field(default_factory=list)  # deduplicated, first-seen order
    representative_command: str = ""
    representative_start_time: str = ""
    protocol: str = ""
    is_local: bool = False
    dev_score: int = 0

    @property
    def owner(self) -> str:
        """Owning process name (first recorded), or "" if none."""
        return self.process_names[0] if self.process_names else ""

    def to_dict(self) -> dict:
        """Serialize to a dictionary."""
        return {
            "port": self.port,
            "process_names": list(self.process_names),
            "pids": list(self.pids),
            "command": self.representative_command,
            "start_time": self.representative_start_time,
            "protocol": self.protocol,
            "is_local": self.is_local,
            "dev_score": self.dev_score,
        }


@dataclass
class ProcessGroup:
    """All ports owned by one process name (multi-port tier only)."""

    process_name: str
    port_pid_pairs: list[tuple[int, str]] = field(default_factory=list)
    representative_command: str = ""
    representative_start_time: str = ""
    is_local: bool = False

    @property
    def ports(self) -> list[int]:
        """Distinct ports in first-seen order."""
        return list(dict.fromkeys(port for port, _ in self.port_pid_pairs))

    def to_dict(self) -> dict:
        """Serialize to a dictionary."""
        return {
            "process_name": self.process_name,
            "port_pid_pairs": [[port, pid] for port, pid in self.port_pid_pairs],
            "command": self.representative_command,
            "start_time": self.representative_start_time,
            "is_local": self.is_local,
        }


@dataclass
class ClassifiedPorts:
    """The four presentation tiers produced by one classification pass."""

    dev: list[PortGroup] = field(default_factory=list)
    others: list[PortGroup] = field(default_factory=list)
    multis: list[PortGroup] = field(default_factory=list)
    process_groups: list[ProcessGroup] = field(default_factory=list)

    @property
    def total(self) -> int:
        """Element count across all four tiers."""
        return len(self.dev) + len(self.others) + len(self.multis) + len(self.process_groups)

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    def to_dict(self) -> dict:
        """Serialize to a dictionary."""
        return {
            "dev": [g.to_dict() for g in self.dev],
            "others": [g.to_dict() for g in self.others],
            "multis": [g.to_dict() for g in self.multis],
            "process_groups": [g.to_dict() for g in self.process_groups],
            "total": self.total,
        }

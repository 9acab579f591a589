"""Configuration system for work-ports."""

from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path

import tomlkit

from work_ports.rules import (
    DEFAULT_DEV_KEYWORDS,
    DEFAULT_DEV_PROCESS_NAMES,
    DEFAULT_EXCLUDE_PROCESS_NAMES,
    DEFAULT_SCORE_THRESHOLD,
    RuleSet,
)

VALID_SORT_MODES = {"default", "recent"}


@dataclass
class RulesConfig:
    """Development-process classification rules.

    All patterns are case-insensitive substrings:
    - dev_process_names: matched against the process name (+30)
    - dev_keywords: matched against the full command line (+25)
    - exclude_process_names: matched against both; any hit scores 0
    """

    dev_process_names: list[str] = field(default_factory=lambda: list(DEFAULT_DEV_PROCESS_NAMES))
    dev_keywords: list[str] = field(default_factory=lambda: list(DEFAULT_DEV_KEYWORDS))
    exclude_process_names: list[str] = field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_PROCESS_NAMES)
    )
    score_threshold: int = DEFAULT_SCORE_THRESHOLD  # Score needed to count as a dev server

    def to_rule_set(self) -> RuleSet:
        """Freeze into the immutable RuleSet used by the classifier."""
        return RuleSet(
            dev_process_names=frozenset(self.dev_process_names),
            dev_keywords=frozenset(self.dev_keywords),
            exclude_process_names=frozenset(self.exclude_process_names),
            score_threshold=self.score_threshold,
        )


@dataclass
class DisplayConfig:
    """Listing defaults. Command-line options override these."""

    sort: str = "default"  # "default" or "recent"
    limit: int = 0  # Max rows per tier, 0 = unlimited
    show_all: bool = False  # Include non-dev ports
    command_width: int = 40  # Max chars of command line shown per row


@dataclass
class SystemConfig:
    """Inspection and logging configuration."""

    lsof_timeout: float = 10.0  # Seconds before giving up on lsof
    # Log file rotation
    log_max_bytes: int = 1024 * 1024  # Max log file size (1MB)
    log_backup_count: int = 2  # Number of backup log files to keep


@dataclass
class KnownPort:
    """Label for a well-known port."""

    name: str
    category: str


def _default_known_ports() -> dict[int, KnownPort]:
    return {
        # Frontend
        3000: KnownPort("React Dev Server", "Frontend"),
        3001: KnownPort("Next.js Dev", "Frontend"),
        5173: KnownPort("Vite Dev Server", "Frontend"),
        # Backend
        4000: KnownPort("API Server", "Backend"),
        8000: KnownPort("HTTP Server Alt", "Backend"),
        8080: KnownPort("HTTP Server", "Backend"),
        # Database
        3306: KnownPort("MySQL", "Database"),
        5432: KnownPort("PostgreSQL", "Database"),
        27017: KnownPort("MongoDB", "Database"),
        # Cache
        6379: KnownPort("Redis", "Cache"),
    }


def _dataclass_to_table(obj: object) -> tomlkit.items.Table:
    """Convert a dataclass instance to a tomlkit Table recursively."""
    table = tomlkit.table()
    for f in fields(obj):  # type: ignore[arg-type]
        value = getattr(obj, f.name)
        if is_dataclass(value) and not isinstance(value, type):
            table.add(f.name, _dataclass_to_table(value))
        else:
            table.add(f.name, value)
    return table


@dataclass
class Config:
    """Main configuration container."""

    rules: RulesConfig = field(default_factory=RulesConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    system: SystemConfig = field(default_factory=SystemConfig)
    ports: dict[int, KnownPort] = field(default_factory=_default_known_ports)

    @property
    def config_dir(self) -> Path:
        """Configuration directory."""
        return Path.home() / ".config" / "work-ports"

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.config_dir / "config.toml"

    @property
    def state_dir(self) -> Path:
        """State directory for logs."""
        return Path.home() / ".local" / "state" / "work-ports"

    @property
    def log_path(self) -> Path:
        """JSON log path."""
        return self.state_dir / "work-ports.log"

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        for name in ["rules", "display", "system"]:
            doc.add(name, _dataclass_to_table(getattr(self, name)))
            doc.add(tomlkit.nl())

        ports = tomlkit.table(is_super_table=True)
        for port in sorted(self.ports):
            ports.add(str(port), _dataclass_to_table(self.ports[port]))
        doc.add("ports", ports)

        path.write_text(tomlkit.dumps(doc))

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values.

        All defaults come from the dataclass definitions, so Config() and
        Config.load() agree.

        Raises:
            ValueError: If the file can't be parsed or holds invalid values.
        """
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path) as f:
                data = tomlkit.load(f).unwrap()
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        try:
            return cls(
                rules=_load_rules_config(data.get("rules", {})),
                display=_load_display_config(data.get("display", {})),
                system=_load_system_config(data.get("system", {})),
                ports=_load_known_ports(data.get("ports"), defaults.ports),
            )
        except ValueError as e:
            raise ValueError(f"Invalid config file {path}: {e}") from e

def _string_list(data: dict, key: str, default: list[str]) -> list[str]:
    value = data.get(key, default)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"{key} must be a list of strings, got {value!r}")
    return list(value)


def _int_value(data: dict, key: str, default: int, minimum: int) -> int:
    # bool is an int subclass; `limit = true` is a typo, not 1
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise ValueError(f"{key} must be an integer >= {minimum}, got {value!r}")
    return value


def _load_rules_config(data: dict) -> RulesConfig:
    """Load rules config from TOML data, using dataclass defaults for missing fields."""
    d = RulesConfig()
    return RulesConfig(
        dev_process_names=_string_list(data, "dev_process_names", d.dev_process_names),
        dev_keywords=_string_list(data, "dev_keywords", d.dev_keywords),
        exclude_process_names=_string_list(data, "exclude_process_names", d.exclude_process_names),
        score_threshold=_int_value(data, "score_threshold", d.score_threshold, 0),
    )


def _load_display_config(data: dict) -> DisplayConfig:
    """Load display config from TOML data."""
    d = DisplayConfig()
    sort = data.get("sort", d.sort)
    show_all = data.get("show_all", d.show_all)

    if not isinstance(sort, str) or sort not in VALID_SORT_MODES:
        raise ValueError(f"Invalid sort: {sort!r}. Must be one of {sorted(VALID_SORT_MODES)}")
    if not isinstance(show_all, bool):
        raise ValueError(f"show_all must be true or false, got {show_all!r}")

    return DisplayConfig(
        sort=sort,
        limit=_int_value(data, "limit", d.limit, 0),
        show_all=show_all,
        command_width=_int_value(data, "command_width", d.command_width, 10),
    )


def _load_system_config(data: dict) -> SystemConfig:
    """Load system config from TOML data."""
    d = SystemConfig()
    lsof_timeout = data.get("lsof_timeout", d.lsof_timeout)
    if (
        isinstance(lsof_timeout, bool)
        or not isinstance(lsof_timeout, (int, float))
        or lsof_timeout <= 0
    ):
        raise ValueError(f"lsof_timeout must be a number > 0, got {lsof_timeout!r}")

    return SystemConfig(
        lsof_timeout=lsof_timeout,
        log_max_bytes=_int_value(data, "log_max_bytes", d.log_max_bytes, 0),
        log_backup_count=_int_value(data, "log_backup_count", d.log_backup_count, 0),
    )


def _load_known_ports(data: dict | None, defaults: dict[int, KnownPort]) -> dict[int, KnownPort]:
    """Load [ports."<n>"] tables. A present [ports] section replaces the defaults."""
    if data is None:
        return defaults
    if not isinstance(data, dict):
        raise ValueError(f"ports must be a table, got {data!r}")

    ports = {}
    for key, entry in data.items():
        try:
            port = int(key)
        except ValueError:
            raise ValueError(f"Port key must be a number, got {key!r}") from None
        if not 0 < port <= 65535:
            raise ValueError(f"Port out of range: {port}")
        if not isinstance(entry, dict):
            raise ValueError(f"ports.{key} must be a table with name and category, got {entry!r}")

        name = entry.get("name", "")
        category = entry.get("category", "")
        if not isinstance(name, str) or not isinstance(category, str):
            raise ValueError(f"ports.{key} name and category must be strings")
        ports[port] = KnownPort(name=name, category=category)
    return ports

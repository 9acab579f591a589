"""Rich table and JSON rendering of classified ports."""

import json

from rich.console import Console
from rich.table import Table

from work_ports.config import KnownPort
from work_ports.formatting import (
    format_address,
    format_pids,
    format_port_pids,
    format_process_names,
    truncate,
)
from work_ports.models import ClassifiedPorts, PortGroup, ProcessGroup


def _category(port: int, known_ports: dict[int, KnownPort]) -> str:
    known = known_ports.get(port)
    return known.category if known else ""


def _port_table(
    title: str,
    groups: list[PortGroup],
    known_ports: dict[int, KnownPort],
    command_width: int,
    *,
    show_score: bool,
) -> Table:
    table = Table(title=title, title_justify="left", title_style="bold")
    table.add_column("PORT", justify="right", style="cyan")
    table.add_column("PROCESS")
    table.add_column("PID", style="dim")
    table.add_column("TYPE")
    if show_score:
        table.add_column("SCORE", justify="right")
    table.add_column("ADDR")
    table.add_column("CATEGORY")
    table.add_column("STARTED", style="dim")
    table.add_column("COMMAND", no_wrap=True)

    for group in groups:
        row = [
            str(group.port),
            format_process_names(group.process_names),
            format_pids(group.pids),
            group.protocol or "-",
        ]
        if show_score:
            row.append(str(group.dev_score))
        row.extend(
            [
                format_address(group.is_local),
                _category(group.port, known_ports),
                group.representative_start_time,
                truncate(group.representative_command, command_width),
            ]
        )
        table.add_row(*row)
    return table


def _process_table(groups: list[ProcessGroup], command_width: int) -> Table:
    table = Table(title="Multi-port processes", title_justify="left", title_style="bold")
    table.add_column("PROCESS")
    table.add_column("PORTS (PID)", style="cyan")
    table.add_column("ADDR")
    table.add_column("STARTED", style="dim")
    table.add_column("COMMAND", no_wrap=True)

    for group in groups:
        table.add_row(
            group.process_name,
            format_port_pids(group.port_pid_pairs),
            format_address(group.is_local),
            group.representative_start_time,
            truncate(group.representative_command, command_width),
        )
    return table


def render_tables(
    result: ClassifiedPorts,
    console: Console,
    known_ports: dict[int, KnownPort] | None = None,
    command_width: int = 40,
) -> None:
    """Print each non-empty tier as a table, followed by the total count.

    An empty result is reported by the caller, which knows whether hidden
    tiers might hold ports.
    """
    known_ports = known_ports or {}

    port_tiers = [
        ("Development servers", result.dev, True),
        ("Other ports", result.others, False),
        ("Shared ports", result.multis, False),
    ]
    for title, groups, show_score in port_tiers:
        if groups:
            console.print(
                _port_table(title, groups, known_ports, command_width, show_score=show_score)
            )
            console.print()
    if result.process_groups:
        console.print(_process_table(result.process_groups, command_width))
        console.print()

    suffix = "" if result.total == 1 else "s"
    console.print(f"[bold]{result.total}[/] port{suffix} found")


def render_json(result: ClassifiedPorts) -> str:
    """Serialize the tiers as indented JSON."""
    return json.dumps(result.to_dict(), indent=2)

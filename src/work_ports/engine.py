"""Listener classification pipeline.

records -> filter -> aggregate by port -> partition into tiers
        -> regroup multi-port processes -> sort & limit each tier

Every stage is a pure in-memory transformation. Grouping uses insertion-ordered
dicts so "first record wins" is reproducible before sorting.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime
from enum import Enum
from typing import TypeVar

import structlog

from work_ports.models import (
    START_TIME_FORMAT,
    ClassifiedPorts,
    ListenerRecord,
    PortGroup,
    ProcessGroup,
)
from work_ports.rules import RuleSet, dev_score, is_local_address

log = structlog.get_logger()

T = TypeVar("T", PortGroup, ProcessGroup)


class SortMode(str, Enum):
    """Tier orderings."""

    DEFAULT = "default"
    RECENT = "recent"


# ─────────────────────────────────────────────────────────────────────────────
# Filtering & Aggregation
# ─────────────────────────────────────────────────────────────────────────────


def filter_records(
    records: Iterable[ListenerRecord],
    port: int | None = None,
    process: str | None = None,
) -> list[ListenerRecord]:
    """Keep records matching an exact port and/or a process name substring."""
    needle = process.lower() if process else None
    return [
        r
        for r in records
        if (port is None or r.port == port)
        and (needle is None or needle in r.process_name.lower())
    ]


def aggregate(records: Iterable[ListenerRecord], rules: RuleSet) -> list[PortGroup]:
    """Group records by port, one PortGroup per distinct port.

    The first record for a port supplies the representative command, start
    time, protocol, locality and the basis for the dev score.
    """
    groups: dict[int, PortGroup] = {}
    for record in records:
        group = groups.get(record.port)
        if group is None:
            group = PortGroup(
                port=record.port,
                representative_command=record.command_line,
                representative_start_time=record.start_time,
                protocol=record.protocol,
                is_local=is_local_address(record.address),
                dev_score=dev_score(
                    record.process_name,
                    record.command_line,
                    record.port,
                    record.address,
                    rules,
                ),
            )
            groups[record.port] = group
        group.process_names.append(record.process_name)
        if record.pid not in group.pids:
            group.pids.append(record.pid)
    return list(groups.values())


# ─────────────────────────────────────────────────────────────────────────────
# Partitioning
# ─────────────────────────────────────────────────────────────────────────────


def _bucket_by_owner(groups: Iterable[PortGroup]) -> dict[str, list[PortGroup]]:
    """Bucket groups by owning process name, preserving encounter order."""
    buckets: dict[str, list[PortGroup]] = {}
    for group in groups:
        buckets.setdefault(group.owner, []).append(group)
    return buckets


def partition(
    groups: Sequence[PortGroup],
    threshold: int,
    show_all: bool,
) -> tuple[list[PortGroup], list[PortGroup], list[PortGroup], list[PortGroup]]:
    """Split port groups into disjoint tiers.

    Returns:
        (dev, others, multis, process_groups_seed) where
        - dev: dev_score >= threshold
        - others: sole port of its owner, held by a single pid
        - multis: sole port of its owner, shared by several pids
        - seed: owner holds more than one port (fed to regroup_by_process)

        Non-dev groups are dropped entirely unless show_all is set.
    """
    dev = [g for g in groups if g.dev_score >= threshold]
    remainder = [g for g in groups if g.dev_score < threshold] if show_all else []

    others: list[PortGroup] = []
    multis: list[PortGroup] = []
    seed: list[PortGroup] = []
    for bucket in _bucket_by_owner(remainder).values():
        if len(bucket) > 1:
            seed.extend(bucket)
        elif len(bucket[0].pids) == 1:
            others.append(bucket[0])
        else:
            multis.append(bucket[0])
    return dev, others, multis, seed


def regroup_by_process(seed: Iterable[PortGroup]) -> list[ProcessGroup]:
    """Fold port groups into one ProcessGroup per owning process name."""
    result = []
    for name, bucket in _bucket_by_owner(seed).items():
        first = bucket[0]
        result.append(
            ProcessGroup(
                process_name=name,
                port_pid_pairs=[(g.port, pid) for g in bucket for pid in g.pids],
                representative_command=first.representative_command,
                representative_start_time=first.representative_start_time,
                is_local=first.is_local,
            )
        )
    return result


# ─────────────────────────────────────────────────────────────────────────────
# Sort & Limit
# ─────────────────────────────────────────────────────────────────────────────


def parse_start_time(value: str) -> datetime | None:
    """Parse an lstart-style timestamp, or None if it has another shape."""
    try:
        return datetime.strptime(value.strip(), START_TIME_FORMAT)
    except ValueError:
        return None


def _recent_key(item: PortGroup | ProcessGroup) -> tuple[int, datetime, str]:
    # Parsed timestamps outrank unparseable ones; the latter fall back to
    # lexical order among themselves.
    raw = item.representative_start_time
    parsed = parse_start_time(raw)
    if parsed is None:
        return (0, datetime.min, raw)
    return (1, parsed, "")


def _default_key(item: PortGroup | ProcessGroup) -> int | str:
    if isinstance(item, ProcessGroup):
        return item.process_name
    return item.port


def sort_and_limit(
    tier: Iterable[T],
    mode: SortMode = SortMode.DEFAULT,
    limit: int = 0,
    *,
    by_score: bool = False,
) -> list[T]:
    """Order a tier and truncate it to its first `limit` elements.

    Args:
        tier: PortGroups or ProcessGroups
        mode: RECENT sorts newest start time first; DEFAULT sorts by port
            (or process name), or by descending score then port if by_score
        limit: Max elements to keep; 0 keeps everything
        by_score: Use the dev-tier ordering in DEFAULT mode
    """
    if mode == SortMode.RECENT:
        ordered = sorted(tier, key=_recent_key, reverse=True)
    elif by_score:
        ordered = sorted(tier, key=lambda g: (-g.dev_score, g.port))
    else:
        ordered = sorted(tier, key=_default_key)

    if limit > 0:
        return ordered[:limit]
    return ordered


# ─────────────────────────────────────────────────────────────────────────────
# Pipeline
# ─────────────────────────────────────────────────────────────────────────────


def classify_listeners(
    records: Iterable[ListenerRecord],
    rules: RuleSet,
    *,
    show_all: bool = False,
    mode: SortMode = SortMode.DEFAULT,
    limit: int = 0,
    port: int | None = None,
    process: str | None = None,
) -> ClassifiedPorts:
    """Run the full classification pass over raw listener records."""
    selected = filter_records(records, port=port, process=process)
    groups = aggregate(selected, rules)
    dev, others, multis, seed = partition(groups, rules.score_threshold, show_all)
    process_groups = regroup_by_process(seed)

    result = ClassifiedPorts(
        dev=sort_and_limit(dev, mode, limit, by_score=True),
        others=sort_and_limit(others, mode, limit),
        multis=sort_and_limit(multis, mode, limit),
        process_groups=sort_and_limit(process_groups, mode, limit),
    )
    log.debug(
        "listeners_classified",
        records=len(selected),
        ports=len(groups),
        dev=len(result.dev),
        others=len(result.others),
        multis=len(result.multis),
        process_groups=len(result.process_groups),
        mode=mode.value,
        limit=limit,
    )
    return result

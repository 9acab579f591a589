"""Formatting utilities for table and JSON output."""


def truncate(text: str, length: int) -> str:
    """Shorten text to at most `length` characters, marking the cut with '..'.

    Args:
        text: Text to shorten
        length: Maximum length of the result (values below 3 are treated as 3)

    Returns:
        The original text if it fits, otherwise a prefix ending in "..".
    """
    length = max(length, 3)
    if len(text) <= length:
        return text
    return text[: length - 2] + ".."


def format_pids(pids: list[str]) -> str:
    """Join pids for a single cell: "111, 222"."""
    return ", ".join(pids) if pids else "-"


def format_port_pids(pairs: list[tuple[int, str]]) -> str:
    """Format (port, pid) pairs as "3000 (111), 3001 (111)"."""
    return ", ".join(f"{port} ({pid})" for port, pid in pairs) if pairs else "-"


def format_process_names(names: list[str]) -> str:
    """Distinct process names in first-seen order: "node, bun"."""
    return ", ".join(dict.fromkeys(names)) if names else "-"


def format_address(is_local: bool) -> str:
    """Short locality label for the ADDR column."""
    return "local" if is_local else "remote"

"""Tests for formatting utilities."""

from work_ports.formatting import (
    format_address,
    format_pids,
    format_port_pids,
    format_process_names,
    truncate,
)


class TestTruncate:
    """Tests for truncate."""

    def test_fits(self) -> None:
        assert truncate("vite dev", 40) == "vite dev"

    def test_exact_length(self) -> None:
        assert truncate("abcde", 5) == "abcde"

    def test_cut(self) -> None:
        result = truncate("node /Users/dev/app/node_modules/.bin/next dev", 12)
        assert result == "node /User.."
        assert len(result) == 12

    def test_tiny_length(self) -> None:
        """Lengths below 3 still leave room for one character plus the marker."""
        assert truncate("abcdef", 1) == "a.."


class TestFormatCells:
    """Tests for table cell helpers."""

    def test_pids(self) -> None:
        assert format_pids(["111", "222"]) == "111, 222"
        assert format_pids([]) == "-"

    def test_port_pids(self) -> None:
        assert format_port_pids([(3000, "111"), (3001, "111")]) == "3000 (111), 3001 (111)"
        assert format_port_pids([]) == "-"

    def test_process_names_deduplicated(self) -> None:
        assert format_process_names(["node", "node", "bun", "node"]) == "node, bun"
        assert format_process_names([]) == "-"

    def test_address_label(self) -> None:
        assert format_address(True) == "local"
        assert format_address(False) == "remote"

"""Development-process classification rules and scoring.

A listener's dev score is the sum of four independent signals:

- process name matches a dev process pattern (+30)
- command line matches a dev keyword (+25)
- bound to a loopback or wildcard address (+10)
- port sits in a conventional dev-server range (+15)

Any exclusion pattern in the name or command line forces the score to 0.
All pattern matching is case-insensitive substring containment.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

NAME_WEIGHT = 30
KEYWORD_WEIGHT = 25
LOCAL_ADDRESS_WEIGHT = 10
PORT_RANGE_WEIGHT = 15

MAX_SCORE = NAME_WEIGHT + KEYWORD_WEIGHT + LOCAL_ADDRESS_WEIGHT + PORT_RANGE_WEIGHT

DEFAULT_SCORE_THRESHOLD = 30

LOCAL_ADDRESSES = frozenset({"127.0.0.1", "localhost", "0.0.0.0", "*", "[::1]", "[::]"})

# Inclusive ranges
DEV_PORT_RANGES = (
    (3000, 3999),
    (4000, 4999),
    (5000, 5999),
    (8000, 8999),
    (9000, 9999),
)

DEFAULT_DEV_PROCESS_NAMES = (
    "node",
    "deno",
    "python",
    "ruby",
    "php",
    "java",
    "dotnet",
    "uvicorn",
    "gunicorn",
    "hypercorn",
    "flask",
    "vite",
    "webpack",
    "next-server",
    "esbuild",
    "hugo",
    "jekyll",
)

DEFAULT_DEV_KEYWORDS = (
    "dev",
    "http.server",
    "npm run",
    "yarn",
    "pnpm",
    "watch",
    "vite",
    "webpack",
    "next",
    "nuxt",
    "react-scripts",
    "storybook",
    "runserver",
    "uvicorn",
    "flask run",
    "rails s",
    "--reload",
    "--hot",
    "jupyter",
)

DEFAULT_EXCLUDE_PROCESS_NAMES = (
    "Code Helper",
    "Electron",
    "Google Chrome",
    "Slack",
    "Discord",
    "Spotify",
    "Dropbox",
    "zoom.us",
    "rapportd",
    "ControlCenter",
    "Figma",
)


def _normalize(patterns: Iterable[str]) -> frozenset[str]:
    """Lower-case and strip patterns, dropping blanks (a blank matches everything)."""
    return frozenset(p.strip().lower() for p in patterns if p and p.strip())


@dataclass(frozen=True)
class RuleSet:
    """Immutable classification rules, passed explicitly to every scoring call."""

    dev_process_names: frozenset[str] = field(
        default_factory=lambda: frozenset(DEFAULT_DEV_PROCESS_NAMES)
    )
    dev_keywords: frozenset[str] = field(default_factory=lambda: frozenset(DEFAULT_DEV_KEYWORDS))
    exclude_process_names: frozenset[str] = field(
        default_factory=lambda: frozenset(DEFAULT_EXCLUDE_PROCESS_NAMES)
    )
    score_threshold: int = DEFAULT_SCORE_THRESHOLD

    def __post_init__(self) -> None:
        if self.score_threshold < 0:
            raise ValueError(f"score_threshold must be >= 0, got {self.score_threshold}")
        object.__setattr__(self, "dev_process_names", _normalize(self.dev_process_names))
        object.__setattr__(self, "dev_keywords", _normalize(self.dev_keywords))
        object.__setattr__(self, "exclude_process_names", _normalize(self.exclude_process_names))


def _contains_any(text: str, patterns: frozenset[str]) -> bool:
    lowered = text.lower()
    return any(p in lowered for p in patterns)


def is_local_address(address: str) -> bool:
    """Return True for loopback and wildcard bind addresses."""
    return address.strip().lower() in LOCAL_ADDRESSES


def in_dev_port_range(port: int) -> bool:
    """Return True if port falls in one of the dev-server ranges."""
    return any(low <= port <= high for low, high in DEV_PORT_RANGES)


def dev_score(
    process_name: str,
    command_line: str,
    port: int,
    address: str,
    rules: RuleSet,
) -> int:
    """Score one listener against the rules. Pure and deterministic.

    Returns:
        Integer in 0..MAX_SCORE. Exclusion matches always return 0.
    """
    if _contains_any(process_name, rules.exclude_process_names) or _contains_any(
        command_line, rules.exclude_process_names
    ):
        return 0

    score = 0
    if _contains_any(process_name, rules.dev_process_names):
        score += NAME_WEIGHT
    if _contains_any(command_line, rules.dev_keywords):
        score += KEYWORD_WEIGHT
    if is_local_address(address):
        score += LOCAL_ADDRESS_WEIGHT
    if in_dev_port_range(port):
        score += PORT_RANGE_WEIGHT
    return score


def is_dev(score: int, rules: RuleSet) -> bool:
    """Return True if a score classifies its listener as a development process."""
    return score >= rules.score_threshold

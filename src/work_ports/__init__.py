"""work-ports: see which local processes own which listening ports."""

__version__ = "0.3.0"

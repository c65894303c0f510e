# src/logging/handlers.py - v2
"""Size-based rotating file handler for docuforge logs."""

from __future__ import annotations

import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

_SIZE_RE = re.compile(r"^(\d+)\s*(B|KB|MB|GB)$", re.IGNORECASE)
_MULTIPLIERS = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}


def parse_size(size_str: str) -> int:
    """Parse a size string like '10MB' into bytes."""
    match = _SIZE_RE.match(size_str.strip())
    if not match:
        raise ValueError(f"Invalid size format: {size_str!r}. Use e.g. '10MB'.")
    return int(match.group(1)) * _MULTIPLIERS[match.group(2).upper()]


def create_rotating_handler(
    log_file: str,
    rotation: str = "10MB",
    retention: int = 30,
) -> RotatingFileHandler:
    """Rotating handler writing UTF-8 to ``log_file``; parent dirs are created."""
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        filename=str(path),
        maxBytes=parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
    )

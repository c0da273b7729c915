from __future__ import annotations

"""Helpers for loading environment configuration."""

import logging
import os
from pathlib import Path
from typing import Optional, Tuple, Union

_ENV_LOADED = False

_LOGGER = logging.getLogger(__name__)


def load_dotenv(dotenv_path: Union[str, Path] = ".env") -> None:
    """Load environment variables from a simple ``.env`` file if present.

    Variables already present in the process environment win over the file.
    """
    global _ENV_LOADED
    if _ENV_LOADED:
        return

    path = Path(dotenv_path)
    if path.exists():
        _LOGGER.debug("Loading environment overrides from %s", path)
        for line in path.read_text().splitlines():
            parsed = _parse_line(line)
            if parsed:
                key, value = parsed
                os.environ.setdefault(key, value)

    _ENV_LOADED = True


def _parse_line(line: str) -> Optional[Tuple[str, str]]:
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None

    if stripped.startswith("export "):
        stripped = stripped[len("export "):].lstrip()

    if "=" not in stripped:
        return None

    key, value = stripped.split("=", 1)
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        value = value[1:-1]
    return (key.strip(), value)


def truthy(value: Optional[str]) -> bool:
    """Interpret common flag spellings (1/true/yes/on)."""
    if value is None:
        return False
    lowered = str(value).strip().lower()
    return lowered in {"1", "true", "t", "yes", "on"}


def read_positive_int(name: str, default: int) -> int:
    """Read ``name`` as a positive integer, falling back to ``default``.

    Missing, malformed and non-positive values all yield ``default``; the
    latter two are logged so misconfiguration is visible.
    """
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        _LOGGER.warning(
            "%s=%r is not an integer; using default %d", name, raw, default
        )
        return default
    if value <= 0:
        _LOGGER.warning(
            "%s=%d must be positive; using default %d", name, value, default
        )
        return default
    return value

"""
DeployWatch Repository
Introductory remarks: This module is part of the DeployWatch codebase.

Central configuration constants and environment-backed settings.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from deploywatch.errors import ConfigurationError
from deploywatch.utils.env import load_dotenv, read_positive_int

# API ----------------------------------------------------------------------

DEFAULT_BASE_URL = "https://api.baseten.co/v1"
"""Root of the inventory API."""

MODELS_ENDPOINT = "/models"
DEPLOYMENTS_ENDPOINT = "/models/{model_id}/deployments"

# Refresh and fan-out -------------------------------------------------------

DEFAULT_UPDATE_EVERY = 60
"""Seconds between background refreshes."""

DEFAULT_TIMEOUT_SECONDS = 30
"""Per-request timeout in seconds."""

DEFAULT_MAX_PARALLELISM = 64
"""Upper bound on concurrent deployment fetches."""

# Query function ------------------------------------------------------------

FUNCTION_NAME = "deployments"
FUNCTION_DESCRIPTION = (
    "View Baseten AI model deployments with status, environment, "
    "and resource information"
)

QUERY_MODE_CACHE = "cache"
QUERY_MODE_LIVE = "live"
QUERY_MODES = (QUERY_MODE_CACHE, QUERY_MODE_LIVE)

# Environment variables -----------------------------------------------------

ENV_API_KEY = "BASETEN_API_KEY"
ENV_API_KEY_FALLBACK = "NETDATA_BASETEN_API_KEY"
ENV_UPDATE_EVERY = "DEPLOYWATCH_UPDATE_EVERY"
ENV_TIMEOUT = "DEPLOYWATCH_TIMEOUT"
ENV_PARALLELISM = "DEPLOYWATCH_PARALLELISM"
ENV_BASE_URL = "DEPLOYWATCH_BASE_URL"
ENV_QUERY_MODE = "DEPLOYWATCH_QUERY_MODE"

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the poller and the query handler."""

    api_key: str
    update_every: int = DEFAULT_UPDATE_EVERY
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    parallelism: Optional[int] = None
    base_url: str = DEFAULT_BASE_URL
    query_mode: str = QUERY_MODE_CACHE

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the environment (and ``.env`` when present)."""
        load_dotenv()

        api_key = _read_api_key()
        if not api_key:
            raise ConfigurationError(
                f"API key not configured. Set {ENV_API_KEY} "
                f"(or {ENV_API_KEY_FALLBACK})."
            )

        parallelism: Optional[int] = None
        if os.environ.get(ENV_PARALLELISM, "").strip():
            parallelism = read_positive_int(
                ENV_PARALLELISM, DEFAULT_MAX_PARALLELISM
            )

        query_mode = (
            os.environ.get(ENV_QUERY_MODE, QUERY_MODE_CACHE).strip().lower()
        )
        if query_mode not in QUERY_MODES:
            _LOGGER.warning(
                "Unknown query mode %r; using %r", query_mode, QUERY_MODE_CACHE
            )
            query_mode = QUERY_MODE_CACHE

        base_url = os.environ.get(ENV_BASE_URL, "").strip() or DEFAULT_BASE_URL

        settings = cls(
            api_key=api_key,
            update_every=read_positive_int(
                ENV_UPDATE_EVERY, DEFAULT_UPDATE_EVERY
            ),
            timeout_seconds=read_positive_int(
                ENV_TIMEOUT, DEFAULT_TIMEOUT_SECONDS
            ),
            parallelism=parallelism,
            base_url=base_url.rstrip("/"),
            query_mode=query_mode,
        )
        _LOGGER.info(
            "Configuration loaded - update_every=%d, timeout=%d, "
            "parallelism=%s, query_mode=%s",
            settings.update_every,
            settings.timeout_seconds,
            settings.parallelism or "auto",
            settings.query_mode,
        )
        return settings


def _read_api_key() -> str:
    for name in (ENV_API_KEY, ENV_API_KEY_FALLBACK):
        value = os.environ.get(name, "").strip()
        if value:
            _LOGGER.info("Using API key from environment variable %s", name)
            return value
    return ""


def api_key_preview(api_key: str) -> str:
    """Return a log-safe prefix of ``api_key``."""
    if len(api_key) < 8:
        return "<hidden>"
    return f"{api_key[:8]}..."

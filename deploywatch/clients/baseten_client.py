from __future__ import annotations

"""Authenticated client for the Baseten model inventory API."""

import logging
import time
from typing import Callable, Optional, TypeVar
from urllib.parse import quote

import requests  # type: ignore[import]

from deploywatch.config import (DEFAULT_BASE_URL, DEFAULT_TIMEOUT_SECONDS,
                                DEPLOYMENTS_ENDPOINT, MODELS_ENDPOINT,
                                api_key_preview)
from deploywatch.errors import (BODY_PREVIEW_LIMIT, ConfigurationError,
                                HttpStatusError, TransportError)


T = TypeVar("T")


class BasetenClient:
    """Issue authenticated GET requests against the inventory API.

    The client never retries: a failed request raises
    :class:`~deploywatch.errors.TransportError` or
    :class:`~deploywatch.errors.HttpStatusError` and the caller decides what
    to do. TLS verification is always enabled.
    """

    def __init__(
        self,
        api_key: str,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._logger = logger or logging.getLogger(self.__class__.__name__)
        if not api_key or not api_key.strip():
            raise ConfigurationError("An API key is required.")
        if timeout_seconds <= 0:
            raise ConfigurationError("timeout_seconds must be positive.")

        self._api_key = api_key.strip()
        self._timeout_seconds = float(timeout_seconds)
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    def fetch(
        self,
        endpoint: str,
        *,
        timeout_seconds: Optional[float] = None,
    ) -> bytes:
        """GET ``endpoint`` and return the raw response body."""

        url = f"{self._base_url}{endpoint}"
        timeout = timeout_seconds or self._timeout_seconds

        def _operation() -> bytes:
            self._logger.info(
                "Making API request to %s (API key: %s)",
                endpoint,
                api_key_preview(self._api_key),
            )
            try:
                response = self._session.get(
                    url,
                    headers=self._build_headers(),
                    timeout=timeout,
                    verify=True,
                    allow_redirects=True,
                )
            except requests.RequestException as exc:
                self._logger.error(
                    "Request to %s failed: %s", endpoint, exc
                )
                raise TransportError(
                    f"Request to {endpoint} failed: {exc}",
                    endpoint=endpoint,
                ) from exc

            body = response.content or b""
            if not 200 <= response.status_code < 300:
                preview = body[:BODY_PREVIEW_LIMIT].decode(
                    "utf-8", errors="replace"
                )
                self._logger.error(
                    "API endpoint %s returned HTTP %d - Response: %s",
                    endpoint,
                    response.status_code,
                    preview or "(no response body)",
                )
                raise HttpStatusError(
                    response.status_code,
                    preview,
                    endpoint=endpoint,
                )

            self._logger.info(
                "Fetched data from %s (response size: %d bytes)",
                endpoint,
                len(body),
            )
            return body

        return self._execute_timed(_operation, name=f"baseten.get({endpoint})")

    def list_models_raw(self) -> bytes:
        """Return the raw ``/models`` payload."""
        return self.fetch(MODELS_ENDPOINT)

    def list_deployments_raw(self, model_id: str) -> bytes:
        """Return the raw deployments payload for ``model_id``."""
        endpoint = DEPLOYMENTS_ENDPOINT.format(
            model_id=quote(model_id, safe="")
        )
        return self.fetch(endpoint)

    def close(self) -> None:
        self._session.close()

    def _build_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Api-Key {self._api_key}",
            "Accept": "application/json",
        }

    def _execute_timed(
        self,
        operation: Callable[[], T],
        *,
        name: Optional[str] = None,
    ) -> T:
        """Run ``operation`` once and log how long it took."""
        label = name or getattr(operation, "__name__", "<anonymous>")

        started_at = time.perf_counter()
        try:
            return operation()
        finally:
            elapsed_ms = (time.perf_counter() - started_at) * 1000.0
            if self._logger.isEnabledFor(logging.DEBUG):
                self._logger.debug(
                    "Operation %s completed in %.2f ms",
                    label,
                    elapsed_ms,
                )

"""Answer deployments table queries from the cache or a live fetch."""

from __future__ import annotations

import logging
import shlex
from typing import Any, Dict, Mapping, Optional

from deploywatch.cache.snapshot_cache import SnapshotCache
from deploywatch.config import (DEFAULT_UPDATE_EVERY, FUNCTION_NAME,
                                QUERY_MODE_CACHE, QUERY_MODE_LIVE, QUERY_MODES)
from deploywatch.errors import DecodeError, FetchError, RefreshCancelled
from deploywatch.fetch.engine import FetchEngine
from deploywatch.query.table import info_response, render
from deploywatch.utils.env import truthy

logger = logging.getLogger(__name__)

NOT_POPULATED_MESSAGE = (
    "Deployment data is not available yet; the first refresh has not "
    "completed."
)


def parse_function_args(invocation: str) -> Dict[str, Any]:
    """Turn a host function call line into query params.

    ``"deployments info"`` becomes ``{"info": True}``; ``key:value`` and
    ``key=value`` tokens are kept as strings. The function name itself is
    dropped.
    """
    params: Dict[str, Any] = {}
    for token in shlex.split(invocation or ""):
        if token == FUNCTION_NAME:
            continue
        if token == "info":
            params["info"] = True
            continue
        for separator in (":", "="):
            if separator in token:
                key, value = token.split(separator, 1)
                params[key.strip()] = value.strip()
                break
    return params


class QueryHandler:
    """Serve the deployments table.

    In ``cache`` mode (the default) a query renders whatever the refresh
    scheduler last published, so its latency does not depend on the API. In
    ``live`` mode every query runs a synchronous refresh first and falls back
    to the cached snapshot if that refresh fails. Fetch and decode errors
    never escape :meth:`handle_query`.
    """

    def __init__(
        self,
        cache: SnapshotCache,
        *,
        engine: Optional[FetchEngine] = None,
        mode: str = QUERY_MODE_CACHE,
        update_every: int = DEFAULT_UPDATE_EVERY,
    ) -> None:
        if mode not in QUERY_MODES:
            raise ValueError(
                f"mode must be one of {', '.join(QUERY_MODES)}, got {mode!r}"
            )
        if mode == QUERY_MODE_LIVE and engine is None:
            raise ValueError("live mode requires a fetch engine")
        self._cache = cache
        self._engine = engine
        self._mode = mode
        self._update_every = update_every

    @property
    def mode(self) -> str:
        return self._mode

    def handle_query(
        self, params: Optional[Mapping[str, Any]] = None
    ) -> Dict[str, Any]:
        """Return the table response for ``params``."""
        params = params or {}
        if _is_info_request(params):
            return info_response(update_every=self._update_every)

        warning: Optional[str] = None
        if self._mode == QUERY_MODE_LIVE:
            warning = self._refresh_live()

        snapshot = self._cache.get()
        response = render(snapshot, update_every=self._update_every)

        if warning is None:
            last_error = self._cache.last_error
            if last_error is not None:
                warning = f"Last refresh failed: {last_error}"
        if warning is not None:
            response["warning"] = warning
        if not snapshot.populated:
            response["message"] = NOT_POPULATED_MESSAGE

        logger.info(
            "Answered deployments query (mode: %s, rows: %d)",
            self._mode,
            len(response["data"]),
        )
        return response

    def _refresh_live(self) -> Optional[str]:
        assert self._engine is not None
        logger.info("Fetching fresh data from API...")
        try:
            snapshot = self._engine.refresh_all()
        except RefreshCancelled:
            return "Live fetch cancelled by shutdown; serving cached data"
        except (FetchError, DecodeError) as exc:
            logger.error("Live fetch failed, serving cached data: %s", exc)
            self._cache.record_failure(exc)
            return f"Failed to fetch models from Baseten API: {exc}"
        self._cache.swap(snapshot)
        return None


def _is_info_request(params: Mapping[str, Any]) -> bool:
    if "info" not in params:
        return False
    value = params["info"]
    if isinstance(value, bool):
        return value
    # A bare flag such as "?info" arrives with an empty value.
    if value is None or not str(value).strip():
        return True
    return truthy(str(value))

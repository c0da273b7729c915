"""Tests for the deployments query handler."""

from __future__ import annotations

from typing import Any

import pytest

from deploywatch.cache.snapshot_cache import SnapshotCache
from deploywatch.errors import DecodeError, HttpStatusError, TransportError
from deploywatch.fetch.engine import FetchEngine
from deploywatch.models import Model, Snapshot
from deploywatch.query.handler import (NOT_POPULATED_MESSAGE, QueryHandler,
                                       parse_function_args)


def _live_handler(client: Any, cache: SnapshotCache) -> QueryHandler:
    return QueryHandler(cache, engine=FetchEngine(client), mode="live")


def test_info_request_performs_no_fetch(inventory) -> None:
    client = inventory(3)
    handler = _live_handler(client, SnapshotCache())

    response = handler.handle_query({"info": "1"})

    assert "data" not in response
    assert len(response["columns"]) == 10
    assert client.total_calls == 0


@pytest.mark.parametrize("value", [True, "true", "yes", "on", "", None])
def test_info_flag_spellings(value) -> None:
    handler = QueryHandler(SnapshotCache())

    assert "data" not in handler.handle_query({"info": value})


def test_cache_mode_serves_published_snapshot_without_fetching(
    inventory,
) -> None:
    cache = SnapshotCache()
    cache.swap(FetchEngine(inventory(2)).refresh_all())
    handler = QueryHandler(cache)

    response = handler.handle_query()

    assert len(response["data"]) == 2
    assert "warning" not in response
    assert "message" not in response


def test_cache_mode_before_first_refresh_reports_not_populated() -> None:
    handler = QueryHandler(SnapshotCache())

    response = handler.handle_query({})

    assert response["status"] == 200
    assert response["data"] == []
    assert response["message"] == NOT_POPULATED_MESSAGE


def test_cache_mode_surfaces_last_refresh_error() -> None:
    cache = SnapshotCache()
    cache.swap(Snapshot(models=[Model(id="m1")]))
    cache.record_failure(TransportError("connection refused"))
    handler = QueryHandler(cache)

    response = handler.handle_query()

    assert response["warning"].startswith("Last refresh failed:")
    assert "connection refused" in response["warning"]


def test_live_mode_refreshes_and_publishes(inventory) -> None:
    client = inventory(3)
    cache = SnapshotCache()
    handler = _live_handler(client, cache)

    response = handler.handle_query()

    assert len(response["data"]) == 3
    assert client.model_calls == 1
    assert cache.generation == 1


def test_live_mode_failure_falls_back_to_cached_snapshot(
    inventory, fake_client_cls
) -> None:
    cache = SnapshotCache()
    cache.swap(FetchEngine(inventory(2)).refresh_all())
    failing = fake_client_cls(HttpStatusError(503, "unavailable"))
    handler = _live_handler(failing, cache)

    response = handler.handle_query()

    assert len(response["data"]) == 2
    assert response["warning"].startswith(
        "Failed to fetch models from Baseten API"
    )
    assert isinstance(cache.last_error, HttpStatusError)


def test_live_mode_deeply_nested_model_list_falls_back_to_cache(
    inventory, fake_client_cls
) -> None:
    cache = SnapshotCache()
    cache.swap(FetchEngine(inventory(2)).refresh_all())
    nested = fake_client_cls(b"[" * 100000 + b"]" * 100000)
    handler = _live_handler(nested, cache)

    response = handler.handle_query()

    assert len(response["data"]) == 2
    assert "Failed to parse JSON" in response["warning"]
    assert isinstance(cache.last_error, DecodeError)


def test_info_flag_absent_or_false_renders_table() -> None:
    handler = QueryHandler(SnapshotCache())

    assert "data" in handler.handle_query({"info": "0"})
    assert "data" in handler.handle_query({"info": False})
    assert "data" in handler.handle_query({"other": ""})


def test_live_mode_partial_failure_is_reported(inventory) -> None:
    handler = _live_handler(
        inventory(5, failing=["m1"]), SnapshotCache()
    )

    response = handler.handle_query()

    assert len(response["data"]) == 4
    assert response["partial_failures"] == 1


def test_invalid_mode_and_missing_engine_are_rejected() -> None:
    with pytest.raises(ValueError):
        QueryHandler(SnapshotCache(), mode="sometimes")
    with pytest.raises(ValueError):
        QueryHandler(SnapshotCache(), mode="live")


@pytest.mark.parametrize(
    ("invocation", "expected"),
    [
        ("deployments info", {"info": True}),
        ("deployments", {}),
        ("", {}),
        ("deployments after:100 before=200", {"after": "100", "before": "200"}),
        ("deployments 'label:a b'", {"label": "a b"}),
    ],
)
def test_parse_function_args(invocation, expected) -> None:
    assert parse_function_args(invocation) == expected

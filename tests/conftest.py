"""
DeployWatch Repository
Introductory remarks: This module is part of the DeployWatch codebase.

Shared fixtures and fakes for the test suite.
"""

from __future__ import annotations

import json
import threading
from typing import (Any, Callable, Dict, Iterable, List, Optional,
                    Type)

import pytest

from deploywatch import logging_config
from deploywatch.errors import HttpStatusError, TransportError
from deploywatch.utils import env

_DEPLOYWATCH_ENV = (
    "BASETEN_API_KEY",
    "NETDATA_BASETEN_API_KEY",
    "DEPLOYWATCH_UPDATE_EVERY",
    "DEPLOYWATCH_TIMEOUT",
    "DEPLOYWATCH_PARALLELISM",
    "DEPLOYWATCH_BASE_URL",
    "DEPLOYWATCH_QUERY_MODE",
    "LOG_LEVEL",
    "LOG_FILE",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """
    _isolated_env: Clear DeployWatch variables and skip ``.env`` loading.
    :param monkeypatch:
    :returns:
    """

    for name in _DEPLOYWATCH_ENV:
        # setenv first so teardown also removes values loaded from .env files
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.setattr(env, "_ENV_LOADED", True)
    monkeypatch.setattr(logging_config, "_CONFIGURED", False)


def _model_entry(model_id: str, name: str, **extra: Any) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "id": model_id,
        "name": name,
        "instance_type_name": "A10G",
        "production_deployment_id": None,
        "development_deployment_id": None,
        "deployments_count": 1,
    }
    entry.update(extra)
    return entry


def _deployment_entry(
    deployment_id: str, model_id: str, **extra: Any
) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "id": deployment_id,
        "name": f"deployment-{deployment_id}",
        "model_id": model_id,
        "environment": "production",
        "status": "ACTIVE",
        "is_production": True,
        "is_development": False,
        "active_replica_count": 1,
    }
    entry.update(extra)
    return entry


def _models_payload(entries: Iterable[Dict[str, Any]]) -> bytes:
    return json.dumps({"models": list(entries)}).encode("utf-8")


def _deployments_payload(entries: Iterable[Dict[str, Any]]) -> bytes:
    return json.dumps({"deployments": list(entries)}).encode("utf-8")


class FakeBasetenClient:
    """
    FakeBasetenClient: In-memory stand-in for the inventory API client.

    ``deployments`` maps a model id to the raw body returned for it, or to
    an exception instance that is raised instead.
    """

    def __init__(
        self,
        models: Any,
        deployments: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._models = models
        self._deployments = deployments or {}
        self._lock = threading.Lock()
        self.model_calls = 0
        self.deployment_calls: List[str] = []
        self.closed = False

    @property
    def total_calls(self) -> int:
        with self._lock:
            return self.model_calls + len(self.deployment_calls)

    def list_models_raw(self) -> bytes:
        with self._lock:
            self.model_calls += 1
        if isinstance(self._models, Exception):
            raise self._models
        return self._models

    def list_deployments_raw(self, model_id: str) -> bytes:
        with self._lock:
            self.deployment_calls.append(model_id)
        body = self._deployments.get(model_id)
        if isinstance(body, Exception):
            raise body
        if body is None:
            raise HttpStatusError(
                404,
                '{"error": "not found"}',
                endpoint=f"/models/{model_id}/deployments",
            )
        return body

    def close(self) -> None:
        self.closed = True


def _build_inventory(
    model_count: int, *, failing: Iterable[str] = ()
) -> FakeBasetenClient:
    """Create a fake client with one deployment per model."""
    failing_ids = set(failing)
    models = [
        _model_entry(f"m{index}", f"model-{index}")
        for index in range(model_count)
    ]
    deployments: Dict[str, Any] = {}
    for entry in models:
        model_id = entry["id"]
        if model_id in failing_ids:
            deployments[model_id] = TransportError(
                "connection reset", endpoint=f"/models/{model_id}/deployments"
            )
        else:
            deployments[model_id] = _deployments_payload(
                [_deployment_entry(f"{model_id}-d", model_id)]
            )
    return FakeBasetenClient(_models_payload(models), deployments)


@pytest.fixture()
def inventory() -> Callable[..., FakeBasetenClient]:
    """
    inventory: Factory for fake clients with one deployment per model.
    :returns:
    """

    return _build_inventory


@pytest.fixture()
def fake_client_cls() -> Type[FakeBasetenClient]:
    """
    fake_client_cls: The in-memory client class, for hand-built payloads.
    :returns:
    """

    return FakeBasetenClient

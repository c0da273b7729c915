"""Turn raw inventory API payloads into typed records.

Only the top-level array is mandatory. Every field inside an entry is read
leniently: missing or null values become the zero value of the field type
(``""``, ``0``, ``False``) or ``None`` for the explicitly optional fields,
so one odd entry never fails a whole payload.
"""

from __future__ import annotations

import json
import logging
from typing import Any, List, Mapping, Optional, Union

from deploywatch.errors import DecodeError
from deploywatch.models import Deployment, DeploymentStatus, Model

logger = logging.getLogger(__name__)

Payload = Union[bytes, bytearray, str]

_TRUE_STRINGS = {"1", "true", "t", "yes", "on"}


def decode_models(payload: Payload) -> List[Model]:
    """Decode a ``/models`` response body."""
    entries = _load_array(payload, "models")
    models: List[Model] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, Mapping):
            logger.warning(
                "Skipping non-object model entry at index %d", index
            )
            continue
        models.append(
            Model(
                id=_as_str(entry.get("id")),
                name=_as_str(entry.get("name")),
                instance_type_name=_as_str(entry.get("instance_type_name")),
                production_deployment_id=_as_optional_str(
                    entry.get("production_deployment_id")
                ),
                development_deployment_id=_as_optional_str(
                    entry.get("development_deployment_id")
                ),
                deployments_count=_as_int(entry.get("deployments_count")),
            )
        )
    logger.debug("Decoded %d models", len(models))
    return models


def decode_deployments(payload: Payload) -> List[Deployment]:
    """Decode a ``/models/{id}/deployments`` response body."""
    entries = _load_array(payload, "deployments")
    deployments: List[Deployment] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, Mapping):
            logger.warning(
                "Skipping non-object deployment entry at index %d", index
            )
            continue
        deployments.append(
            Deployment(
                id=_as_str(entry.get("id")),
                name=_as_str(entry.get("name")),
                model_id=_as_str(entry.get("model_id")),
                environment=_as_optional_str(entry.get("environment")),
                status=DeploymentStatus.from_api(
                    _as_optional_str(entry.get("status"))
                ),
                is_production=_as_bool(entry.get("is_production")),
                is_development=_as_bool(entry.get("is_development")),
                active_replica_count=max(
                    0, _as_int(entry.get("active_replica_count"))
                ),
            )
        )
    logger.debug("Decoded %d deployments", len(deployments))
    return deployments


def _load_array(payload: Payload, key: str) -> List[Any]:
    if isinstance(payload, (bytes, bytearray)):
        try:
            text = bytes(payload).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"Payload is not UTF-8: {exc}") from exc
    else:
        text = payload

    try:
        document = json.loads(text)
    except (ValueError, RecursionError) as exc:
        # JSONDecodeError is a ValueError; very deep nesting overflows the
        # parser stack instead.
        raise DecodeError(f"Failed to parse JSON response: {exc}") from exc

    if not isinstance(document, dict):
        raise DecodeError(
            f"Expected a JSON object with a '{key}' array, "
            f"got {type(document).__name__}"
        )
    if key not in document:
        raise DecodeError(f"No '{key}' array found in API response")

    entries = document[key]
    if not isinstance(entries, list):
        raise DecodeError(
            f"'{key}' is {type(entries).__name__}, expected an array"
        )
    return entries


def _as_str(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _as_optional_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    return _as_str(value)


def _as_int(value: Any) -> int:
    if value is None or isinstance(value, (dict, list)):
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


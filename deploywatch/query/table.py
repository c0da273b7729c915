"""Table rendering for the deployments query.

The column schema is static and built once at import. Rendering turns a
:class:`Snapshot` into the table response dictionary; it resolves each
deployment's model by id and falls back to ``"Unknown"`` when the model is
missing, so dangling references never fail a render.

Rows are emitted sorted by model name, then deployment name, then
deployment id. ``default_sort_column`` tells consumers the same thing; they
remain free to re-sort.
"""

from __future__ import annotations

import copy
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from deploywatch.config import DEFAULT_UPDATE_EVERY, FUNCTION_DESCRIPTION
from deploywatch.models import Deployment, Model, Snapshot

UNKNOWN_LABEL = "Unknown"
NO_ENVIRONMENT_LABEL = "none"
DEFAULT_SORT_COLUMN = "model_name"


@dataclass(frozen=True)
class ColumnSpec:
    """Display metadata for one table column."""

    key: str
    label: str
    type: str = "string"
    visual: str = "value"
    transform: str = "none"
    units: Optional[str] = None
    sort: str = "ascending"
    summary: str = "count"
    filter: str = "multiselect"
    visible: bool = True
    sticky: bool = False
    unique_key: bool = False
    full_width: bool = False
    dummy: bool = False

    def as_dict(self, index: int) -> Dict[str, Any]:
        return {
            "index": index,
            "unique_key": self.unique_key,
            "name": self.label,
            "visible": self.visible,
            "type": self.type,
            "visualization": self.visual,
            "value_options": {
                "transform": self.transform,
                "units": self.units,
            },
            "sort": self.sort,
            "sortable": self.sort != "fixed",
            "sticky": self.sticky,
            "summary": self.summary,
            "filter": self.filter,
            "full_width": self.full_width,
            "dummy": self.dummy,
        }


COLUMNS: Tuple[ColumnSpec, ...] = (
    ColumnSpec("model_name", "Model Name", sticky=True),
    ColumnSpec("model_id", "Model ID", unique_key=True),
    ColumnSpec("deployment_name", "Deployment Name"),
    ColumnSpec("instance_type_name", "Instance Type", full_width=True),
    ColumnSpec("environment", "Environment", visual="pill"),
    ColumnSpec("status", "Status", visual="pill"),
    ColumnSpec("is_production", "Production"),
    ColumnSpec("is_development", "Development"),
    ColumnSpec(
        "active_replicas",
        "Active Replicas",
        type="integer",
        transform="number",
        units="replicas",
        sort="descending",
        summary="sum",
        filter="range",
    ),
    ColumnSpec(
        "rowOptions",
        "rowOptions",
        type="none",
        visual="rowOptions",
        sort="fixed",
        filter="none",
        visible=False,
        dummy=True,
    ),
)

COLUMN_KEYS: Tuple[str, ...] = tuple(column.key for column in COLUMNS)

_COLUMNS_PAYLOAD: Dict[str, Dict[str, Any]] = {
    column.key: column.as_dict(index) for index, column in enumerate(COLUMNS)
}


def columns_payload() -> Dict[str, Dict[str, Any]]:
    """Return a fresh copy of the static column schema."""
    return copy.deepcopy(_COLUMNS_PAYLOAD)


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def render_row(
    deployment: Deployment, model: Optional[Model]
) -> List[Any]:
    """Build one table row in :data:`COLUMNS` order."""
    model_name = (
        model.name if model is not None and model.name else UNKNOWN_LABEL
    )
    instance_type = (
        model.instance_type_name
        if model is not None and model.instance_type_name
        else UNKNOWN_LABEL
    )
    return [
        model_name,
        deployment.model_id,
        deployment.name,
        instance_type,
        deployment.environment or NO_ENVIRONMENT_LABEL,
        deployment.status.label,
        _yes_no(deployment.is_production),
        _yes_no(deployment.is_development),
        deployment.active_replica_count,
        {"severity": deployment.severity.value},
    ]


def render_rows(snapshot: Snapshot) -> List[List[Any]]:
    """Render every deployment of ``snapshot`` sorted by model name."""
    index = snapshot.model_index()
    keyed = []
    for deployment in snapshot.deployments:
        row = render_row(deployment, index.get(deployment.model_id))
        sort_key = (row[0].lower(), deployment.name.lower(), deployment.id)
        keyed.append((sort_key, row))
    keyed.sort(key=lambda item: item[0])
    return [row for _, row in keyed]


def _base_response(
    update_every: int, now: Optional[float]
) -> Dict[str, Any]:
    issued_at = time.time() if now is None else now
    return {
        "status": 200,
        "type": "table",
        "has_history": False,
        "help": FUNCTION_DESCRIPTION,
        "update_every": update_every,
        "expires": int(issued_at) + update_every,
    }


def render(
    snapshot: Snapshot,
    *,
    update_every: int = DEFAULT_UPDATE_EVERY,
    now: Optional[float] = None,
) -> Dict[str, Any]:
    """Render ``snapshot`` as a complete table response.

    ``expires`` is ``now`` (default: the current time) plus ``update_every``,
    the point after which the next refresh should have landed.
    """
    response = _base_response(update_every, now)
    response["data"] = render_rows(snapshot)
    response["columns"] = columns_payload()
    response["default_sort_column"] = DEFAULT_SORT_COLUMN
    response["last_update"] = (
        int(snapshot.last_update) if snapshot.populated else None
    )
    if snapshot.failed_model_ids:
        response["partial_failures"] = snapshot.failed_count
    return response


def info_response(
    *,
    update_every: int = DEFAULT_UPDATE_EVERY,
    now: Optional[float] = None,
) -> Dict[str, Any]:
    """Schema-only response: no rows and no data access."""
    response = _base_response(update_every, now)
    response["columns"] = columns_payload()
    response["default_sort_column"] = DEFAULT_SORT_COLUMN
    return response

"""
DeployWatch Repository
Introductory remarks: This module is part of the DeployWatch codebase.

Tests for deployments table rendering.
"""

from __future__ import annotations

from deploywatch.models import Deployment, DeploymentStatus, Model, Snapshot
from deploywatch.query.table import (COLUMN_KEYS, COLUMNS, columns_payload,
                                     info_response, render, render_rows)


def _failed_snapshot() -> Snapshot:
    return Snapshot(
        models=[Model(id="m1", name="Foo", instance_type_name="A10G")],
        deployments=[
            Deployment(
                id="d1",
                name="primary",
                model_id="m1",
                status=DeploymentStatus.FAILED,
            )
        ],
        last_update=1700000000.5,
    )


def test_failed_deployment_renders_error_row() -> None:
    response = render(_failed_snapshot())

    assert len(response["data"]) == 1
    row = dict(zip(COLUMN_KEYS, response["data"][0]))
    assert row["model_name"] == "Foo"
    assert row["model_id"] == "m1"
    assert row["deployment_name"] == "primary"
    assert row["instance_type_name"] == "A10G"
    assert row["status"] == "Failed"
    assert row["rowOptions"] == {"severity": "error"}


def test_dangling_model_reference_falls_back_to_unknown() -> None:
    snapshot = Snapshot(
        deployments=[Deployment(id="d1", model_id="ghost")],
    )

    (row,) = render_rows(snapshot)
    values = dict(zip(COLUMN_KEYS, row))

    assert values["model_name"] == "Unknown"
    assert values["instance_type_name"] == "Unknown"
    assert values["model_id"] == "ghost"


def test_row_formatting_of_optional_and_flag_fields() -> None:
    snapshot = Snapshot(
        models=[Model(id="m1", name="Foo")],
        deployments=[
            Deployment(
                id="d1",
                model_id="m1",
                environment=None,
                status=DeploymentStatus.SCALED_TO_ZERO,
                is_production=True,
                is_development=False,
                active_replica_count=0,
            )
        ],
    )

    values = dict(zip(COLUMN_KEYS, render_rows(snapshot)[0]))

    assert values["environment"] == "none"
    assert values["status"] == "Scaled to Zero"
    assert values["is_production"] == "Yes"
    assert values["is_development"] == "No"
    assert values["active_replicas"] == 0
    assert values["rowOptions"] == {"severity": "warning"}


def test_rows_are_sorted_by_model_then_deployment() -> None:
    snapshot = Snapshot(
        models=[Model(id="m1", name="beta"), Model(id="m2", name="Alpha")],
        deployments=[
            Deployment(id="d3", name="z", model_id="m1"),
            Deployment(id="d2", name="b", model_id="m2"),
            Deployment(id="d1", name="a", model_id="m2"),
        ],
    )

    rows = render_rows(snapshot)

    assert [(row[0], row[2]) for row in rows] == [
        ("Alpha", "a"),
        ("Alpha", "b"),
        ("beta", "z"),
    ]


def test_render_includes_schema_and_metadata() -> None:
    response = render(_failed_snapshot(), update_every=30)

    assert response["status"] == 200
    assert response["type"] == "table"
    assert response["has_history"] is False
    assert response["update_every"] == 30
    assert response["default_sort_column"] == "model_name"
    assert response["last_update"] == 1700000000
    assert list(response["columns"]) == list(COLUMN_KEYS)
    assert "partial_failures" not in response


def test_render_reports_partial_failures() -> None:
    snapshot = Snapshot(
        models=[Model(id="m1"), Model(id="m2")],
        failed_model_ids=["m2"],
    )

    assert render(snapshot)["partial_failures"] == 1


def test_unpopulated_snapshot_has_no_last_update() -> None:
    response = render(Snapshot.empty())

    assert response["data"] == []
    assert response["last_update"] is None


def test_column_schema_is_stable() -> None:
    columns = columns_payload()

    assert len(COLUMNS) == 10
    assert [spec["index"] for spec in columns.values()] == list(range(10))
    assert columns["model_id"]["unique_key"] is True
    assert columns["model_name"]["sticky"] is True
    assert columns["active_replicas"]["type"] == "integer"
    assert columns["active_replicas"]["summary"] == "sum"
    assert columns["rowOptions"]["dummy"] is True
    assert columns["rowOptions"]["visible"] is False
    assert columns_payload() == columns


def test_columns_payload_returns_independent_copies() -> None:
    first = columns_payload()
    first["model_name"]["value_options"]["units"] = "mutated"

    assert columns_payload()["model_name"]["value_options"]["units"] is None


def test_info_response_has_no_rows() -> None:
    response = info_response(update_every=15)

    assert "data" not in response
    assert response["update_every"] == 15
    assert list(response["columns"]) == list(COLUMN_KEYS)


def test_responses_expire_one_interval_after_issue() -> None:
    rendered = render(
        _failed_snapshot(), update_every=30, now=1700000100.9
    )
    schema = info_response(update_every=15, now=1700000100.0)

    assert rendered["expires"] == 1700000130
    assert schema["expires"] == 1700000115

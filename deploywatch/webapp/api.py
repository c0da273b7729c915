"""REST blueprint serving the deployments table and function metadata."""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request

from deploywatch.config import (DEFAULT_TIMEOUT_SECONDS, FUNCTION_DESCRIPTION,
                                FUNCTION_NAME)

from . import get_handler

api_bp = Blueprint("api", __name__)

logger = logging.getLogger(__name__)


@api_bp.get("/health")
def healthcheck():
    """Simple readiness probe."""
    return jsonify({"status": "ok"}), 200


@api_bp.get("/functions")
def list_functions():
    """Describe the query functions this service answers."""
    return (
        jsonify(
            [
                {
                    "name": FUNCTION_NAME,
                    "help": FUNCTION_DESCRIPTION,
                    "timeout": DEFAULT_TIMEOUT_SECONDS,
                    "tags": "baseten",
                }
            ]
        ),
        200,
    )


@api_bp.get(f"/{FUNCTION_NAME}")
def deployments():
    """Return the deployments table; ``?info=1`` returns the schema only."""
    handler = get_handler()
    params = request.args.to_dict()
    logger.info(
        "HTTP request method=GET path=%s query=%s", request.path, params
    )
    payload = handler.handle_query(params)
    return jsonify(payload), payload.get("status", 200)

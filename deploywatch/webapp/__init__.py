"""Flask application factory exposing the deployments query over HTTP."""

from __future__ import annotations

from typing import Any, Dict

from flask import Flask, current_app

from deploywatch.query.handler import QueryHandler


def create_app(
    handler: QueryHandler, config: Dict[str, Any] | None = None
) -> Flask:
    """Create and configure the Flask application around ``handler``."""

    app = Flask(__name__)
    app.json.sort_keys = False  # type: ignore[attr-defined]
    app.config["QUERY_HANDLER"] = handler

    if config:
        app.config.update(config)

    from .api import api_bp

    app.register_blueprint(api_bp, url_prefix="/api")
    return app


def get_handler(app: Flask | None = None) -> QueryHandler:
    """Retrieve the shared query handler. Accepts an optional app override."""
    ctx_app = app or current_app
    handler = ctx_app.config.get("QUERY_HANDLER")
    if not isinstance(handler, QueryHandler):
        raise RuntimeError("QUERY_HANDLER config must be a QueryHandler")
    return handler

"""CLI wiring for the poller, the query handler and the HTTP surface."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from typing import Any, Dict, Optional, Sequence

from deploywatch.cache.snapshot_cache import SnapshotCache
from deploywatch.clients.baseten_client import BasetenClient
from deploywatch.config import QUERY_MODE_LIVE, Settings
from deploywatch.errors import ConfigurationError
from deploywatch.fetch.engine import FetchEngine
from deploywatch.logging_config import configure_logging
from deploywatch.query.handler import QueryHandler
from deploywatch.query.table import info_response
from deploywatch.scheduler import RefreshScheduler

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8089
DISABLE_KEYWORD = "DISABLE"


class CLIApp:
    """Assemble the client, engine, cache, scheduler and query handler."""

    def __init__(
        self,
        settings: Settings,
        *,
        client: Optional[BasetenClient] = None,
    ) -> None:
        self._settings = settings
        self._stop_event = threading.Event()
        self.client = client or BasetenClient(
            settings.api_key,
            timeout_seconds=settings.timeout_seconds,
            base_url=settings.base_url,
        )
        self.cache = SnapshotCache()
        self.engine = FetchEngine(
            self.client,
            parallelism=settings.parallelism,
            stop_event=self._stop_event,
        )
        self.scheduler = RefreshScheduler(
            self.engine,
            self.cache,
            interval_seconds=settings.update_every,
            stop_event=self._stop_event,
        )
        self.handler = QueryHandler(
            self.cache,
            engine=self.engine,
            mode=settings.query_mode,
            update_every=settings.update_every,
        )

    def refresh(self) -> Dict[str, Any]:
        """Run one live refresh and return the rendered table."""
        live = QueryHandler(
            self.cache,
            engine=self.engine,
            mode=QUERY_MODE_LIVE,
            update_every=self._settings.update_every,
        )
        return live.handle_query()

    def serve(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> int:
        """Start the refresh loop and serve queries until interrupted."""
        from deploywatch.webapp import create_app

        self.scheduler.start()
        app = create_app(self.handler)
        logger.info("Serving deployments function on %s:%d", host, port)
        try:
            app.run(host=host, port=port, threaded=True, use_reloader=False)
        except KeyboardInterrupt:
            logger.info("Interrupted; shutting down")
        finally:
            self.close()
        return 0

    def close(self) -> None:
        self.scheduler.stop(timeout=self._settings.timeout_seconds)
        self.client.close()


def build_arg_parser() -> argparse.ArgumentParser:
    argument_parser = argparse.ArgumentParser(
        prog="deploywatch",
        description=(
            "Poll Baseten model deployments and serve a deployment "
            "health table."
        ),
    )
    subcommands = argument_parser.add_subparsers(dest="command", required=True)

    serve = subcommands.add_parser(
        "serve", help="Refresh in the background and serve queries over HTTP."
    )
    serve.add_argument("--host", default=DEFAULT_HOST)
    serve.add_argument("--port", type=int, default=DEFAULT_PORT)

    subcommands.add_parser(
        "refresh", help="Fetch once and print the table as JSON."
    )
    subcommands.add_parser(
        "info", help="Print the table schema as JSON without fetching."
    )
    return argument_parser


def _print_json(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, sort_keys=False))


def main(argv: Optional[Sequence[str]] = None) -> int:
    configure_logging()
    argument_parser = build_arg_parser()
    parsed_args = argument_parser.parse_args(argv)

    if parsed_args.command == "info":
        _print_json(info_response())
        return 0

    try:
        settings = Settings.from_env()
    except ConfigurationError as exc:
        logger.error("Failed to load configuration, disabling: %s", exc)
        print(DISABLE_KEYWORD)
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    app = CLIApp(settings)
    if parsed_args.command == "refresh":
        try:
            _print_json(app.refresh())
            refresh_error = app.cache.last_error
        finally:
            app.close()
        if refresh_error is not None:
            logger.error("Refresh failed: %s", refresh_error)
            print(f"Refresh failed: {refresh_error}", file=sys.stderr)
            return 1
        return 0

    return app.serve(parsed_args.host, parsed_args.port)


if __name__ == "__main__":
    sys.exit(main())

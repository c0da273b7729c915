"""Fan-out fetch of the model list and per-model deployments."""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from concurrent.futures import (FIRST_COMPLETED, Future, ThreadPoolExecutor,
                                wait)
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from deploywatch.clients.baseten_client import BasetenClient
from deploywatch.config import (DEFAULT_BASE_URL, DEFAULT_MAX_PARALLELISM,
                                DEFAULT_TIMEOUT_SECONDS)
from deploywatch.decoder import decode_deployments, decode_models
from deploywatch.errors import DecodeError, FetchError, RefreshCancelled
from deploywatch.models import Deployment, Model, Snapshot

logger = logging.getLogger(__name__)

_CANCEL_POLL_SECONDS = 0.25


@dataclass(frozen=True)
class ModelFetchOutcome:
    """Deployments fetched for one model, or the error that prevented it."""

    model: Model
    deployments: Sequence[Deployment] = ()
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class FetchEngine:
    """Build a :class:`Snapshot` from the inventory API.

    The model list is fetched first in the calling thread; if it fails the
    error propagates and no snapshot is produced. Deployments are then
    fetched per model, in parallel on a bounded thread pool or sequentially
    when only one worker is allowed. A model whose deployment fetch fails
    contributes no deployments and is listed in
    :attr:`Snapshot.failed_model_ids`.
    """

    def __init__(
        self,
        client: BasetenClient,
        *,
        parallelism: Optional[int] = None,
        max_parallelism: int = DEFAULT_MAX_PARALLELISM,
        stop_event: Optional[threading.Event] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if parallelism is not None and parallelism <= 0:
            raise ValueError("parallelism must be positive.")
        if max_parallelism <= 0:
            raise ValueError("max_parallelism must be positive.")
        self._client = client
        self._parallelism = parallelism
        self._max_parallelism = max_parallelism
        self._stop_event = stop_event
        self._clock = clock

    def worker_count(self, model_count: int) -> int:
        """Number of concurrent deployment fetches for ``model_count``."""
        requested = self._parallelism or model_count
        return max(1, min(requested, self._max_parallelism, model_count))

    def refresh_all(self) -> Snapshot:
        """Fetch everything and return a new snapshot."""
        started = time.perf_counter()
        self._raise_if_cancelled()

        models = self.fetch_models()
        self._raise_if_cancelled()

        workers = self.worker_count(len(models))
        if workers <= 1:
            outcomes = self._fetch_sequential(models)
        else:
            outcomes = self._fetch_parallel(models, workers)

        snapshot = self._merge(models, outcomes)
        elapsed = time.perf_counter() - started
        partial = snapshot.partial_error
        if partial is not None:
            logger.warning(
                "Refresh completed with partial data: %s (models: %s)",
                partial,
                ", ".join(partial.model_ids),
            )
        logger.info(
            "Refresh complete - %d models, %d deployments, %d failed "
            "deployment fetches in %.2fs",
            len(snapshot.models),
            len(snapshot.deployments),
            snapshot.failed_count,
            elapsed,
        )
        return snapshot

    def fetch_models(self) -> List[Model]:
        """Fetch and decode the model list; errors propagate unchanged."""
        logger.info("Fetching models from API...")
        payload = self._client.list_models_raw()
        models = decode_models(payload)
        logger.info("Found %d models in API response", len(models))
        return models

    def fetch_model_deployments(self, model: Model) -> ModelFetchOutcome:
        """Fetch one model's deployments, capturing per-model failures."""
        if self._stop_requested():
            return ModelFetchOutcome(
                model=model, error=RefreshCancelled("Refresh cancelled")
            )
        try:
            payload = self._client.list_deployments_raw(model.id)
            deployments = decode_deployments(payload)
        except (FetchError, DecodeError) as exc:
            logger.error(
                "Failed to fetch deployments for model %s: %s", model.id, exc
            )
            return ModelFetchOutcome(model=model, error=exc)
        logger.debug(
            "Model %s: %d deployments", model.id, len(deployments)
        )
        return ModelFetchOutcome(model=model, deployments=tuple(deployments))

    def _fetch_sequential(
        self, models: Sequence[Model]
    ) -> List[ModelFetchOutcome]:
        outcomes: List[ModelFetchOutcome] = []
        for model in models:
            self._raise_if_cancelled()
            outcomes.append(self.fetch_model_deployments(model))
        self._raise_if_cancelled()
        return outcomes

    def _fetch_parallel(
        self, models: Sequence[Model], workers: int
    ) -> List[ModelFetchOutcome]:
        logger.info(
            "Fetching deployments for %d models with %d workers",
            len(models),
            workers,
        )
        executor = ThreadPoolExecutor(
            max_workers=workers,
            thread_name_prefix="deploywatch-fetch",
        )
        cancelled = False
        try:
            futures: List[Future[ModelFetchOutcome]] = [
                executor.submit(self.fetch_model_deployments, model)
                for model in models
            ]
            if self._stop_event is None:
                return [future.result() for future in futures]

            pending = set(futures)
            while pending:
                if self._stop_event.is_set():
                    cancelled = True
                    raise RefreshCancelled(
                        f"Refresh cancelled with {len(pending)} "
                        "deployment fetches outstanding"
                    )
                _, pending = wait(
                    pending,
                    timeout=_CANCEL_POLL_SECONDS,
                    return_when=FIRST_COMPLETED,
                )
            self._raise_if_cancelled()
            return [future.result() for future in futures]
        finally:
            # In-flight requests on abandoned workers end within their own
            # timeout; nothing they return is used.
            executor.shutdown(wait=not cancelled, cancel_futures=True)

    def _merge(
        self,
        models: Sequence[Model],
        outcomes: Sequence[ModelFetchOutcome],
    ) -> Snapshot:
        deployments: List[Deployment] = []
        failed: List[str] = []
        for outcome in outcomes:
            if not outcome.ok:
                failed.append(outcome.model.id)
                continue
            for deployment in outcome.deployments:
                if not deployment.model_id:
                    deployment = dataclasses.replace(
                        deployment, model_id=outcome.model.id
                    )
                deployments.append(deployment)
        return Snapshot(
            models=tuple(models),
            deployments=tuple(deployments),
            last_update=self._clock(),
            failed_model_ids=tuple(failed),
        )

    def _stop_requested(self) -> bool:
        return self._stop_event is not None and self._stop_event.is_set()

    def _raise_if_cancelled(self) -> None:
        if self._stop_requested():
            raise RefreshCancelled("Refresh cancelled")


def refresh_all_with_client(
    api_key: str,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    parallelism: Optional[int] = None,
    *,
    base_url: str = DEFAULT_BASE_URL,
    **engine_options: object,
) -> Snapshot:
    """One-shot refresh that builds and closes its own client."""
    client = BasetenClient(
        api_key,
        timeout_seconds=timeout_seconds,
        base_url=base_url,
    )
    try:
        engine = FetchEngine(
            client,
            parallelism=parallelism,
            **engine_options,  # type: ignore[arg-type]
        )
        return engine.refresh_all()
    finally:
        client.close()

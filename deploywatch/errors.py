"""Error taxonomy shared by the client, decoder and fetch engine."""

from __future__ import annotations

from typing import Optional, Sequence

BODY_PREVIEW_LIMIT = 500


class DeployWatchError(RuntimeError):
    """Base class for DeployWatch failures."""


class ConfigurationError(DeployWatchError):
    """Raised when required settings are missing or invalid."""


class FetchError(DeployWatchError):
    """Raised when an outbound API request does not yield a usable body."""

    def __init__(
        self, message: str, *, endpoint: Optional[str] = None
    ) -> None:
        super().__init__(message)
        self.endpoint = endpoint


class TransportError(FetchError):
    """DNS, connection, TLS or timeout failure before a response arrived."""


class HttpStatusError(FetchError):
    """The API answered with a non-2xx status code."""

    def __init__(
        self,
        status: int,
        body_preview: str = "",
        *,
        endpoint: Optional[str] = None,
    ) -> None:
        self.status = status
        self.body_preview = body_preview[:BODY_PREVIEW_LIMIT]
        target = endpoint or "<unknown>"
        if self.body_preview:
            message = (
                f"API endpoint {target} returned HTTP {status}: "
                f"{self.body_preview}"
            )
        else:
            message = f"API endpoint {target} returned HTTP {status}"
        super().__init__(message, endpoint=endpoint)


class DecodeError(DeployWatchError):
    """Raised when a payload is not JSON or lacks the expected array key."""


class PartialFetchError(DeployWatchError):
    """Some per-model deployment fetches failed during a refresh.

    This is bookkeeping for a refresh that still succeeded overall; the
    fetch engine attaches it to the snapshot instead of raising it.
    """

    def __init__(self, failed: int, total: int, model_ids: Sequence[str] = ()):
        self.failed = failed
        self.total = total
        self.model_ids = tuple(model_ids)
        super().__init__(
            f"{failed} of {total} deployment fetches failed"
        )


class RefreshCancelled(DeployWatchError):
    """A refresh was abandoned because shutdown was requested."""

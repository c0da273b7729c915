"""
DeployWatch Repository
Introductory remarks: This module is part of the DeployWatch codebase.

Domain records for models, deployments and the merged inventory snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from deploywatch.errors import PartialFetchError


class DeploymentStatus(str, Enum):
    """Deployment status using the raw API tokens as values."""

    ACTIVE = "ACTIVE"
    SCALED_TO_ZERO = "SCALED_TO_ZERO"
    INACTIVE = "INACTIVE"
    DEPLOYING = "DEPLOYING"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_api(cls, token: Optional[str]) -> "DeploymentStatus":
        """Map an API status token to a member; unknown tokens -> UNKNOWN."""
        if not isinstance(token, str):
            return cls.UNKNOWN
        try:
            return cls(token.strip().upper())
        except ValueError:
            return cls.UNKNOWN

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS: Dict[DeploymentStatus, str] = {
    DeploymentStatus.ACTIVE: "Active",
    DeploymentStatus.SCALED_TO_ZERO: "Scaled to Zero",
    DeploymentStatus.INACTIVE: "Inactive",
    DeploymentStatus.DEPLOYING: "Deploying",
    DeploymentStatus.FAILED: "Failed",
    DeploymentStatus.UNKNOWN: "Unknown",
}


class Severity(str, Enum):
    """Row highlighting level derived from a deployment status."""

    NORMAL = "normal"
    NOTICE = "notice"
    WARNING = "warning"
    ERROR = "error"


_SEVERITY_BY_STATUS: Dict[DeploymentStatus, Severity] = {
    DeploymentStatus.ACTIVE: Severity.NORMAL,
    DeploymentStatus.DEPLOYING: Severity.NOTICE,
    DeploymentStatus.SCALED_TO_ZERO: Severity.WARNING,
    DeploymentStatus.INACTIVE: Severity.WARNING,
    DeploymentStatus.FAILED: Severity.ERROR,
    DeploymentStatus.UNKNOWN: Severity.NORMAL,
}


def severity_for(status: DeploymentStatus) -> Severity:
    """Return the presentation severity for ``status``."""
    return _SEVERITY_BY_STATUS.get(status, Severity.NORMAL)


@dataclass(frozen=True)
class Model:
    """A deployable model as listed by the inventory API."""

    id: str
    name: str = ""
    instance_type_name: str = ""
    production_deployment_id: Optional[str] = None
    development_deployment_id: Optional[str] = None
    deployments_count: int = 0


@dataclass(frozen=True)
class Deployment:
    """One deployment of a model.

    ``model_id`` is a plain reference; the owning :class:`Model` is looked up
    in the snapshot when a row is rendered and may be absent.
    """

    id: str
    name: str = ""
    model_id: str = ""
    environment: Optional[str] = None
    status: DeploymentStatus = DeploymentStatus.UNKNOWN
    is_production: bool = False
    is_development: bool = False
    active_replica_count: int = 0

    @property
    def severity(self) -> Severity:
        return severity_for(self.status)


@dataclass(frozen=True)
class Snapshot:
    """Immutable merged view of models and deployments from one refresh."""

    models: Tuple[Model, ...] = ()
    deployments: Tuple[Deployment, ...] = ()
    last_update: float = 0.0
    failed_model_ids: Tuple[str, ...] = ()
    populated: bool = True
    _index: Dict[str, Model] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        # Accept any iterable but always store tuples.
        object.__setattr__(self, "models", tuple(self.models))
        object.__setattr__(self, "deployments", tuple(self.deployments))
        object.__setattr__(
            self, "failed_model_ids", tuple(self.failed_model_ids)
        )
        object.__setattr__(
            self, "_index", {model.id: model for model in self.models}
        )

    @classmethod
    def empty(cls) -> "Snapshot":
        """Sentinel returned by the cache before the first refresh."""
        return cls(populated=False)

    def model_index(self) -> Dict[str, Model]:
        return dict(self._index)

    def find_model(self, model_id: str) -> Optional[Model]:
        return self._index.get(model_id)

    @property
    def failed_count(self) -> int:
        return len(self.failed_model_ids)

    @property
    def partial_error(self) -> Optional[PartialFetchError]:
        """Summarise failed per-model fetches; ``None`` when all succeeded."""
        if not self.failed_model_ids:
            return None
        return PartialFetchError(
            self.failed_count,
            len(self.models),
            self.failed_model_ids,
        )

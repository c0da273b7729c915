"""Domain model package exports."""

from .inventory import (Deployment, DeploymentStatus, Model, Severity,
                        Snapshot, severity_for)

__all__ = [
    "Deployment",
    "DeploymentStatus",
    "Model",
    "Severity",
    "Snapshot",
    "severity_for",
]

"""DeployWatch: Baseten deployment inventory poller and health table."""

__version__ = "0.1.0"

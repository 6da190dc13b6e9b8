"""Command-line orchestrator for remote test-cluster validation runs."""

from clustertest.errors import (
    BuildError,
    ClusterTestError,
    ConfigurationError,
    ConnectivityError,
    CredentialError,
    UsageError,
)
from clustertest.types import ResolvedArtifact, RunConfig, RunResult

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ClusterTestError",
    "UsageError",
    "ConfigurationError",
    "ConnectivityError",
    "CredentialError",
    "BuildError",
    "RunConfig",
    "ResolvedArtifact",
    "RunResult",
]

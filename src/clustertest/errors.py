"""Exception hierarchy for clustertest."""
from __future__ import annotations

from typing import Optional


class ClusterTestError(RuntimeError):
    """Base error for failures that end a run before or outside the remote session."""

    exit_code = 1

    def __init__(self, message: str, hint: Optional[str] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.hint = hint
        self.detail = detail


class UsageError(ClusterTestError):
    """Raised when arguments are missing, conflicting, malformed or reserved."""

    exit_code = 2

    def __init__(self, message: str, usage: Optional[str] = None):
        super().__init__(message)
        self.usage = usage


class ConfigurationError(ClusterTestError):
    """Raised when settings loaded from the environment or settings file are invalid."""

    exit_code = 2


class ConnectivityError(ClusterTestError):
    """Raised when the access gateway cannot be reached or refuses the login."""

    exit_code = 3


class CredentialError(ClusterTestError):
    """Raised when the image build service has no usable credentials."""

    exit_code = 4


class BuildError(ClusterTestError):
    """Raised when the external image build fails."""

    exit_code = 5

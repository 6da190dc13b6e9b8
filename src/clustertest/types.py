"""Type definitions for a clustertest run."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


@dataclass(slots=True)
class RunConfig:
    """Validated command-line configuration for one run."""

    marker: str
    tag: Optional[str] = None
    pull_request: Optional[str] = None
    workspace: str = "shared"
    extra_env: List[str] = field(default_factory=list)
    report_path: Optional[str] = None
    passthrough_args: List[str] = field(default_factory=list)
    verbose: bool = False
    from_output: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ResolvedArtifact:
    """Deployable image tag, either given explicitly or derived after a build."""

    tag: str
    built: bool = False


@dataclass(slots=True)
class RunResult:
    """Structured result for a remote test-cluster run."""

    exit_code: int
    session_output: Path
    interrupted: bool = False
    report_path: Optional[Path] = None
    report_found: bool = False

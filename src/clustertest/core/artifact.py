"""
Artifact resolution: explicit tag pass-through or build-then-derive.
"""
import logging
import subprocess
from typing import Callable, Optional

from clustertest.config import ClusterTestConfig
from clustertest.errors import BuildError
from clustertest.types import ResolvedArtifact, RunConfig

logger = logging.getLogger(__name__)


def derive_tag(identity: str, pull_request: str) -> str:
    """
    Return the image tag the build service produces for (identity, pull request).

    >>> derive_tag("alice", "42")
    'dev_alice_pull_42'
    """
    if not identity:
        raise ValueError("identity must be a non-empty string")
    if not pull_request:
        raise ValueError("pull_request must be a non-empty string")
    return f"dev_{identity}_pull_{pull_request}"


def build_image(pull_request: str, settings: ClusterTestConfig, runner: Optional[Callable[..., subprocess.CompletedProcess]] = None) -> None:
    """
    Run the external image build for a pull request, with its output on the terminal.

    Raises:
        BuildError: If the build command is missing or exits non-zero.
    """
    runner = runner or subprocess.run
    command = [*settings.build_command, pull_request]
    logger.info("Building image for pull request %s: %s", pull_request, " ".join(command))
    try:
        result = runner(command, check=False)
    except FileNotFoundError as e:
        raise BuildError(
            f"Build command not found: {command[0]}",
            hint="install the image build tool or set CLUSTERTEST_BUILD_COMMAND",
            detail=str(e),
        ) from e

    if result.returncode != 0:
        raise BuildError(
            f"Image build for pull request {pull_request} failed with exit code {result.returncode}",
            hint="fix the build (see its output above) and retry; no remote session was opened",
        )


def resolve_artifact(
    config: RunConfig,
    settings: ClusterTestConfig,
    identity: str,
    runner: Optional[Callable[..., subprocess.CompletedProcess]] = None,
) -> ResolvedArtifact:
    """
    Resolve the run's image tag.

    With an explicit tag this is a pass-through and the build service is not
    contacted. Otherwise the pull request is built and the tag derived from
    (identity, pull request).

    Raises:
        BuildError: If the build fails.
    """
    if config.tag is not None:
        logger.info("Using image tag %s", config.tag)
        return ResolvedArtifact(tag=config.tag, built=False)

    if config.pull_request is None:
        raise ValueError("config must have either tag or pull_request set")

    tag = derive_tag(identity, config.pull_request)
    logger.info("Image tag for this run: %s", tag)
    build_image(config.pull_request, settings, runner=runner)
    logger.info("Image build complete: %s", tag)
    return ResolvedArtifact(tag=tag, built=True)

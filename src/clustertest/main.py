# main.py
import getpass
import logging
import subprocess
import sys
from pathlib import Path
from typing import BinaryIO, Callable, List, Optional, Sequence

from clustertest.config import ClusterTestConfig, get_config
from clustertest.core.args import parse_run_config
from clustertest.core.artifact import resolve_artifact
from clustertest.core.invoke import INTERRUPTED_EXIT_CODE, RemoteInvoker, build_remote_command
from clustertest.core.preflight import run_preflight
from clustertest.core.report import extract_report
from clustertest.errors import ClusterTestError, UsageError
from clustertest.ssh import SSHClient
from clustertest.types import RunConfig, RunResult
from clustertest.utils.cli import configure_logging, reconstruct_replay_command
from clustertest.utils.filesystem import apply_cleanup_policy, create_session_output

logger = logging.getLogger(__name__)


def run_pipeline(
    config: RunConfig,
    argv: Sequence[str],
    settings: ClusterTestConfig,
    identity: str,
    ssh_factory: Callable[..., SSHClient] = SSHClient,
    runner: Optional[Callable[..., subprocess.CompletedProcess]] = None,
    terminal: Optional[BinaryIO] = None,
) -> RunResult:
    """Run a test-cluster validation: preflight -> resolve artifact -> remote run -> extract report"""
    run_preflight(config, settings, ssh_factory=ssh_factory, runner=runner)

    artifact = resolve_artifact(config, settings, identity, runner=runner)
    replay_command = reconstruct_replay_command(argv, artifact.tag)
    logger.info("Image tag: %s. To rerun without rebuilding: %s", artifact.tag, replay_command)

    output_path = create_session_output()
    command = build_remote_command(config, artifact, settings)
    invoker = RemoteInvoker(settings, config.workspace, ssh_factory=ssh_factory, terminal=terminal)
    exit_code, interrupted = invoker.run(command, output_path)

    # Also runs after an interrupt, against whatever was captured.
    report_path: Optional[Path] = None
    report_found = False
    if config.report_path:
        report_path = Path(config.report_path)
        report_found = extract_report(output_path, report_path)

    if apply_cleanup_policy(output_path, settings.session_output_cleanup, exit_code, interrupted):
        logger.info("Session output removed (cleanup policy: %s)", settings.session_output_cleanup)
    else:
        logger.info("Session output kept at %s", output_path)
    if artifact.built:
        logger.info("To rerun without rebuilding: %s", replay_command)

    return RunResult(
        exit_code=exit_code,
        session_output=output_path,
        interrupted=interrupted,
        report_path=report_path,
        report_found=report_found,
    )


def extract_only(config: RunConfig) -> int:
    """Re-extract a report from a retained session output file."""
    session_output = Path(config.from_output)
    if not session_output.is_file():
        raise UsageError(f"Session output not found: {session_output}")
    extract_report(session_output, Path(config.report_path))
    return 0


def _report_error(error: ClusterTestError) -> None:
    if isinstance(error, UsageError):
        if error.usage:
            print(error.usage, file=sys.stderr)
        print(f"clustertest: error: {error}", file=sys.stderr)
        return
    logger.error("%s", error)
    if error.hint:
        logger.error("Hint: %s", error.hint)
    if error.detail:
        logger.debug("Details: %s", error.detail)


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    identity = getpass.getuser()
    try:
        config = parse_run_config(argv, identity=identity)
        configure_logging(config.verbose)
        if config.from_output:
            return extract_only(config)
        settings = get_config()
        result = run_pipeline(config, argv, settings, identity)
    except ClusterTestError as e:
        _report_error(e)
        return e.exit_code
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return INTERRUPTED_EXIT_CODE
    return result.exit_code


if __name__ == "__main__":
    raise SystemExit(main())

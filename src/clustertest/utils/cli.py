"""
CLI utilities for logging setup and replay command reconstruction.
"""
import logging
import os
import shlex
from typing import List, Sequence

from clustertest.core.args import split_options


def configure_logging(verbose: bool) -> None:
    """Configure root logging on stderr; stdout is reserved for the remote output."""
    env_level = os.getenv("CLUSTERTEST_LOG_LEVEL", "").strip().upper()
    level = logging.DEBUG if verbose else getattr(logging, env_level, logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(message)s")
    else:
        root.setLevel(level)
    logging.getLogger("paramiko").setLevel(logging.WARNING)


def reconstruct_replay_command(argv: Sequence[str], tag: str) -> str:
    """
    Reconstruct the CLI command with the build selector replaced by an explicit tag.

    Running the returned command deploys the same image again without rebuilding.

    Returns:
        str: The full copy-pasteable command
    """
    options, passthrough = split_options(argv)
    replay: List[str] = []
    for token in options:
        name = token.split("=", 1)[0]
        if name in ("--pull-request", "--tag", "--latest"):
            continue
        replay.append(token)
    replay.append(f"--tag={tag}")
    if passthrough:
        replay.append("--")
        replay.extend(passthrough)
    return shlex.join(["clustertest", *replay])

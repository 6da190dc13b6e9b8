"""
Filesystem utilities for session output files.
"""
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def create_session_output(directory: Optional[str] = None) -> Path:
    """
    Create an empty, uniquely named file for one run's captured output.

    Args:
        directory: Directory for the file (default: the system temp directory)

    Returns:
        Path: Path to the created file
    """
    fd, name = tempfile.mkstemp(prefix="clustertest-", suffix=".log", dir=directory)
    os.close(fd)
    return Path(name)


def apply_cleanup_policy(path: Path, policy: str, exit_code: int, interrupted: bool) -> bool:
    """
    Delete the session output file if the cleanup policy says so.

    Policies:
        keep: never delete
        on-success: delete when the remote run exited 0 and was not interrupted
        always: always delete

    Returns:
        bool: True if the file was deleted
    """
    if policy == "keep":
        return False
    if policy == "on-success":
        if exit_code != 0 or interrupted:
            return False
    elif policy != "always":
        raise ValueError(f"Unknown cleanup policy: {policy}")

    try:
        path.unlink()
    except FileNotFoundError:
        return False
    logger.debug("Removed session output %s (policy: %s)", path, policy)
    return True

"""
Extraction of the sentinel-delimited JSON report from captured session output.
"""
import logging
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

REPORT_BEGIN = b"====json-report-begin==="
REPORT_END = b"====json-report-end==="


def slice_report(captured: bytes) -> Optional[bytes]:
    """
    Return the lines strictly between the first begin sentinel and the next end sentinel.

    Lines are matched by containing the sentinel, so pty line endings or
    prefixes added by the remote side do not hide it. Returns None unless
    both sentinels are present in order.
    """
    lines = captured.splitlines(keepends=True)
    begin: Optional[int] = None
    for index, line in enumerate(lines):
        if begin is None:
            if REPORT_BEGIN in line:
                begin = index
        elif REPORT_END in line:
            report: List[bytes] = lines[begin + 1:index]
            return b"".join(report)
    return None


def extract_report(session_output: Path, report_path: Path) -> bool:
    """
    Copy the report from session_output to report_path, overwriting it.

    A missing or unterminated report leaves an empty file at report_path;
    the remote run reports its own failure through its exit code.

    Returns:
        bool: True if a complete report was found
    """
    captured = Path(session_output).read_bytes()
    report = slice_report(captured)

    report_path = Path(report_path)
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_bytes(report or b"")

    if report is None:
        logger.debug("No complete report found in %s; wrote empty %s", session_output, report_path)
        return False
    logger.info("Report written to %s (%d bytes)", report_path, len(report))
    return True

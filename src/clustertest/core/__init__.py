"""Invocation pipeline stages."""

from clustertest.core.args import parse_run_config
from clustertest.core.artifact import derive_tag, resolve_artifact
from clustertest.core.invoke import RemoteInvoker, build_remote_command
from clustertest.core.preflight import run_preflight
from clustertest.core.report import extract_report, slice_report

__all__ = [
    "parse_run_config",
    "run_preflight",
    "derive_tag",
    "resolve_artifact",
    "build_remote_command",
    "RemoteInvoker",
    "extract_report",
    "slice_report",
]

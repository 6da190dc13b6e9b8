"""
Command-line parsing and validation for a clustertest run.
"""
from __future__ import annotations

import argparse
import getpass
import re
from typing import Dict, List, NoReturn, Optional, Sequence, Tuple

from clustertest.errors import UsageError
from clustertest.types import RunConfig

LATEST_TAG = "latest_good"
DEFAULT_WORKSPACE = "shared"

# Owned by the remote invoker; a caller override would change the deployment
# target without going through artifact resolution.
RESERVED_FLAGS = frozenset({"--container", "--image", "--deploy"})

# flag -> (dest, canonical spelling, takes a value)
_OPTIONS: Dict[str, Tuple[str, str, bool]] = {
    "-r": ("report_path", "--report", True),
    "--report": ("report_path", "--report", True),
    "-p": ("pull_request", "--pull-request", True),
    "--pull-request": ("pull_request", "--pull-request", True),
    "-l": ("tag", "--latest", False),
    "--latest": ("tag", "--latest", False),
    "-t": ("tag", "--tag", True),
    "--tag": ("tag", "--tag", True),
    "-w": ("workspace", "--workspace", True),
    "--workspace": ("workspace", "--workspace", True),
    "-e": ("extra_env", "--env", True),
    "--env": ("extra_env", "--env", True),
    "-m": ("marker", "--marker", True),
    "--marker": ("marker", "--marker", True),
    "-v": ("verbose", "--verbose", False),
    "--verbose": ("verbose", "--verbose", False),
    "--from-output": ("from_output", "--from-output", True),
    "-h": ("help", "--help", False),
    "--help": ("help", "--help", False),
}
_APPENDABLE = {"extra_env"}
_ENV_ENTRY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*=")


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(
        prog="clustertest",
        description="Run the shared test-cluster validation against a chosen build.",
        epilog=(
            "The first argument that is not one of the options above ends option "
            "parsing; it and everything after it are passed to the remote test "
            "command unchanged. --container, --image and --deploy are set by "
            "clustertest and cannot be overridden."
        ),
    )
    selector = parser.add_argument_group("build selection (exactly one is required)")
    selector.add_argument("-p", "--pull-request", dest="pull_request", default=None, metavar="ID", help="Build the image for this pull request, then run")
    selector.add_argument("-t", "--tag", dest="tag", default=None, metavar="TAG", help="Run an already built image tag (skips the build)")
    selector.add_argument("-l", "--latest", dest="tag", action="store_const", const=LATEST_TAG, help=f"Run the latest known-good image (tag '{LATEST_TAG}')")
    parser.add_argument("-w", "--workspace", dest="workspace", default=DEFAULT_WORKSPACE, metavar="NAME", help=f"Test workspace to run in (default: {DEFAULT_WORKSPACE})")
    parser.add_argument("-e", "--env", dest="extra_env", action="append", default=[], metavar="KEY=VALUE", help="Environment entry for the remote run (repeatable)")
    parser.add_argument("-m", "--marker", dest="marker", default=None, metavar="TEXT", help="Identity marker forwarded to the remote side (default: your login)")
    parser.add_argument("-r", "--report", dest="report_path", default=None, metavar="PATH", help="Write the JSON report found in the remote output to PATH")
    parser.add_argument("--from-output", dest="from_output", default=None, metavar="SESSION_LOG", help="Only extract --report from a previously captured session output")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def reject_reserved_flags(argv: Sequence[str]) -> None:
    """Raise UsageError if any token is a reserved flag, in either --flag or --flag=value form."""
    for token in argv:
        name = token.split("=", 1)[0]
        if name in RESERVED_FLAGS:
            raise UsageError(
                f"{name} is set by clustertest itself and cannot be overridden; "
                "select the build with --pull-request, --tag or --latest instead"
            )


def split_options(argv: Sequence[str]) -> Tuple[List[str], List[str]]:
    """
    Split argv into canonical option tokens and passthrough arguments.

    Option parsing stops at the first token that is neither a known option nor
    the value of one, or at a literal ``--`` (which is dropped).

    Raises:
        UsageError: If a non-repeatable option is given twice or a value is missing.
    """
    options: List[str] = []
    seen: Dict[str, str] = {}
    index = 0
    while index < len(argv):
        token = argv[index]
        if token == "--":
            return options, list(argv[index + 1:])

        if token.startswith("--") and "=" in token:
            name, _, inline_value = token.partition("=")
            has_inline = True
        else:
            name, inline_value, has_inline = token, "", False

        spec = _OPTIONS.get(name)
        if spec is None:
            break
        dest, canonical, takes_value = spec

        if dest not in _APPENDABLE:
            if dest in seen:
                raise UsageError(f"{name} conflicts with earlier {seen[dest]}; each option may be given only once")
            seen[dest] = name

        if not takes_value:
            if has_inline:
                raise UsageError(f"{name} does not take a value")
            options.append(canonical)
        elif has_inline:
            options.append(f"{canonical}={inline_value}")
        else:
            if index + 1 >= len(argv):
                raise UsageError(f"{name} requires a value")
            index += 1
            options.append(f"{canonical}={argv[index]}")
        index += 1

    return options, list(argv[index:])


def parse_run_config(argv: Sequence[str], identity: Optional[str] = None) -> RunConfig:
    """
    Parse raw argument tokens into a validated RunConfig.

    Args:
        argv: Arguments without the program name.
        identity: Invoking identity used as the default marker. Defaults to the login name.

    Returns:
        RunConfig ready for preflight.

    Raises:
        UsageError: On reserved, repeated, conflicting, malformed or missing arguments.
    """
    reject_reserved_flags(argv)

    parser = build_parser()
    options, passthrough = split_options(argv)
    args = parser.parse_args(options)

    for entry in args.extra_env:
        if not _ENV_ENTRY_RE.match(entry):
            raise UsageError(f"--env expects KEY=VALUE with a valid variable name, got '{entry}'")

    if args.pull_request is not None and not args.pull_request.isdigit():
        raise UsageError(f"--pull-request expects a pull request number, got '{args.pull_request}'")

    if args.tag is not None and not args.tag.strip():
        raise UsageError("--tag must not be empty")

    if args.tag is not None and args.pull_request is not None:
        raise UsageError("--pull-request cannot be combined with --tag or --latest; pass one build selector")

    if args.from_output is not None:
        if args.report_path is None:
            raise UsageError("--from-output requires --report")
    elif args.tag is None and args.pull_request is None:
        raise UsageError(
            "one of --pull-request, --tag or --latest is required",
            usage=parser.format_help(),
        )

    if not args.workspace:
        raise UsageError("--workspace must not be empty")

    return RunConfig(
        marker=args.marker if args.marker is not None else (identity or getpass.getuser()),
        tag=args.tag,
        pull_request=args.pull_request,
        workspace=args.workspace,
        extra_env=list(args.extra_env),
        report_path=args.report_path,
        passthrough_args=passthrough,
        verbose=args.verbose,
        from_output=args.from_output,
    )

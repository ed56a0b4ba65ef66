from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from verifyforge.api import verify_from_config
from verifyforge.config import (
    ConfigError,
    LogsMode,
    OutputFormat,
    VerifyOptions,
    find_config_file,
    load_config,
)
from verifyforge.graph import GraphError, ReportingDependencyTracker

from .args import build_parser


def run_cli(argv: list[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
        _configure_logging(args.debug)

        match args.command:
            case "run":
                return cmd_run(args)
            case "list":
                return cmd_list(args)
            case "graph":
                return cmd_graph(args)
            case _:
                return 2

    except (ConfigError, GraphError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    except KeyboardInterrupt:
        return 130


def main() -> None:
    sys.exit(run_cli())


def cmd_run(args: argparse.Namespace) -> int:
    logs = args.logs
    if logs is None and args.verbose:
        logs = "all"
    elif logs is None and args.quiet:
        logs = "none"

    overrides = VerifyOptions(
        logs=LogsMode(logs) if logs else None,
        format=OutputFormat.JSON if args.json else None,
        filter=tuple(args.filters) or None,
        no_color=True if args.no_color else None,
        show_all=True if args.show_all else None,
    )

    result = asyncio.run(
        verify_from_config(
            _config_path(args),
            overrides=overrides,
            quiet=args.quiet,
            strict=args.strict_deps,
        )
    )
    return 0 if result.ok else 1


def cmd_list(args: argparse.Namespace) -> int:
    config = load_config(_config_path(args))
    for path in config.paths():
        print(path)
    return 0


def cmd_graph(args: argparse.Namespace) -> int:
    config = load_config(_config_path(args))
    tracker = ReportingDependencyTracker(strict=args.strict_deps)
    tracker.initialize(config.tasks, config.strategy)

    for path in config.paths():
        deps = " ".join(tracker.dependencies(path))
        print(f"{path}: {deps}".rstrip())
    return 0


def _config_path(args: argparse.Namespace) -> Path:
    if args.config is not None:
        return Path(args.config)

    found = find_config_file(os.getcwd())
    if found is None:
        raise ConfigError(f"No verify config found in {os.getcwd()}. Create a verify.yml file.")
    return found


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

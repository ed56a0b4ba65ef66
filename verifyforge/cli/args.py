from __future__ import annotations

import argparse


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="verifyforge",
        description="Hierarchical verification runner",
    )

    parser.add_argument(
        "--config",
        "-c",
        default=None,
        help="Path to config file (default: verify.yml/.yaml/.toml/.json in the current directory)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log scheduling and process events to stderr",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
    )

    # run
    run = subparsers.add_parser("run", help="Run verification tasks")
    run.add_argument(
        "filters",
        nargs="*",
        help="Task paths to run, e.g. 'logic' or 'logic:ts'",
    )
    run.add_argument(
        "--json",
        action="store_true",
        help="Output results as JSON",
    )
    run.add_argument(
        "--logs",
        choices=["all", "failed", "none"],
        default=None,
        help="Log verbosity (default: failed)",
    )
    run.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show all task output",
    )
    run.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Show only the final result",
    )
    run.add_argument(
        "--all",
        "-a",
        action="store_true",
        dest="show_all",
        help="Show all nested tasks (default: top-level only)",
    )
    run.add_argument(
        "--no-color",
        action="store_true",
        help="Disable coloured output",
    )
    run.add_argument(
        "--strict-deps",
        action="store_true",
        help="Fail on reporting dependencies that name no task or could never settle",
    )

    # list
    subparsers.add_parser("list", help="List task paths")

    # graph
    graph = subparsers.add_parser("graph", help="Show reporting dependencies")
    graph.add_argument(
        "--strict-deps",
        action="store_true",
        help="Fail on reporting dependencies that name no task or could never settle",
    )

    return parser

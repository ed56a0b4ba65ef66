from __future__ import annotations

import asyncio
import logging
import os
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Sequence

from verifyforge.config.types import Strategy, VerificationNode, VerifyOptions, build_path
from verifyforge.graph.tracker import ReportingDependencyTracker
from verifyforge.parsers import ParserRegistry, default_registry

from .process import execute_command
from .types import RunResult, TaskResult

if TYPE_CHECKING:
    from verifyforge.reporting import Reporter

logger = logging.getLogger(__name__)

UNKNOWN_CAUSE = "unknown"


def matches_filter(path: str, filters: Sequence[str] | None) -> bool:
    if not filters:
        return True
    return any(path == f or path.startswith(f"{f}:") for f in filters)


def has_matching_descendant(
    node: VerificationNode, parent_path: str, filters: Sequence[str] | None
) -> bool:
    path = build_path(parent_path, node.key)
    if matches_filter(path, filters):
        return True
    return any(has_matching_descendant(child, path, filters) for child in node.children)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


class Executor:
    """Runs a verification tree and aggregates its results.

    Each call to :meth:`run` gets a fresh ``ReportingDependencyTracker``.
    """

    def __init__(
        self,
        options: VerifyOptions | None = None,
        registry: ParserRegistry = default_registry,
        reporter: Reporter | None = None,
        *,
        strict: bool = False,
    ):
        options = options or VerifyOptions()
        self.cwd = options.cwd or os.getcwd()
        self.filters = options.filter
        self.registry = registry
        self.reporter = reporter
        self.strict = strict
        self.tracker = ReportingDependencyTracker(strict=strict)

    async def run(
        self,
        tasks: Sequence[VerificationNode],
        strategy: Strategy = Strategy.PARALLEL,
    ) -> RunResult:
        started_at = _now()
        wall_start = time.monotonic()

        self.tracker = ReportingDependencyTracker(strict=self.strict)
        self.tracker.initialize(tasks, strategy)

        results = await self._run_nodes(list(tasks), "", strategy)

        return RunResult(
            ok=all(r.ok and not r.suppressed for r in results),
            started_at=started_at,
            finished_at=_now(),
            duration_ms=int(round((time.monotonic() - wall_start) * 1000)),
            tasks=tuple(results),
        )

    async def _run_nodes(
        self,
        nodes: list[VerificationNode],
        parent_path: str,
        strategy: Strategy,
    ) -> list[TaskResult]:
        selected: list[VerificationNode] = []
        for node in nodes:
            if has_matching_descendant(node, parent_path, self.filters):
                selected.append(node)
            else:
                self.tracker.mark_skipped(node, parent_path)

        match strategy:
            case Strategy.PARALLEL:
                gathered = await asyncio.gather(
                    *(self._run_node(node, parent_path) for node in selected)
                )
                return list(gathered)

            case Strategy.SEQUENTIAL:
                results = []
                for node in selected:
                    results.append(await self._run_node(node, parent_path))
                return results

            case Strategy.FAIL_FAST:
                results = []
                for index, node in enumerate(selected):
                    result = await self._run_node(node, parent_path)
                    results.append(result)
                    if not result.ok:
                        for rest in selected[index + 1 :]:
                            self.tracker.mark_skipped(rest, parent_path)
                        break
                return results

            case _:
                raise AssertionError("Unreachable")

    async def _run_node(self, node: VerificationNode, parent_path: str) -> TaskResult:
        path = build_path(parent_path, node.key)

        if self.reporter is not None:
            self.reporter.on_task_start(path, node.key)

        if node.is_group:
            result = await self._run_group(node, path)
        elif node.run is None:
            result = TaskResult(
                key=node.key,
                path=path,
                ok=True,
                code=0,
                duration_ms=0,
                output="",
                summary_line=f"{node.key}: no command specified",
            )
        else:
            result = await self._run_leaf(node, path)

        self.tracker.record_result(result)
        if self.reporter is not None:
            self.reporter.on_task_complete(result)
        return result

    async def _run_group(self, node: VerificationNode, path: str) -> TaskResult:
        start = time.monotonic()
        children = await self._run_nodes(list(node.children), path, node.strategy)
        duration_ms = int(round((time.monotonic() - start) * 1000))

        all_ok = all(r.ok or r.suppressed for r in children)
        all_suppressed = len(children) > 0 and all(r.suppressed for r in children)

        if all_ok:
            summary_line = node.success_label or f"{node.key}: all passed"
        else:
            summary_line = node.failure_label or f"{node.key}: some failed"

        # A mix of suppressed and genuine failures stays a plain failure so
        # the genuine one remains visible.
        return TaskResult(
            key=node.key,
            path=path,
            ok=all_ok,
            code=0 if all_ok else 1,
            duration_ms=duration_ms,
            output="",
            summary_line=summary_line,
            children=tuple(children),
            suppressed=all_suppressed,
            suppressed_by=children[0].suppressed_by if all_suppressed else None,
        )

    async def _run_leaf(self, node: VerificationNode, path: str) -> TaskResult:
        command = node.run
        assert command is not None

        executed = await execute_command(command, self.cwd, self.tracker, path)

        if executed.killed:
            await self.tracker.wait_for_dependencies(path)
            failed_dep = self.tracker.get_failed_dependency(path)
            if failed_dep is None:
                logger.warning(
                    "%s: terminated, but none of its reporting dependencies failed", path
                )

            return TaskResult(
                key=node.key,
                path=path,
                ok=False,
                code=executed.code,
                duration_ms=executed.duration_ms,
                output=executed.output,
                summary_line=f"{node.key}: terminated",
                suppressed=True,
                suppressed_by=failed_dep or UNKNOWN_CAUSE,
            )

        ok = executed.code == 0
        parsed = self.registry.parse(executed.output, executed.code, node.parser, str(command))
        label = node.success_label if ok else node.failure_label

        result = TaskResult(
            key=node.key,
            path=path,
            ok=ok,
            code=executed.code,
            duration_ms=executed.duration_ms,
            output=executed.output,
            summary_line=f"{node.key}: {label or parsed.summary}",
            metrics=parsed.metrics,
        )

        if self.tracker.has_dependencies(path):
            await self.tracker.wait_for_dependencies(path)
            if not ok:
                failed_dep = self.tracker.get_failed_dependency(path)
                if failed_dep is not None:
                    result = replace(result, suppressed=True, suppressed_by=failed_dep)

        return result

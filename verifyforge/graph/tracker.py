from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Iterable

from verifyforge.config.types import Strategy, VerificationNode, build_path, walk
from verifyforge.process_utils import ProcessHandle, terminate_process_tree

from .types import (
    CycleError,
    DependencyOrderError,
    DuplicateResultError,
    UnresolvedDependencyError,
)

if TYPE_CHECKING:
    from verifyforge.executor.types import TaskResult

logger = logging.getLogger(__name__)


class _Visit(Enum):
    UNVISITED = auto()
    VISITING = auto()
    VISITED = auto()


@dataclass(frozen=True)
class _NodeInfo:
    key: str
    index: int
    # strategy of the group this node is a child of
    sibling_strategy: Strategy
    # only leaves with a command ever await their dependencies
    waits: bool
    is_group: bool


class ReportingDependencyTracker:
    """Resolves reporting dependencies for one run and coordinates their results.

    A task whose dependency failed has its own failure reported as suppressed,
    and its running process is terminated as soon as the dependency result is
    recorded. All methods must be called from the event loop running the tasks.
    """

    def __init__(self, *, strict: bool = False):
        self.strict = strict
        self._nodes: dict[str, _NodeInfo] = {}
        self._key_to_paths: dict[str, list[str]] = {}
        self._declared: dict[str, tuple[str, ...]] = {}
        self._deps: dict[str, tuple[str, ...]] = {}
        self._dependents: dict[str, list[str]] = {}
        self._results: dict[str, TaskResult] = {}
        self._settled: set[str] = set()
        self._waiters: dict[str, list[asyncio.Future[None]]] = {}
        self._processes: dict[str, ProcessHandle] = {}
        self._killed: set[str] = set()

    # -------------------------
    # Initialization
    # -------------------------

    def initialize(
        self,
        nodes: Iterable[VerificationNode],
        root_strategy: Strategy = Strategy.PARALLEL,
    ) -> None:
        """Index the whole tree and validate its reporting dependencies.

        Raises ``CycleError`` before anything runs. Unknown identifiers and
        dependencies that could never settle before the task finishes are
        dropped with a warning, or raise ``UnresolvedDependencyError`` and
        ``DependencyOrderError`` in strict mode.
        """
        self._collect(list(nodes), "", root_strategy)

        for path, identifiers in self._declared.items():
            resolved: list[str] = []
            for identifier in identifiers:
                dep = self.resolve(identifier)
                if dep is None:
                    if self.strict:
                        raise UnresolvedDependencyError(path, identifier)
                    logger.warning(
                        "%s: ignoring unknown reporting dependency '%s'", path, identifier
                    )
                    continue
                if dep not in resolved:
                    resolved.append(dep)
            if resolved:
                self._deps[path] = tuple(resolved)

        self._validate_no_cycles()
        self._validate_order()

        for path, deps in self._deps.items():
            for dep in deps:
                self._dependents.setdefault(dep, []).append(path)

    def _collect(
        self, nodes: list[VerificationNode], parent_path: str, strategy: Strategy
    ) -> None:
        for index, node in enumerate(nodes):
            path = build_path(parent_path, node.key)
            self._nodes[path] = _NodeInfo(
                key=node.key,
                index=index,
                sibling_strategy=strategy,
                waits=node.run is not None and not node.is_group,
                is_group=node.is_group,
            )
            self._key_to_paths.setdefault(node.key, []).append(path)

            if node.reporting_depends_on:
                self._declared[path] = tuple(node.reporting_depends_on)

            self._collect(list(node.children), path, node.strategy)

    def resolve(self, identifier: str) -> str | None:
        """Resolve a dependency identifier: exact path, then unique key, then dotted path."""
        if identifier in self._nodes:
            return identifier

        paths = self._key_to_paths.get(identifier, [])
        if len(paths) == 1:
            return paths[0]
        if len(paths) > 1:
            logger.warning(
                "reporting dependency '%s' matches several tasks: %s",
                identifier,
                ", ".join(paths),
            )

        dotted = identifier.replace(".", ":")
        if dotted != identifier and dotted in self._nodes:
            return dotted

        return None

    def _validate_no_cycles(self) -> None:
        state = {path: _Visit.UNVISITED for path in self._nodes}
        stack: list[str] = []
        pos: dict[str, int] = {}

        def visit(path: str) -> None:
            if state[path] == _Visit.VISITING:
                start = pos[path]
                raise CycleError(stack[start:] + [path])
            if state[path] == _Visit.VISITED:
                return

            state[path] = _Visit.VISITING
            pos[path] = len(stack)
            stack.append(path)

            for dep in self._deps.get(path, ()):
                visit(dep)

            stack.pop()
            pos.pop(path)
            state[path] = _Visit.VISITED

        for path in self._nodes:
            visit(path)

    def _validate_order(self) -> None:
        # A waiting task needs every result in its closure before it can
        # finish: its dependencies, the subtrees of dependency groups, and
        # whatever those in turn wait on. An edge whose closure can never
        # settle in time is dropped (or rejected in strict mode). Dropping
        # only shrinks closures, so one pass is enough.
        for path, info in self._nodes.items():
            if not info.waits:
                continue

            while path in self._deps:
                blocked = self._blocked_edge(path)
                if blocked is None:
                    break

                via, reason = blocked
                if self.strict:
                    raise DependencyOrderError(path, via, reason)
                logger.warning(
                    "%s: ignoring reporting dependency '%s': %s", path, via, reason
                )
                remaining = tuple(dep for dep in self._deps[path] if dep != via)
                if remaining:
                    self._deps[path] = remaining
                else:
                    del self._deps[path]

    def _blocked_edge(self, path: str) -> tuple[str, str] | None:
        for needed, via in self._needed_by(path):
            if path.startswith(needed + ":"):
                return via, f"'{needed}' is an ancestor of the task"
            if self._runs_after(needed, path):
                return via, f"'{needed}' only starts after the task has finished"
        return None

    def _needed_by(self, path: str) -> list[tuple[str, str]]:
        needed: dict[str, str] = {}
        worklist = [(dep, dep) for dep in self._deps[path]]

        while worklist:
            current, via = worklist.pop()
            if current in needed or current == path:
                continue
            needed[current] = via

            info = self._nodes[current]
            if info.is_group:
                prefix = current + ":"
                worklist.extend((p, via) for p in self._nodes if p.startswith(prefix))
            if info.waits:
                worklist.extend((dep, via) for dep in self._deps.get(current, ()))

        return list(needed.items())

    def _runs_after(self, other: str, path: str) -> bool:
        """True if *other* sits in a later branch of a sequential group holding *path*."""
        other_parts = other.split(":")
        path_parts = path.split(":")

        common = 0
        for a, b in zip(other_parts, path_parts):
            if a != b:
                break
            common += 1

        if common >= len(other_parts) or common >= len(path_parts):
            return False

        other_branch = self._nodes[":".join(other_parts[: common + 1])]
        path_branch = self._nodes[":".join(path_parts[: common + 1])]

        if path_branch.sibling_strategy == Strategy.PARALLEL:
            return False
        return other_branch.index > path_branch.index

    # -------------------------
    # Queries
    # -------------------------

    def has_dependencies(self, path: str) -> bool:
        return len(self._deps.get(path, ())) > 0

    def dependencies(self, path: str) -> tuple[str, ...]:
        return self._deps.get(path, ())

    def dependents(self, path: str) -> tuple[str, ...]:
        return tuple(self._dependents.get(path, ()))

    def edges(self) -> dict[str, tuple[str, ...]]:
        return dict(self._deps)

    def result(self, path: str) -> TaskResult | None:
        return self._results.get(path)

    def get_failed_dependency(self, path: str) -> str | None:
        """Return the first recorded failed dependency of *path*, if any."""
        for dep in self._deps.get(path, ()):
            result = self._results.get(dep)
            if result is not None and not result.ok:
                return dep
        return None

    def was_killed(self, path: str) -> bool:
        return path in self._killed

    # -------------------------
    # Coordination
    # -------------------------

    async def wait_for_dependencies(self, path: str) -> None:
        """Suspend until every dependency of *path* has a result (or was skipped)."""
        pending = [
            self._register_waiter(dep)
            for dep in self._deps.get(path, ())
            if dep not in self._settled
        ]
        if pending:
            await asyncio.gather(*pending)

    def _register_waiter(self, path: str) -> asyncio.Future[None]:
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.setdefault(path, []).append(future)
        return future

    def _settle(self, path: str) -> None:
        self._settled.add(path)
        for future in self._waiters.pop(path, []):
            if not future.done():
                future.set_result(None)

    def record_result(self, result: TaskResult) -> None:
        if result.path in self._results:
            raise DuplicateResultError(result.path)

        self._results[result.path] = result

        if not result.ok:
            self.kill_dependents(result.path)

        self._settle(result.path)

    def mark_skipped(self, node: VerificationNode, parent_path: str = "") -> None:
        """Settle a node that will never run, along with its whole subtree."""
        for path, _ in walk([node], parent_path):
            if path not in self._settled:
                logger.debug("%s: skipped", path)
                self._settle(path)

    # -------------------------
    # Process registry
    # -------------------------

    def register_process(self, path: str, handle: ProcessHandle) -> None:
        self._processes[path] = handle

        # started after its root cause was already recorded
        failed = self.get_failed_dependency(path)
        if failed is not None:
            self._terminate(path, handle, failed)

    def unregister_process(self, path: str) -> None:
        self._processes.pop(path, None)

    def kill_dependents(self, failed_path: str) -> None:
        """Terminate the running processes of the direct dependents of *failed_path*.

        A terminated dependent records a failed result of its own, which in
        turn terminates its dependents. A dependent that already passed stops
        the chain there.
        """
        for dependent in self._dependents.get(failed_path, ()):
            handle = self._processes.get(dependent)
            if handle is not None:
                self._terminate(dependent, handle, failed_path)

    def _terminate(self, path: str, handle: ProcessHandle, cause: str) -> None:
        if terminate_process_tree(handle):
            self._killed.add(path)
            logger.info("%s: terminated because '%s' failed", path, cause)

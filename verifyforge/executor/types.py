from __future__ import annotations

from dataclasses import dataclass

from verifyforge.parsers.types import Metrics


@dataclass(frozen=True)
class ExecResult:
    code: int
    output: str
    duration_ms: int
    killed: bool


@dataclass(frozen=True)
class TaskResult:
    key: str
    path: str
    ok: bool
    code: int
    duration_ms: int
    output: str
    summary_line: str
    metrics: Metrics | None = None
    children: tuple[TaskResult, ...] | None = None
    suppressed: bool = False
    suppressed_by: str | None = None

    @property
    def is_group(self) -> bool:
        return self.children is not None


@dataclass(frozen=True)
class RunResult:
    ok: bool
    started_at: str
    finished_at: str
    duration_ms: int
    tasks: tuple[TaskResult, ...]

    def flatten(self) -> list[TaskResult]:
        return flatten_results(self.tasks)

    def find(self, path: str) -> TaskResult | None:
        for result in self.flatten():
            if result.path == path:
                return result
        return None


def flatten_results(results) -> list[TaskResult]:
    flat: list[TaskResult] = []
    for result in results:
        flat.append(result)
        if result.children:
            flat.extend(flatten_results(result.children))
    return flat

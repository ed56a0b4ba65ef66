from __future__ import annotations

import json
import os
import sys
from dataclasses import asdict
from typing import Any, Protocol, Sequence, TextIO

from verifyforge.config.types import LogsMode, OutputFormat, VerificationNode, VerifyOptions
from verifyforge.executor.types import RunResult, TaskResult, flatten_results

ANSI = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "cyan": "\033[36m",
}


class Reporter(Protocol):
    def on_start(self, tasks: Sequence[VerificationNode]) -> None: ...

    def on_task_start(self, path: str, key: str) -> None: ...

    def on_task_complete(self, result: TaskResult) -> None: ...

    def on_finish(self) -> None: ...

    def output_logs(self, results: Sequence[TaskResult], logs: LogsMode) -> None: ...

    def output_summary(self, result: RunResult) -> None: ...


def should_use_color(options: VerifyOptions, stream: TextIO) -> bool:
    if options.no_color:
        return False
    if options.format == OutputFormat.JSON:
        return False
    if "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb":
        return False
    try:
        return stream.isatty()
    except (AttributeError, ValueError):
        return False


def _depth(path: str) -> int:
    return path.count(":")


class TTYReporter:
    """Line-oriented human output: progress, per-task logs and a summary."""

    def __init__(self, options: VerifyOptions | None = None, stream: TextIO | None = None):
        options = options or VerifyOptions()
        if stream is None:
            # In JSON mode stdout belongs to the JSON document.
            stream = sys.stderr if options.format == OutputFormat.JSON else sys.stdout
        self.stream = stream
        self.show_all = bool(options.show_all)
        self.color = should_use_color(options, stream)

    def _c(self, code: str, text: str) -> str:
        if not self.color:
            return text
        return f"{ANSI[code]}{text}{ANSI['reset']}"

    def _write(self, line: str = "") -> None:
        print(line, file=self.stream)

    def _visible(self, path: str) -> bool:
        return self.show_all or _depth(path) == 0

    def _indent(self, path: str) -> str:
        return "  " * _depth(path) if self.show_all else ""

    def _mark(self, result: TaskResult) -> str:
        if result.suppressed:
            return self._c("yellow", "SUPPRESSED")
        if result.ok:
            return self._c("green", "OK")
        return self._c("red", "FAIL")

    def on_start(self, tasks: Sequence[VerificationNode]) -> None:
        pass

    def on_task_start(self, path: str, key: str) -> None:
        if self._visible(path):
            self._write(f"{self._indent(path)}{self._c('cyan', '->')} starting {self._c('bold', path)}")

    def on_task_complete(self, result: TaskResult) -> None:
        if not self._visible(result.path):
            return
        duration = self._c("dim", f"({result.duration_ms}ms)")
        line = f"{self._indent(result.path)}{self._mark(result)} finished {self._c('bold', result.path)} {duration}"
        if result.suppressed:
            line += f" [caused by {result.suppressed_by}]"
        self._write(line)

    def on_finish(self) -> None:
        pass

    def output_logs(self, results: Sequence[TaskResult], logs: LogsMode) -> None:
        if logs == LogsMode.NONE:
            return

        for r in flatten_results(results):
            if r.is_group:
                continue
            if logs == LogsMode.FAILED and (r.ok or r.suppressed):
                continue

            banner = self._c("bold", "====")
            self._write()
            self._write(f"{banner} {self._c('bold', r.path.upper())} {self._mark(r)} {banner}")
            self.stream.write(r.output or "(no output)\n")
            if r.output and not r.output.endswith("\n"):
                self._write()

    def output_summary(self, result: RunResult) -> None:
        self._write()

        shown = result.flatten() if self.show_all else list(result.tasks)
        for r in shown:
            line = r.summary_line
            if r.suppressed:
                line = self._c("yellow", f"{line} (suppressed, caused by {r.suppressed_by})")
            elif r.ok:
                line = self._c("green", line)
            else:
                line = self._c("red", line)
            self._write(f"{self._indent(r.path)}{line}")

        self._write()
        if result.ok:
            self._write(self._c("green", "== verification: All correct =="))
        else:
            self._write(self._c("red", "== verification: Failed =="))


def serialize_task(task: TaskResult) -> dict[str, Any]:
    data: dict[str, Any] = {
        "key": task.key,
        "path": task.path,
        "ok": task.ok,
        "code": task.code,
        "durationMs": task.duration_ms,
        "summaryLine": task.summary_line,
    }
    if task.metrics is not None:
        data["metrics"] = {k: v for k, v in asdict(task.metrics).items() if v is not None}
    if task.suppressed:
        data["suppressed"] = True
        data["suppressedBy"] = task.suppressed_by
    if task.children is not None:
        data["children"] = [serialize_task(child) for child in task.children]
    return data


def serialize_run(result: RunResult) -> dict[str, Any]:
    return {
        "ok": result.ok,
        "startedAt": result.started_at,
        "finishedAt": result.finished_at,
        "durationMs": result.duration_ms,
        "tasks": [serialize_task(task) for task in result.tasks],
    }


class JSONReporter:
    """Silent while running; writes one JSON document at the end."""

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream or sys.stdout

    def on_start(self, tasks: Sequence[VerificationNode]) -> None:
        pass

    def on_task_start(self, path: str, key: str) -> None:
        pass

    def on_task_complete(self, result: TaskResult) -> None:
        pass

    def on_finish(self) -> None:
        pass

    def output_logs(self, results: Sequence[TaskResult], logs: LogsMode) -> None:
        pass

    def output_summary(self, result: RunResult) -> None:
        print(json.dumps(serialize_run(result)), file=self.stream)


class QuietReporter:
    def __init__(self, options: VerifyOptions | None = None, stream: TextIO | None = None):
        self.stream = stream or sys.stdout
        self.color = should_use_color(options or VerifyOptions(), self.stream)

    def on_start(self, tasks: Sequence[VerificationNode]) -> None:
        pass

    def on_task_start(self, path: str, key: str) -> None:
        pass

    def on_task_complete(self, result: TaskResult) -> None:
        pass

    def on_finish(self) -> None:
        pass

    def output_logs(self, results: Sequence[TaskResult], logs: LogsMode) -> None:
        pass

    def output_summary(self, result: RunResult) -> None:
        if result.ok:
            message, code = "OK All verifications passed", "green"
        else:
            message, code = "FAIL Some verifications failed", "red"
        if self.color:
            message = f"{ANSI[code]}{message}{ANSI['reset']}"
        print(message, file=self.stream)


def create_reporter(options: VerifyOptions, *, quiet: bool = False) -> Reporter:
    if options.format == OutputFormat.JSON:
        return JSONReporter()
    if quiet:
        return QuietReporter(options)
    return TTYReporter(options)

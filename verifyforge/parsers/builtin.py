"""Output parsers for the tools verifyforge recognises out of the box.

Each parser turns raw combined output plus an exit code into a one-line
summary. Returning ``None`` means "not recognised"; the registry then falls
back to :class:`GenericParser`.
"""

from __future__ import annotations

import re

from .types import Metrics, ParsedResult


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def _issues(errors: int, warnings: int) -> str:
    text = _plural(errors, "error")
    if warnings > 0:
        text += f", {_plural(warnings, 'warning')}"
    return text


class GenericParser:
    """Fallback keyed on the exit code alone. Never returns ``None``."""

    id = "generic"

    def parse(self, output: str, exit_code: int) -> ParsedResult:
        if exit_code == 0:
            return ParsedResult(summary="passed")
        return ParsedResult(summary=f"failed (exit code {exit_code})")


class VitestParser:
    id = "vitest"

    _TESTS = re.compile(r"^\s*Tests\s+(\d+)\s+passed\s+\((\d+)\)", re.MULTILINE)
    _DURATION = re.compile(r"^\s*Duration\s+([\d.]+s)\b", re.MULTILINE)

    def parse(self, output: str, exit_code: int) -> ParsedResult | None:
        tests = self._TESTS.search(output)
        duration = self._DURATION.search(output)
        if tests is None or duration is None:
            return None

        passed = int(tests.group(1))
        total = int(tests.group(2))
        elapsed = duration.group(1)

        if exit_code == 0:
            summary = f"{passed}/{total} tests passed in {elapsed}"
        else:
            summary = f"{passed}/{total} tests passed (some failed)"

        return ParsedResult(
            summary=summary,
            metrics=Metrics(passed=passed, total=total, failed=total - passed, duration=elapsed),
        )


class TscParser:
    id = "tsc"

    _FILES = re.compile(r"^Files:\s+(\d+)", re.MULTILINE)
    _ERROR = re.compile(r"error TS\d+:")

    def parse(self, output: str, exit_code: int) -> ParsedResult | None:
        files = self._FILES.search(output)
        file_count = int(files.group(1)) if files else None

        if exit_code == 0:
            summary = f"passed {file_count} files" if file_count else "passed"
            return ParsedResult(summary=summary, metrics=Metrics(errors=0, total=file_count))

        error_count = len(self._ERROR.findall(output))
        if error_count == 0:
            return None

        suffix = f" in {file_count} files" if file_count else ""
        return ParsedResult(
            summary=f"{_plural(error_count, 'type error')}{suffix}",
            metrics=Metrics(errors=error_count, total=file_count),
        )


class BiomeParser:
    id = "biome"

    _FOUND = re.compile(
        r"Found\s+(\d+)\s+errors?\s+(?:and\s+(\d+)\s+warnings?)?", re.IGNORECASE
    )
    _ERROR_LINE = re.compile(r"^\s*error\[", re.MULTILINE)
    _WARNING_LINE = re.compile(r"^\s*warning\[", re.MULTILINE)

    def parse(self, output: str, exit_code: int) -> ParsedResult | None:
        if exit_code == 0:
            return ParsedResult(summary="no issues", metrics=Metrics(errors=0, warnings=0))

        found = self._FOUND.search(output)
        if found:
            errors = int(found.group(1))
            warnings = int(found.group(2)) if found.group(2) else 0
            return ParsedResult(
                summary=_issues(errors, warnings),
                metrics=Metrics(errors=errors, warnings=warnings),
            )

        errors = len(self._ERROR_LINE.findall(output))
        warnings = len(self._WARNING_LINE.findall(output))
        if errors > 0 or warnings > 0:
            return ParsedResult(
                summary=_issues(errors, warnings),
                metrics=Metrics(errors=errors, warnings=warnings),
            )

        return None


class GoTestParser:
    id = "gotest"

    _OK = re.compile(r"^ok\s+\S+", re.MULTILINE)
    _FAIL = re.compile(r"^FAIL\s+\S+", re.MULTILINE)
    _DURATION = re.compile(r"(?:PASS|FAIL)\s*$[\s\S]*?(\d+\.?\d*s)", re.MULTILINE)

    def parse(self, output: str, exit_code: int) -> ParsedResult | None:
        passed = len(self._OK.findall(output))
        failed = len(self._FAIL.findall(output))
        total = passed + failed

        if total == 0:
            if "no test files" in output:
                return ParsedResult(
                    summary="no test files", metrics=Metrics(passed=0, failed=0, total=0)
                )
            return None

        match = self._DURATION.search(output)
        duration = match.group(1) if match else None

        if exit_code == 0:
            suffix = f" in {duration}" if duration else ""
            return ParsedResult(
                summary=f"{_plural(passed, 'package')} passed{suffix}",
                metrics=Metrics(passed=passed, failed=0, total=passed, duration=duration),
            )

        noun = "package" if total == 1 else "packages"
        return ParsedResult(
            summary=f"{failed}/{total} {noun} failed",
            metrics=Metrics(passed=passed, failed=failed, total=total, duration=duration),
        )

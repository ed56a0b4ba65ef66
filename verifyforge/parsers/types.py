from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class Metrics:
    passed: int | None = None
    failed: int | None = None
    total: int | None = None
    duration: str | None = None
    errors: int | None = None
    warnings: int | None = None


@dataclass(frozen=True)
class ParsedResult:
    summary: str
    metrics: Metrics | None = None


class OutputParser(Protocol):
    id: str

    def parse(self, output: str, exit_code: int) -> ParsedResult | None: ...

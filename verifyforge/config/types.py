from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Strategy(str, Enum):
    PARALLEL = "parallel"
    SEQUENTIAL = "sequential"
    FAIL_FAST = "fail-fast"


class LogsMode(str, Enum):
    ALL = "all"
    FAILED = "failed"
    NONE = "none"


class OutputFormat(str, Enum):
    HUMAN = "human"
    JSON = "json"


@dataclass(frozen=True)
class Command:
    cmd: str
    args: tuple[str, ...] = ()
    cwd: str | None = None
    env: dict[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        return " ".join((self.cmd, *self.args))


@dataclass(frozen=True)
class VerificationNode:
    key: str
    name: str | None = None
    run: Command | None = None
    children: tuple[VerificationNode, ...] = ()
    strategy: Strategy = Strategy.PARALLEL
    parser: str | None = None
    reporting_depends_on: tuple[str, ...] = ()
    success_label: str | None = None
    failure_label: str | None = None

    @property
    def is_group(self) -> bool:
        return len(self.children) > 0


@dataclass(frozen=True)
class VerifyOptions:
    logs: LogsMode | None = None
    format: OutputFormat | None = None
    filter: tuple[str, ...] | None = None
    cwd: str | None = None
    no_color: bool | None = None
    show_all: bool | None = None


@dataclass
class VerifyConfig:
    tasks: list[VerificationNode]
    strategy: Strategy = Strategy.PARALLEL
    options: VerifyOptions = field(default_factory=VerifyOptions)

    def __iter__(self):
        yield from walk(self.tasks)

    def __len__(self):
        return sum(1 for _ in self)

    def paths(self) -> list[str]:
        return [path for path, _ in self]


def build_path(parent_path: str, key: str) -> str:
    return f"{parent_path}:{key}" if parent_path else key


def walk(nodes, parent_path: str = ""):
    """Yield ``(path, node)`` for every node, depth-first in declaration order."""
    for node in nodes:
        path = build_path(parent_path, node.key)
        yield path, node
        yield from walk(node.children, path)


class ConfigError(Exception):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


class UnsupportedConfigFormatError(ConfigError):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)

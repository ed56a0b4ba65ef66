from .executor import UNKNOWN_CAUSE, Executor, has_matching_descendant, matches_filter
from .process import execute_command
from .types import ExecResult, RunResult, TaskResult, flatten_results

__all__ = [
    "UNKNOWN_CAUSE",
    "Executor",
    "has_matching_descendant",
    "matches_filter",
    "execute_command",
    "ExecResult",
    "RunResult",
    "TaskResult",
    "flatten_results",
]

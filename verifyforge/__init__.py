from .api import verify, verify_from_config
from .config import (
    Command,
    ConfigError,
    Strategy,
    VerificationNode,
    VerifyConfig,
    VerifyOptions,
    load_config,
)
from .executor import Executor, RunResult, TaskResult
from .graph import CycleError, GraphError, ReportingDependencyTracker

__all__ = [
    "verify",
    "verify_from_config",
    "Command",
    "ConfigError",
    "Strategy",
    "VerificationNode",
    "VerifyConfig",
    "VerifyOptions",
    "load_config",
    "Executor",
    "RunResult",
    "TaskResult",
    "CycleError",
    "GraphError",
    "ReportingDependencyTracker",
]

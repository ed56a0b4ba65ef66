from .tracker import ReportingDependencyTracker
from .types import (
    CycleError,
    DependencyOrderError,
    DuplicateResultError,
    GraphError,
    UnresolvedDependencyError,
)

__all__ = [
    "ReportingDependencyTracker",
    "CycleError",
    "DependencyOrderError",
    "DuplicateResultError",
    "GraphError",
    "UnresolvedDependencyError",
]

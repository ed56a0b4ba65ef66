from .reporter import (
    JSONReporter,
    QuietReporter,
    Reporter,
    TTYReporter,
    create_reporter,
    serialize_run,
    serialize_task,
)

__all__ = [
    "JSONReporter",
    "QuietReporter",
    "Reporter",
    "TTYReporter",
    "create_reporter",
    "serialize_run",
    "serialize_task",
]

from __future__ import annotations

import os
from dataclasses import fields

from .types import LogsMode, OutputFormat, VerifyOptions


def merge_options(
    config_options: VerifyOptions | None = None,
    overrides: VerifyOptions | None = None,
) -> VerifyOptions:
    """Merge command-line overrides over config options over defaults.

    Every field of the returned ``VerifyOptions`` is set, except ``filter``
    which stays ``None`` when nothing restricts the run.
    """
    config_options = config_options or VerifyOptions()
    overrides = overrides or VerifyOptions()

    merged = {}
    for f in fields(VerifyOptions):
        value = getattr(overrides, f.name)
        if value is None:
            value = getattr(config_options, f.name)
        merged[f.name] = value

    defaults = {
        "logs": LogsMode.FAILED,
        "format": OutputFormat.HUMAN,
        "cwd": os.getcwd(),
        "no_color": False,
        "show_all": False,
    }
    for name, default in defaults.items():
        if merged[name] is None:
            merged[name] = default

    if merged["filter"] is not None and len(merged["filter"]) == 0:
        merged["filter"] = None

    return VerifyOptions(**merged)

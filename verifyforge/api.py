from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path

from verifyforge.config import (
    ConfigError,
    VerifyConfig,
    VerifyOptions,
    find_config_file,
    load_config,
    merge_options,
)
from verifyforge.executor import Executor, RunResult
from verifyforge.reporting import Reporter, create_reporter


async def verify(
    config: VerifyConfig,
    overrides: VerifyOptions | None = None,
    *,
    reporter: Reporter | None = None,
    quiet: bool = False,
    strict: bool = False,
) -> RunResult:
    """Run every task of *config* and report through *reporter*.

    Raises ``GraphError`` before anything is spawned when the reporting
    dependencies are invalid.
    """
    options = merge_options(config.options, overrides)
    if reporter is None:
        reporter = create_reporter(options, quiet=quiet)

    reporter.on_start(config.tasks)

    executor = Executor(options, reporter=reporter, strict=strict)
    try:
        result = await executor.run(config.tasks, config.strategy)
    finally:
        reporter.on_finish()

    reporter.output_logs(result.tasks, options.logs)
    reporter.output_summary(result)

    return result


async def verify_from_config(
    path: str | Path | None = None,
    cwd: str | Path | None = None,
    overrides: VerifyOptions | None = None,
    **kwargs,
) -> RunResult:
    base = Path(cwd) if cwd is not None else Path(os.getcwd())

    if path is None:
        found = find_config_file(base)
        if found is None:
            raise ConfigError(f"No verify config found in {base}. Create a verify.yml file.")
        path = found

    config = load_config(path)

    # Commands run relative to the config file unless told otherwise.
    config_dir = Path(path).expanduser().resolve().parent
    config.options = replace(config.options, cwd=str(config_dir / (config.options.cwd or ".")))

    return await verify(config, overrides, **kwargs)

import json
import shlex
import tomllib
from pathlib import Path
from typing import Any, Mapping

import yaml

from .types import (
    Command,
    ConfigError,
    LogsMode,
    OutputFormat,
    Strategy,
    UnsupportedConfigFormatError,
    VerificationNode,
    VerifyConfig,
    VerifyOptions,
)

CONFIG_FILES = ("verify.yml", "verify.yaml", "verify.toml", "verify.json")

_TOP_LEVEL_KEYS = {"tasks", "strategy", "options"}
_NODE_KEYS = {
    "key",
    "name",
    "run",
    "children",
    "strategy",
    "parser",
    "reporting_depends_on",
    "success_label",
    "failure_label",
}
_COMMAND_KEYS = {"cmd", "args", "cwd", "env"}
_OPTION_KEYS = {"logs", "format", "filter", "cwd", "no_color", "show_all"}


def find_config_file(cwd: str | Path) -> Path | None:
    base = Path(cwd).expanduser()
    for filename in CONFIG_FILES:
        candidate = base / filename
        if candidate.is_file():
            return candidate
    return None


def load_config(path: str | Path) -> VerifyConfig:
    pure_path = Path(path).expanduser().resolve()

    if not pure_path.exists():
        raise ConfigError(f"Config file not found: {pure_path}")

    if not pure_path.is_file():
        raise ConfigError(f"Config path is not a file: {pure_path}")

    fmt = _detect_format(pure_path)
    raw_file = _parse_file(pure_path, fmt)
    return build_config(raw_file)


def _detect_format(path: Path) -> str:
    fmt = path.suffix
    match fmt:
        case ".yaml" | ".yml":
            return "yaml"
        case ".toml":
            return "toml"
        case ".json":
            return "json"
        case _:
            raise UnsupportedConfigFormatError(
                f"Non supported file extension: {fmt}\n Expected format: .yml/.yaml, .toml, .json"
            )


def _parse_file(path: Path, fmt: str) -> Mapping[str, Any]:
    text = path.read_text(encoding="utf-8")
    match fmt:
        case "yaml":
            try:
                raw_file = yaml.safe_load(text)
            except yaml.YAMLError as exc:
                raise ConfigError(f"{path}: invalid YAML") from exc
        case "toml":
            try:
                raw_file = tomllib.loads(text)
            except tomllib.TOMLDecodeError as exc:
                raise ConfigError(f"{path}: invalid TOML") from exc
        case "json":
            try:
                raw_file = json.loads(text)
            except json.JSONDecodeError as exc:
                raise ConfigError(f"{path}: invalid JSON") from exc
        case _:
            raise AssertionError("Unreachable")

    if not isinstance(raw_file, Mapping):
        raise ConfigError(
            f"{path}: {fmt.upper()} parsed successfully but top-level value is not an object: {type(raw_file)}"
        )

    return raw_file


def build_config(raw: Mapping[str, Any]) -> VerifyConfig:
    """Validate a raw mapping (as read from a config file) into a ``VerifyConfig``."""
    for field in raw.keys():
        if field not in _TOP_LEVEL_KEYS:
            raise ConfigError(f"Can't process top-level field: {field}")

    if "tasks" not in raw:
        raise ConfigError("Missing 'tasks' field")

    if not isinstance(raw["tasks"], list):
        raise ConfigError(f"'tasks' must be a list, got {type(raw['tasks'])}")

    tasks = _build_nodes(raw["tasks"], "")
    strategy = _build_strategy(raw.get("strategy"), "<root>")
    options = _build_options(raw.get("options", {}))

    return VerifyConfig(tasks=tasks, strategy=strategy, options=options)


def _build_nodes(items: list[Any], parent_path: str) -> list[VerificationNode]:
    nodes: list[VerificationNode] = []
    seen: set[str] = set()

    for item in items:
        node = _build_node(item, parent_path)
        if node.key in seen:
            where = parent_path or "<root>"
            raise ConfigError(f"{where}: duplicate key '{node.key}'")
        seen.add(node.key)
        nodes.append(node)

    return nodes


def _build_node(fields: Any, parent_path: str) -> VerificationNode:
    where = parent_path or "<root>"

    if not isinstance(fields, Mapping):
        raise ConfigError(f"{where}: every task must be a mapping, got {type(fields)}")

    if "key" not in fields:
        raise ConfigError(f"{where}: task is missing 'key'")

    key = fields["key"]
    if not isinstance(key, str):
        raise ConfigError(f"{where}: task key must be a string, got {type(key)}")

    key = key.strip()
    if len(key) < 1:
        raise ConfigError(f"{where}: a task key can't be empty")

    if ":" in key:
        raise ConfigError(f"{where}: task key '{key}' can't contain ':'")

    path = f"{parent_path}:{key}" if parent_path else key

    for field in fields.keys():
        if field not in _NODE_KEYS:
            raise ConfigError(f"{path}: Can't process: {field}")

    if "run" in fields and "children" in fields:
        raise ConfigError(f"{path}: a task has either 'run' or 'children', not both")

    run = _build_command(fields["run"], path) if "run" in fields else None

    children: list[VerificationNode] = []
    if "children" in fields:
        if not isinstance(fields["children"], list):
            raise ConfigError(f"{path}: 'children' should be a list")
        children = _build_nodes(fields["children"], path)

    return VerificationNode(
        key=key,
        name=_optional_str(fields, "name", path),
        run=run,
        children=tuple(children),
        strategy=_build_strategy(fields.get("strategy"), path),
        parser=_optional_str(fields, "parser", path),
        reporting_depends_on=_build_depends_on(fields, path),
        success_label=_optional_str(fields, "success_label", path),
        failure_label=_optional_str(fields, "failure_label", path),
    )


def _build_command(run: Any, path: str) -> Command:
    if isinstance(run, str):
        parts = shlex.split(run)
        if not parts:
            raise ConfigError(f"{path}: Command missing")
        return Command(cmd=parts[0], args=tuple(parts[1:]))

    if isinstance(run, list):
        if len(run) != 2 or not isinstance(run[0], str) or not isinstance(run[1], list):
            raise ConfigError(f"{path}: 'run' as a list must be [cmd, [args...]]")
        return Command(cmd=_command_name(run[0], path), args=_string_list(run[1], path, "args"))

    if isinstance(run, Mapping):
        for field in run.keys():
            if field not in _COMMAND_KEYS:
                raise ConfigError(f"{path}: Can't process run field: {field}")

        if not isinstance(run.get("cmd"), str):
            raise ConfigError(f"{path}: 'run.cmd' should be a string")

        args = run.get("args", [])
        if not isinstance(args, list):
            raise ConfigError(f"{path}: 'run.args' should be a list")

        return Command(
            cmd=_command_name(run["cmd"], path),
            args=_string_list(args, path, "args"),
            cwd=_build_cwd(run.get("cwd"), path),
            env=_build_env(run.get("env", {}), path),
        )

    raise ConfigError(f"{path}: 'run' should be a string, a [cmd, args] pair or a mapping")


def _command_name(cmd: str, path: str) -> str:
    cmd = cmd.strip()
    if len(cmd) < 1:
        raise ConfigError(f"{path}: Command missing")
    return cmd


def _string_list(items: list[Any], path: str, what: str) -> tuple[str, ...]:
    for item in items:
        if not isinstance(item, str):
            raise ConfigError(f"{path}: {item} should be a string in '{what}'")
    return tuple(items)


def _build_cwd(cwd: Any, path: str) -> str | None:
    if cwd is None:
        return None

    if not isinstance(cwd, str):
        raise ConfigError(f"{path}: The cwd should be a string")

    if len(cwd.strip()) < 1:
        raise ConfigError(f"{path}: Please provide a string or remove the cwd field")

    return cwd.strip()


def _build_env(env: Any, path: str) -> dict[str, str]:
    if not isinstance(env, Mapping):
        raise ConfigError(f"{path}: Env should be a mapping")

    built = {}
    for key, item in env.items():
        if not isinstance(key, str):
            raise ConfigError(f"{path}: {key} should be a string")

        if len(key.strip()) < 1:
            raise ConfigError(f"{path}: A key can't be empty")

        if not isinstance(item, str):
            raise ConfigError(f"{path}: {item} should be a string")

        built[key.strip()] = item

    return built


def _build_depends_on(fields: Mapping[str, Any], path: str) -> tuple[str, ...]:
    if "reporting_depends_on" not in fields:
        return ()

    items = fields["reporting_depends_on"]
    if not isinstance(items, list):
        raise ConfigError(f"{path}: Dependencies should be in a list.")

    deps = []
    seen = set()
    for item in items:
        if not isinstance(item, str):
            raise ConfigError(f"{path}: {item} should be a string in the dependency list")

        dep = item.strip()

        if len(dep) < 1:
            raise ConfigError(f"{path}: A dependency is empty")

        # Allows to ignore duplicates dependency
        if dep in seen:
            continue

        deps.append(dep)
        seen.add(dep)

    return tuple(deps)


def _build_strategy(value: Any, path: str) -> Strategy:
    if value is None:
        return Strategy.PARALLEL
    try:
        return Strategy(value)
    except ValueError:
        allowed = ", ".join(s.value for s in Strategy)
        raise ConfigError(f"{path}: unknown strategy {value!r}, expected one of: {allowed}") from None


def _optional_str(fields: Mapping[str, Any], name: str, path: str) -> str | None:
    if name not in fields:
        return None
    value = fields[name]
    if not isinstance(value, str):
        raise ConfigError(f"{path}: '{name}' should be a string")
    return value


def _build_options(raw: Any) -> VerifyOptions:
    if not isinstance(raw, Mapping):
        raise ConfigError(f"'options' must be a mapping, got {type(raw)}")

    for field in raw.keys():
        if field not in _OPTION_KEYS:
            raise ConfigError(f"options: Can't process: {field}")

    logs = raw.get("logs")
    fmt = raw.get("format")
    filters = raw.get("filter")

    try:
        logs = LogsMode(logs) if logs is not None else None
        fmt = OutputFormat(fmt) if fmt is not None else None
    except ValueError as exc:
        raise ConfigError(f"options: {exc}") from None

    if filters is not None:
        if not isinstance(filters, list):
            raise ConfigError("options: 'filter' should be a list")
        filters = _string_list(filters, "options", "filter")

    for flag in ("no_color", "show_all"):
        if flag in raw and not isinstance(raw[flag], bool):
            raise ConfigError(f"options: '{flag}' should be a boolean")

    return VerifyOptions(
        logs=logs,
        format=fmt,
        filter=filters,
        cwd=_build_cwd(raw.get("cwd"), "options"),
        no_color=raw.get("no_color"),
        show_all=raw.get("show_all"),
    )

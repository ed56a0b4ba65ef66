from .loader import build_config, find_config_file, load_config
from .options import merge_options
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
    build_path,
    walk,
)

__all__ = [
    "build_config",
    "find_config_file",
    "load_config",
    "merge_options",
    "Command",
    "ConfigError",
    "LogsMode",
    "OutputFormat",
    "Strategy",
    "UnsupportedConfigFormatError",
    "VerificationNode",
    "VerifyConfig",
    "VerifyOptions",
    "build_path",
    "walk",
]

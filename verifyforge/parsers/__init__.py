from .builtin import BiomeParser, GenericParser, GoTestParser, TscParser, VitestParser
from .registry import ParserRegistry, default_registry
from .types import Metrics, OutputParser, ParsedResult

__all__ = [
    "BiomeParser",
    "GenericParser",
    "GoTestParser",
    "TscParser",
    "VitestParser",
    "ParserRegistry",
    "default_registry",
    "Metrics",
    "OutputParser",
    "ParsedResult",
]

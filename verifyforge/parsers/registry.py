from __future__ import annotations

from .builtin import BiomeParser, GenericParser, GoTestParser, TscParser, VitestParser
from .types import OutputParser, ParsedResult

_generic = GenericParser()


class ParserRegistry:
    def __init__(self) -> None:
        self._parsers: dict[str, OutputParser] = {}
        for parser in (_generic, VitestParser(), TscParser(), BiomeParser(), GoTestParser()):
            self.register(parser)

    def register(self, parser: OutputParser) -> None:
        self._parsers[parser.id] = parser

    def get(self, parser_id: str) -> OutputParser | None:
        return self._parsers.get(parser_id)

    def detect_parser(self, command: str) -> str:
        cmd = command.lower()

        if "vitest" in cmd or "jest" in cmd:
            return "vitest"
        if "tsc" in cmd or "tsgo" in cmd:
            return "tsc"
        if "biome" in cmd or "eslint" in cmd:
            return "biome"
        if "go test" in cmd or ("go" in cmd and "test" in cmd):
            return "gotest"

        return "generic"

    def parse(
        self,
        output: str,
        exit_code: int,
        parser_id: str | None = None,
        command_hint: str | None = None,
    ) -> ParsedResult:
        """Summarise *output*, always producing a result."""
        if parser_id is None:
            parser_id = self.detect_parser(command_hint) if command_hint else "generic"

        parser = self._parsers.get(parser_id, _generic)
        result = parser.parse(output, exit_code)
        if result is not None:
            return result

        return _generic.parse(output, exit_code)


default_registry = ParserRegistry()

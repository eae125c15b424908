"""Tree-sitter backed TypeScript/TSX parser."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Dict

import tree_sitter_typescript
from tree_sitter import Language, Parser, Tree

_LANGUAGES: Dict[str, Language] = {
    "typescript": Language(tree_sitter_typescript.language_typescript()),
    "tsx": Language(tree_sitter_typescript.language_tsx()),
}

# Angle-bracket type assertions only exist in .ts sources; everything else may carry JSX.
_TYPESCRIPT_SUFFIXES = (".ts", ".mts", ".cts")


class ParseError(Exception):
    """Raised when a file cannot be turned into an error-free syntax tree."""


class TypeScriptParser:
    """Parses TypeScript and JavaScript sources with decorator support.

    Tree-sitter parsers are not safe to share between threads, so each worker
    thread lazily builds its own pair of parsers.
    """

    def __init__(self) -> None:
        self._local = threading.local()

    @staticmethod
    def grammar_for(path: str | Path) -> str:
        name = Path(path).name.lower()
        if name.endswith(_TYPESCRIPT_SUFFIXES):
            return "typescript"
        return "tsx"

    def parse(self, source: bytes, path: str | Path) -> Tree:
        parser = self._get_parser(self.grammar_for(path))
        tree = parser.parse(source)
        if tree.root_node.has_error:
            raise ParseError(f"Syntax errors in {path}")
        return tree

    def _get_parser(self, grammar: str) -> Parser:
        parsers: Dict[str, Parser] | None = getattr(self._local, "parsers", None)
        if parsers is None:
            parsers = {}
            self._local.parsers = parsers
        parser = parsers.get(grammar)
        if parser is None:
            parser = Parser(_LANGUAGES[grammar])
            parsers[grammar] = parser
        return parser


__all__ = ["ParseError", "TypeScriptParser"]

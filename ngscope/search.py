"""Keyword search across project sources and templates."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Pattern, Sequence, Tuple

from .logging import get_logger
from .repo_scanner import RepoScanner

SEARCH_SUFFIXES = (".ts", ".js", ".html", ".htm")

_CLASS_ATTRIBUTE = re.compile(r"""class\s*=\s*["']([^"']*)["']""")
_ELEMENT_TEXT = re.compile(r">([^<>]+)<")
_FUNCTION_PATTERNS = (
    re.compile(r"\b(?:async\s+)?function\s*\*?\s*([\w$]+)\s*\("),
    re.compile(r"^\s*(?:(?:public|private|protected|static|async|override)\s+)*([\w$]+)\s*\([^;]*\)\s*(?::[^{;=]+)?\{"),
    re.compile(r"\b(?:const|let|var)\s+([\w$]+)\s*=\s*(?:async\s*)?(?:\([^)]*\)|[\w$]+)\s*=>"),
)
_CONTROL_KEYWORDS = {"if", "for", "while", "switch", "catch", "return", "function", "constructor"}

_logger = get_logger("search")


class SearchMode(str, Enum):
    TEXT = "text"
    REGEX = "regex"
    HTML_CLASS = "html-class"
    HTML_TEXT = "html-text"
    FUNCTION = "function"


@dataclass(frozen=True)
class SearchMatch:
    """One hit; ``column`` is 1-based and ``text`` is the matched fragment."""

    line: int
    column: int
    text: str
    line_text: str
    before: Tuple[str, ...] = ()
    after: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SearchResult:
    file_path: str
    matches: Tuple[SearchMatch, ...]


@dataclass(frozen=True)
class SearchReport:
    root: str
    keyword: str
    mode: SearchMode
    files_searched: int
    results: Tuple[SearchResult, ...] = ()

    @property
    def total_matches(self) -> int:
        return sum(len(result.matches) for result in self.results)


class SearchEngine:
    """Find ``keyword`` in the files of a project.

    ``text`` and ``regex`` modes look at every line. ``html-class`` looks
    inside ``class="..."`` attribute values, ``html-text`` inside text between
    tags and ``function`` at the names of declared functions and methods.
    Matching is case-insensitive unless ``case_sensitive`` is set.
    """

    def __init__(
        self,
        keyword: str,
        mode: SearchMode = SearchMode.TEXT,
        *,
        case_sensitive: bool = False,
        context: int = 0,
        file_types: Sequence[str] = (),
        exclude_paths: Sequence[str] = (),
    ) -> None:
        if not keyword:
            raise ValueError("Search keyword must not be empty")
        if context < 0:
            raise ValueError("Context line count must not be negative")
        self.keyword = keyword
        self.mode = SearchMode(mode)
        self.case_sensitive = case_sensitive
        self.context = context
        suffixes = tuple(f".{kind.lower().lstrip('.')}" for kind in file_types) or SEARCH_SUFFIXES
        self.scanner = RepoScanner(exclude_paths, suffixes=suffixes)
        self._pattern = self._compile()

    def _compile(self) -> Pattern[str]:
        flags = 0 if self.case_sensitive else re.IGNORECASE
        source = self.keyword if self.mode is SearchMode.REGEX else re.escape(self.keyword)
        try:
            return re.compile(source, flags)
        except re.error as exc:
            raise ValueError(f"Invalid regular expression '{self.keyword}': {exc}") from exc

    def search(self, root: str | Path) -> SearchReport:
        root_path = Path(root).expanduser().resolve()
        files = self.scanner.scan(root_path)
        results: List[SearchResult] = []
        for path in files:
            result = self.search_file(path, root_path)
            if result is not None:
                results.append(result)
        _logger.debug(
            "Search for %r (%s) matched %d files out of %d",
            self.keyword,
            self.mode.value,
            len(results),
            len(files),
        )
        return SearchReport(
            root=str(root_path),
            keyword=self.keyword,
            mode=self.mode,
            files_searched=len(files),
            results=tuple(results),
        )

    def search_file(self, path: Path, root: Path) -> Optional[SearchResult]:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            _logger.warning("Skipping %s: %s", path, exc)
            return None
        lines = text.splitlines()
        matches = [
            self._with_context(lines, index, column, fragment)
            for index, line in enumerate(lines)
            for column, fragment in self._find(line)
        ]
        if not matches:
            return None
        return SearchResult(file_path=path.relative_to(root).as_posix(), matches=tuple(matches))

    def _find(self, line: str) -> List[Tuple[int, str]]:
        if self.mode in (SearchMode.TEXT, SearchMode.REGEX):
            return [(match.start(), match.group(0)) for match in self._pattern.finditer(line) if match.group(0)]
        if self.mode is SearchMode.HTML_CLASS:
            return self._find_in_groups(line, [_CLASS_ATTRIBUTE])
        if self.mode is SearchMode.HTML_TEXT:
            return self._find_in_groups(line, [_ELEMENT_TEXT])
        return self._find_functions(line)

    def _find_in_groups(self, line: str, patterns: Sequence[Pattern[str]]) -> List[Tuple[int, str]]:
        found: List[Tuple[int, str]] = []
        for pattern in patterns:
            for outer in pattern.finditer(line):
                value = outer.group(1)
                for inner in self._pattern.finditer(value):
                    found.append((outer.start(1) + inner.start(), inner.group(0)))
        return found

    def _find_functions(self, line: str) -> List[Tuple[int, str]]:
        found = {}
        for pattern in _FUNCTION_PATTERNS:
            match = pattern.search(line)
            if match is None:
                continue
            name = match.group(1)
            if name in _CONTROL_KEYWORDS or not self._pattern.search(name):
                continue
            found.setdefault(match.start(1), name)
        return sorted(found.items())

    def _with_context(self, lines: Sequence[str], index: int, column: int, fragment: str) -> SearchMatch:
        before = tuple(lines[max(0, index - self.context):index]) if self.context else ()
        after = tuple(lines[index + 1:index + 1 + self.context]) if self.context else ()
        return SearchMatch(
            line=index + 1,
            column=column + 1,
            text=fragment,
            line_text=lines[index],
            before=before,
            after=after,
        )


__all__ = [
    "SEARCH_SUFFIXES",
    "SearchEngine",
    "SearchMatch",
    "SearchMode",
    "SearchReport",
    "SearchResult",
]

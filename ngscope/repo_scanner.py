"""Source file discovery honouring ignore files."""

from __future__ import annotations

import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Sequence

from .logging import get_logger
from .models import FileKind

IGNORE_FILENAME = ".ngignore"

SOURCE_SUFFIXES = (".ts", ".tsx", ".js", ".jsx", ".mts", ".mjs")

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    "dist",
    "coverage",
    ".angular",
    ".ngscope",
    "__pycache__",
}

_logger = get_logger("scanner")


@dataclass
class IgnoreRule:
    """Represents an ignore rule parsed from .gitignore, .ngignore or .ngscope.yml.

    ``base`` is the root-relative directory holding the ignore file; the rule
    only applies beneath it and its pattern is matched against the remainder.
    """

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool
    base: str = ""

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.base:
            prefix = f"{self.base}/"
            if not rel_path.startswith(prefix):
                return False
            rel_path = rel_path[len(prefix):]

        parts = rel_path.split("/")
        if self.anchored or self.has_slash:
            pattern_parts = self.pattern.split("/")
            # A match on a leading run of segments names an ancestor directory.
            for end in range(1, len(parts)):
                if _match_segments(pattern_parts, parts[:end]):
                    return True
            if self.directory_only and not is_dir:
                return False
            return _match_segments(pattern_parts, parts)

        candidates = parts if is_dir or not self.directory_only else parts[:-1]
        return any(fnmatchcase(part, self.pattern) for part in candidates)


def _match_segments(pattern: Sequence[str], parts: Sequence[str]) -> bool:
    if not pattern:
        return not parts
    head = pattern[0]
    if head == "**":
        return any(_match_segments(pattern[1:], parts[index:]) for index in range(len(parts) + 1))
    if not parts:
        return False
    return fnmatchcase(parts[0], head) and _match_segments(pattern[1:], parts[1:])


def build_ignore_rule(pattern: str, negate: bool = False, base: str = "") -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern.rstrip("/")

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    # "**/name" matches at any depth, same as a bare "name".
    while pattern.startswith("**/"):
        pattern = pattern[3:]

    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash="/" in pattern,
        base=base,
    )


def parse_ignore_file(path: Path, base: str = "") -> List[IgnoreRule]:
    """Parse a gitignore-syntax file; a missing file yields no rules."""
    if not path.is_file():
        return []

    rules: List[IgnoreRule] = []
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        rule = build_ignore_rule(line, negate=negate, base=base)
        if rule is not None:
            rules.append(rule)
    return rules


def _rules_from_patterns(patterns: Iterable[str]) -> List[IgnoreRule]:
    rules: List[IgnoreRule] = []
    for pattern in patterns:
        negate = pattern.startswith("!")
        rule = build_ignore_rule(pattern[1:] if negate else pattern, negate=negate)
        if rule is not None:
            rules.append(rule)
    return rules


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


def is_source_file(path: Path) -> bool:
    return path.name.lower().endswith(SOURCE_SUFFIXES)


def detect_file_kind(path: str | Path) -> FileKind:
    name = Path(path).name.lower()
    if name.endswith((".d.ts", ".d.mts", ".d.cts")):
        return FileKind.DECLARATION
    if name.endswith((".mts", ".mjs")):
        return FileKind.MODULE_SCRIPT
    if name.endswith((".ts", ".tsx", ".js", ".jsx")):
        return FileKind.SCRIPT
    return FileKind.UNKNOWN


class RepoScanner:
    """Walks a project tree and yields files ending in one of ``suffixes``."""

    def __init__(
        self,
        exclude_paths: Sequence[str] = (),
        *,
        include_hidden: bool = False,
        suffixes: Sequence[str] = SOURCE_SUFFIXES,
    ) -> None:
        self.exclude_paths = list(exclude_paths)
        self.include_hidden = include_hidden
        self.suffixes = tuple(suffix.lower() for suffix in suffixes)

    def load_rules(self, directory: Path, base: str = "") -> List[IgnoreRule]:
        """Read the ignore files of one directory, scoped to its relative ``base``."""
        rules = parse_ignore_file(directory / ".gitignore", base)
        rules.extend(parse_ignore_file(directory / IGNORE_FILENAME, base))
        return rules

    def iter_source_files(self, root: str | Path) -> Iterator[Path]:
        """Yield source files beneath ``root`` in walk order.

        Ignore files are picked up in every visited directory; deeper files
        extend the rules inherited from their parents and configured
        excludes are applied last.
        """
        root_path = _validate_root(root)
        excludes = _rules_from_patterns(self.exclude_paths)
        inherited: Dict[str, List[IgnoreRule]] = {"": []}

        for dirpath, dirnames, filenames in os.walk(root_path):
            current_dir = Path(dirpath)
            rel_dir = current_dir.relative_to(root_path).as_posix() if current_dir != root_path else ""
            rules = inherited.pop(rel_dir, []) + self.load_rules(current_dir, rel_dir)
            active = rules + excludes

            kept_dirs = []
            for name in dirnames:
                if name in _EXCLUDED_DIRS or self._is_hidden(name):
                    continue
                rel_path = f"{rel_dir}/{name}" if rel_dir else name
                if _should_ignore(rel_path, True, active):
                    continue
                kept_dirs.append(name)
                inherited[rel_path] = rules
            dirnames[:] = kept_dirs

            for filename in filenames:
                if self._is_hidden(filename):
                    continue
                path = current_dir / filename
                if not filename.lower().endswith(self.suffixes):
                    continue
                rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
                if _should_ignore(rel_path, False, active):
                    continue
                yield path

    def scan(self, root: str | Path) -> List[Path]:
        """Return discovered source files sorted by root-relative path."""
        root_path = _validate_root(root)
        files = sorted(
            self.iter_source_files(root_path),
            key=lambda path: path.relative_to(root_path).as_posix(),
        )
        _logger.debug("Discovered %d source files under %s", len(files), root_path)
        return files

    def _is_hidden(self, name: str) -> bool:
        return not self.include_hidden and name.startswith(".")


def _validate_root(root: str | Path) -> Path:
    root_path = Path(root).expanduser().resolve()
    if not root_path.exists():
        raise FileNotFoundError(f"Project path not found: {root}")
    if not root_path.is_dir():
        raise NotADirectoryError(f"Project path is not a directory: {root}")
    return root_path


__all__ = [
    "IGNORE_FILENAME",
    "IgnoreRule",
    "RepoScanner",
    "SOURCE_SUFFIXES",
    "build_ignore_rule",
    "detect_file_kind",
    "is_source_file",
    "parse_ignore_file",
]

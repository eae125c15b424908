"""Resolve relative imports into file-to-file dependency edges."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from ..logging import get_logger
from ..models import DependencyEdge, DependencyGraph, ImportRecord, ProjectModel, SourceFile

_logger = get_logger("graph")


def expected_filename(specifier: str) -> str:
    """Filename an import specifier is assumed to point at, e.g. ``./a/b`` -> ``b.ts``."""
    segment = specifier.rstrip("/").rsplit("/", 1)[-1]
    return f"{segment}.ts"


class _EdgeAccumulator:
    def __init__(self, record: ImportRecord, target: str) -> None:
        self.source = record.file_id
        self.target = target
        self.form = record.form
        self.line = record.line
        self.symbols: List[str] = []

    def add(self, symbol: str) -> None:
        if symbol and symbol not in self.symbols:
            self.symbols.append(symbol)

    def freeze(self) -> DependencyEdge:
        return DependencyEdge(
            source=self.source,
            target=self.target,
            form=self.form,
            symbols=tuple(self.symbols),
            line=self.line,
        )


class DependencyGraphBuilder:
    """Builds a DependencyGraph from a ProjectModel using the filename heuristic.

    Only the last path segment of a relative specifier is considered: ``./b``
    and ``../shared/b`` both resolve to the first registered ``b.ts``. Index
    files, extension-less directories and path aliases are not resolved.
    """

    def build(self, model: ProjectModel) -> DependencyGraph:
        return self.build_from(model.files, model.imports)

    def build_from(self, files: Sequence[SourceFile], imports: Sequence[ImportRecord]) -> DependencyGraph:
        known = {source.id for source in files}
        edges: Dict[Tuple[str, str], _EdgeAccumulator] = {}
        external: List[ImportRecord] = []
        unresolved: List[ImportRecord] = []

        for record in imports:
            if not record.is_relative:
                external.append(record)
                continue
            if record.file_id not in known:
                continue
            target = self.resolve(record.source, files)
            if target is None:
                unresolved.append(record)
                continue
            key = (record.file_id, target)
            accumulator = edges.get(key)
            if accumulator is None:
                accumulator = edges[key] = _EdgeAccumulator(record, target)
            accumulator.add(record.symbol)

        _logger.debug(
            "Built graph: %d edges, %d external imports, %d unresolved",
            len(edges),
            len(external),
            len(unresolved),
        )
        return DependencyGraph(
            files=tuple(files),
            edges=tuple(accumulator.freeze() for accumulator in edges.values()),
            external_imports=tuple(external),
            unresolved_imports=tuple(unresolved),
        )

    @staticmethod
    def resolve(specifier: str, files: Sequence[SourceFile]) -> Optional[str]:
        wanted = expected_filename(specifier)
        for source in files:
            if source.filename == wanted:
                return source.id
        return None


__all__ = ["DependencyGraphBuilder", "expected_filename"]

"""Project model construction: discovery, parallel extraction, deterministic merge."""

from __future__ import annotations

import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .extractor import EntityExtractor
from .logging import get_logger
from .models import (
    Component,
    Directive,
    ExportRecord,
    FileFacts,
    ImportRecord,
    NgModule,
    Pipe,
    ProjectModel,
    Service,
    SourceFile,
)
from .parsers import ParseError, TypeScriptParser
from .repo_scanner import RepoScanner, detect_file_kind

_logger = get_logger("project")


class AnalysisCancelled(RuntimeError):
    """Raised when a caller-supplied ``should_continue`` callback returns False."""


class AnalysisContext:
    """Per-run registry assigning stable ``file_<n>`` identifiers to paths."""

    def __init__(self) -> None:
        self._ids: Dict[str, str] = {}
        self._counter = 0
        self._lock = threading.Lock()

    def register(self, path: str) -> str:
        with self._lock:
            existing = self._ids.get(path)
            if existing is not None:
                return existing
            self._counter += 1
            file_id = f"file_{self._counter}"
            self._ids[path] = file_id
            return file_id

    def id_for(self, path: str) -> Optional[str]:
        return self._ids.get(path)

    def __len__(self) -> int:
        return len(self._ids)


@dataclass(frozen=True)
class _FileResult:
    source: SourceFile
    facts: FileFacts


def _default_workers() -> int:
    return min(8, (os.cpu_count() or 1) + 4)


class ProjectModelBuilder:
    """Builds a ProjectModel for one project root."""

    def __init__(
        self,
        scanner: RepoScanner | None = None,
        parser: TypeScriptParser | None = None,
        extractor: EntityExtractor | None = None,
        *,
        workers: int | None = None,
    ) -> None:
        self.scanner = scanner or RepoScanner()
        self.parser = parser or TypeScriptParser()
        self.extractor = extractor or EntityExtractor()
        self.workers = workers or _default_workers()

    def build(
        self,
        root: str | Path,
        *,
        should_continue: Callable[[], bool] | None = None,
        context: AnalysisContext | None = None,
    ) -> ProjectModel:
        root_path = Path(root).expanduser().resolve()
        paths = self.scanner.scan(root_path)
        _logger.info("Analyzing %d source files under %s", len(paths), root_path)

        context = context or AnalysisContext()
        jobs: List[Tuple[str, Path, str]] = []
        for path in paths:
            relative = path.relative_to(root_path).as_posix()
            jobs.append((context.register(relative), path, relative))

        results, skipped = self._extract_all(jobs, should_continue)
        return _merge(str(root_path), results, skipped)

    def _extract_all(
        self,
        jobs: Sequence[Tuple[str, Path, str]],
        should_continue: Callable[[], bool] | None,
    ) -> Tuple[List[_FileResult], List[str]]:
        results: List[_FileResult] = []
        skipped: List[str] = []
        if not jobs:
            return results, skipped

        def _check() -> None:
            if should_continue is not None and not should_continue():
                raise AnalysisCancelled("Analysis cancelled by caller")

        with ThreadPoolExecutor(max_workers=min(self.workers, len(jobs)), thread_name_prefix="ngscope") as executor:
            future_to_path: Dict[Future[_FileResult], str] = {}
            for file_id, path, relative in jobs:
                _check()
                future_to_path[executor.submit(self._extract_file, file_id, path, relative)] = relative

            try:
                for future in as_completed(future_to_path):
                    relative = future_to_path[future]
                    try:
                        results.append(future.result())
                    except (OSError, UnicodeDecodeError, ParseError) as exc:
                        _logger.debug("Skipping %s: %s", relative, exc)
                        skipped.append(relative)
                    _check()
            except AnalysisCancelled:
                for pending in future_to_path:
                    pending.cancel()
                raise

        return results, skipped

    def _extract_file(self, file_id: str, path: Path, relative: str) -> _FileResult:
        source = path.read_bytes()
        # Decode up front so undecodable files are skipped rather than half-read.
        source.decode("utf-8")
        tree = self.parser.parse(source, path)
        facts = self.extractor.extract(tree, source, file_id, relative)
        return _FileResult(
            source=SourceFile(
                id=file_id,
                path=str(path),
                relative_path=relative,
                kind=detect_file_kind(path),
                exports=tuple(record.symbol for record in facts.exports),
                imports=tuple(record.symbol for record in facts.imports if record.symbol),
            ),
            facts=facts,
        )


def _merge(root: str, results: Sequence[_FileResult], skipped: Sequence[str]) -> ProjectModel:
    ordered = sorted(results, key=lambda result: result.source.relative_path)

    components: List[Component] = []
    services: List[Service] = []
    modules: List[NgModule] = []
    pipes: List[Pipe] = []
    directives: List[Directive] = []
    imports: List[ImportRecord] = []
    exports: List[ExportRecord] = []

    for result in ordered:
        entity = result.facts.entity
        if isinstance(entity, Component):
            components.append(entity)
        elif isinstance(entity, Service):
            services.append(entity)
        elif isinstance(entity, NgModule):
            modules.append(entity)
        elif isinstance(entity, Pipe):
            pipes.append(entity)
        elif isinstance(entity, Directive):
            directives.append(entity)
        imports.extend(result.facts.imports)
        exports.extend(result.facts.exports)

    def _by_location(items: list) -> tuple:
        return tuple(sorted(items, key=lambda item: (item.file_path, item.name)))

    if skipped:
        _logger.info("Skipped %d files that could not be parsed", len(skipped))

    return ProjectModel(
        root=root,
        files=tuple(result.source for result in ordered),
        components=_by_location(components),
        services=_by_location(services),
        modules=_by_location(modules),
        pipes=_by_location(pipes),
        directives=_by_location(directives),
        imports=tuple(imports),
        exports=tuple(exports),
        skipped=tuple(sorted(skipped)),
    )


__all__ = ["AnalysisCancelled", "AnalysisContext", "ProjectModelBuilder"]

"""Core data models shared across ngscope components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, Optional, Tuple, Union


class FileKind(str, Enum):
    """Coarse classification of a discovered source file."""

    SCRIPT = "script"
    MODULE_SCRIPT = "module_script"
    DECLARATION = "declaration"
    UNKNOWN = "unknown"


class EntityKind(str, Enum):
    COMPONENT = "component"
    SERVICE = "service"
    MODULE = "module"
    PIPE = "pipe"
    DIRECTIVE = "directive"


class ChangeDetection(str, Enum):
    DEFAULT = "default"
    ON_PUSH = "on_push"


class ImportForm(str, Enum):
    DEFAULT = "default"
    NAMED = "named"
    NAMESPACE = "namespace"
    SIDE_EFFECT = "side_effect"
    DYNAMIC = "dynamic"


class ExportForm(str, Enum):
    DEFAULT = "default"
    NAMED = "named"
    REEXPORT = "reexport"


class CycleSeverity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"low": 0, "medium": 1, "high": 2}[self.value]


@dataclass(frozen=True)
class SourceFile:
    """Identity record for a discovered project file."""

    id: str
    path: str
    relative_path: str
    kind: FileKind
    exports: Tuple[str, ...] = ()
    imports: Tuple[str, ...] = ()

    @property
    def filename(self) -> str:
        return self.relative_path.rsplit("/", 1)[-1]


@dataclass(frozen=True)
class TemplateSource:
    """Template of a component: inline text or an external reference, never both."""

    inline: Optional[str] = None
    url: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.inline is None) == (self.url is None):
            raise ValueError("TemplateSource requires exactly one of 'inline' or 'url'")

    @property
    def is_inline(self) -> bool:
        return self.inline is not None


@dataclass(frozen=True)
class Binding:
    """An input or output property declared on a component or directive."""

    name: str
    alias: Optional[str] = None
    type_name: str = "any"


@dataclass(frozen=True)
class Parameter:
    name: str
    type_name: str = "any"
    optional: bool = False


@dataclass(frozen=True)
class Method:
    name: str
    parameters: Tuple[Parameter, ...] = ()
    return_type: Optional[str] = None


@dataclass(frozen=True)
class Component:
    """An ``@Component`` class.

    ``template`` is None when the decorator names neither ``template`` nor
    ``templateUrl``; ``declared_template_keys`` lists every key that was written.
    """

    name: str
    file_id: str
    file_path: str
    selector: Optional[str] = None
    template: Optional[TemplateSource] = None
    declared_template_keys: Tuple[str, ...] = ()
    style_urls: Tuple[str, ...] = ()
    inputs: Tuple[Binding, ...] = ()
    outputs: Tuple[Binding, ...] = ()
    lifecycle_hooks: Tuple[str, ...] = ()
    dependencies: Tuple[str, ...] = ()
    complexity_score: int = 1
    change_detection: ChangeDetection = ChangeDetection.DEFAULT
    cleans_up_on_destroy: bool = False
    kind: EntityKind = field(default=EntityKind.COMPONENT, init=False)


@dataclass(frozen=True)
class Service:
    name: str
    file_id: str
    file_path: str
    provided_in: Optional[str] = None
    dependencies: Tuple[str, ...] = ()
    methods: Tuple[Method, ...] = ()
    kind: EntityKind = field(default=EntityKind.SERVICE, init=False)


@dataclass(frozen=True)
class NgModule:
    name: str
    file_id: str
    file_path: str
    declarations: Tuple[str, ...] = ()
    imports: Tuple[str, ...] = ()
    exports: Tuple[str, ...] = ()
    providers: Tuple[str, ...] = ()
    bootstrap: Tuple[str, ...] = ()
    kind: EntityKind = field(default=EntityKind.MODULE, init=False)


@dataclass(frozen=True)
class Pipe:
    name: str
    file_id: str
    file_path: str
    pipe_name: Optional[str] = None
    pure: bool = True
    kind: EntityKind = field(default=EntityKind.PIPE, init=False)


@dataclass(frozen=True)
class Directive:
    name: str
    file_id: str
    file_path: str
    selector: Optional[str] = None
    inputs: Tuple[Binding, ...] = ()
    outputs: Tuple[Binding, ...] = ()
    dependencies: Tuple[str, ...] = ()
    kind: EntityKind = field(default=EntityKind.DIRECTIVE, init=False)


Entity = Union[Component, Service, NgModule, Pipe, Directive]


@dataclass(frozen=True)
class ImportRecord:
    """One imported symbol (or bare module reference) seen in a file."""

    file_id: str
    symbol: str
    source: str
    form: ImportForm
    line: int = 0

    @property
    def is_relative(self) -> bool:
        return self.source.startswith(".")


@dataclass(frozen=True)
class ExportRecord:
    file_id: str
    symbol: str
    form: ExportForm
    source: Optional[str] = None
    line: int = 0


@dataclass(frozen=True)
class FileFacts:
    """Everything the extractor learned from a single file."""

    entity: Optional[Entity]
    imports: Tuple[ImportRecord, ...] = ()
    exports: Tuple[ExportRecord, ...] = ()


@dataclass(frozen=True)
class ProjectModel:
    """Normalized semantic view of a project, built once per run."""

    root: str
    files: Tuple[SourceFile, ...] = ()
    components: Tuple[Component, ...] = ()
    services: Tuple[Service, ...] = ()
    modules: Tuple[NgModule, ...] = ()
    pipes: Tuple[Pipe, ...] = ()
    directives: Tuple[Directive, ...] = ()
    imports: Tuple[ImportRecord, ...] = ()
    exports: Tuple[ExportRecord, ...] = ()
    skipped: Tuple[str, ...] = ()

    def entities(self) -> Iterator[Entity]:
        yield from self.components
        yield from self.services
        yield from self.modules
        yield from self.pipes
        yield from self.directives

    def file_by_id(self) -> Dict[str, SourceFile]:
        return {source.id: source for source in self.files}


@dataclass(frozen=True)
class DependencyEdge:
    """Resolved file-to-file relation derived from relative imports."""

    source: str
    target: str
    form: ImportForm
    symbols: Tuple[str, ...] = ()
    line: int = 0


@dataclass(frozen=True)
class DependencyGraph:
    files: Tuple[SourceFile, ...] = ()
    edges: Tuple[DependencyEdge, ...] = ()
    external_imports: Tuple[ImportRecord, ...] = ()
    unresolved_imports: Tuple[ImportRecord, ...] = ()

    def file_ids(self) -> Tuple[str, ...]:
        return tuple(source.id for source in self.files)

    def file(self, file_id: str) -> Optional[SourceFile]:
        for source in self.files:
            if source.id == file_id:
                return source
        return None

    def adjacency(self) -> Dict[str, Tuple[str, ...]]:
        """Return successor ids per file, in edge insertion order."""
        successors: Dict[str, list[str]] = {source.id: [] for source in self.files}
        for edge in self.edges:
            successors.setdefault(edge.source, []).append(edge.target)
        return {key: tuple(values) for key, values in successors.items()}

    def successors(self, file_id: str) -> Tuple[str, ...]:
        return tuple(edge.target for edge in self.edges if edge.source == file_id)


@dataclass(frozen=True)
class Cycle:
    """Closed import cycle; the first and last entries are the same file."""

    files: Tuple[str, ...]
    severity: CycleSeverity

    @property
    def length(self) -> int:
        return len(self.files) - 1


@dataclass(frozen=True)
class DependencyAnalysis:
    cycles: Tuple[Cycle, ...] = ()
    orphaned_files: Tuple[str, ...] = ()
    depths: Dict[str, int] = field(default_factory=dict)
    most_imported: Tuple[Tuple[str, int], ...] = ()
    most_dependent: Tuple[Tuple[str, int], ...] = ()


@dataclass(frozen=True)
class Recommendation:
    """Project-level advice; unlike an issue it points at no single finding."""

    category: str
    title: str
    description: str
    priority: Priority
    file_path: Optional[str] = None


__all__ = [
    "Binding",
    "ChangeDetection",
    "Component",
    "Cycle",
    "CycleSeverity",
    "DependencyAnalysis",
    "DependencyEdge",
    "DependencyGraph",
    "Directive",
    "Entity",
    "EntityKind",
    "ExportForm",
    "ExportRecord",
    "FileFacts",
    "FileKind",
    "ImportForm",
    "ImportRecord",
    "Method",
    "NgModule",
    "Parameter",
    "Pipe",
    "Priority",
    "ProjectModel",
    "Recommendation",
    "Service",
    "SourceFile",
    "TemplateSource",
]

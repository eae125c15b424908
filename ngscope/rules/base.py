"""Base classes for rule plugins."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from ..config import RuleSettings
from ..models import DependencyAnalysis, DependencyGraph, ProjectModel

RULE_CATEGORIES = ("component", "dependency", "state", "performance")

# File path used for findings about the project as a whole.
PROJECT_SCOPE = "."


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        return {"info": 0, "warning": 1, "error": 2}[self.value]

    def at_least(self, other: "Severity") -> bool:
        return self.rank >= other.rank


@dataclass(frozen=True)
class Issue:
    """A single finding emitted by a rule."""

    rule: str
    severity: Severity
    message: str
    file_path: str
    line: Optional[int] = None


@dataclass(frozen=True)
class RuleContext:
    """Everything a rule may inspect for one analysis run."""

    model: ProjectModel
    graph: DependencyGraph
    analysis: DependencyAnalysis

    def relative_path(self, file_id: str) -> str:
        source = self.graph.file(file_id)
        return source.relative_path if source is not None else file_id


class Rule(ABC):
    """Contract for rules that turn the project model into issues.

    ``category`` groups rules the way the per-analyzer commands select them:
    one of :data:`RULE_CATEGORIES`.
    """

    name: str = ""
    description: str = ""
    category: str = "component"
    default_severity: Severity = Severity.WARNING
    default_options: Dict[str, Any] = {}

    def __init__(self, settings: RuleSettings | None = None) -> None:
        self.settings = settings or RuleSettings()
        self.severity = Severity(self.settings.severity) if self.settings.severity else self.default_severity

    def option(self, key: str) -> Any:
        return self.settings.options.get(key, self.default_options.get(key))

    def issue(self, message: str, file_path: str, line: Optional[int] = None) -> Issue:
        return Issue(rule=self.name, severity=self.severity, message=message, file_path=file_path, line=line)

    @abstractmethod
    def check(self, context: RuleContext) -> Iterable[Issue]:
        """Produce issues for the analysed project."""


__all__ = ["Issue", "PROJECT_SCOPE", "RULE_CATEGORIES", "Rule", "RuleContext", "Severity"]

"""Entity builders and rule contexts for rule tests."""

from __future__ import annotations

from ngscope.graph import analyze
from ngscope.models import ChangeDetection, Component, DependencyGraph, ProjectModel, Service, TemplateSource
from ngscope.rules import RuleContext

from .graphs import make_graph


def make_component(**overrides) -> Component:
    values = {
        "name": "WidgetComponent",
        "file_id": "file_1",
        "file_path": "src/widget.component.ts",
        "template": TemplateSource(url="./widget.html"),
        "declared_template_keys": ("templateUrl",),
        "change_detection": ChangeDetection.ON_PUSH,
    }
    values.update(overrides)
    return Component(**values)


def make_service(name: str, **overrides) -> Service:
    values = {
        "name": name,
        "file_id": f"file_{name.lower()}",
        "file_path": f"src/{name.lower()}.ts",
    }
    values.update(overrides)
    return Service(**values)


def rule_context(model: ProjectModel | None = None, graph: DependencyGraph | None = None) -> RuleContext:
    graph = graph or make_graph([], [])
    return RuleContext(model=model or ProjectModel(root="/p"), graph=graph, analysis=analyze(graph))


__all__ = ["make_component", "make_service", "rule_context"]

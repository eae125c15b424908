"""Rules about dependencies between files and injected types."""

from __future__ import annotations

from typing import Iterable, Set, Tuple

from .base import Issue, Rule, RuleContext, Severity


class CircularDependencyRule(Rule):
    name = "circular-dependency"
    description = "Files participating in an import cycle."
    category = "dependency"
    default_severity = Severity.ERROR

    def check(self, context: RuleContext) -> Iterable[Issue]:
        for cycle in context.analysis.cycles:
            chain = " -> ".join(context.relative_path(file_id) for file_id in cycle.files)
            yield self.issue(
                f"Circular dependency ({cycle.severity.value}, {cycle.length} files): {chain}",
                context.relative_path(cycle.files[0]),
            )


class DeepDependencyChainRule(Rule):
    name = "deep-dependency-chain"
    description = "Files whose longest import chain exceeds max_depth."
    category = "dependency"
    default_options = {"max_depth": 5}

    def check(self, context: RuleContext) -> Iterable[Issue]:
        limit = int(self.option("max_depth"))
        for file_id in context.graph.file_ids():
            depth = context.analysis.depths.get(file_id, 1)
            if depth > limit:
                yield self.issue(
                    f"Import chain depth {depth} exceeds {limit}",
                    context.relative_path(file_id),
                )


class UnusedDependencyRule(Rule):
    name = "unused-dependency"
    description = "Types injected by components that no project entity defines and no service uses."
    category = "dependency"

    def check(self, context: RuleContext) -> Iterable[Issue]:
        model = context.model
        known: Set[str] = {entity.name for entity in model.entities()}
        for service in model.services:
            known.update(service.dependencies)
        external: Set[Tuple[str, str]] = {
            (record.file_id, record.symbol) for record in model.imports if record.symbol and not record.is_relative
        }

        reported: Set[str] = set()
        for component in model.components:
            for dependency in component.dependencies:
                if dependency in known or dependency in reported:
                    continue
                if (component.file_id, dependency) in external:
                    continue
                reported.add(dependency)
                yield self.issue(
                    f"Dependency '{dependency}' injected by '{component.name}' appears to be unused",
                    component.file_path,
                )


class OrphanedFileRule(Rule):
    name = "orphaned-file"
    description = "Files that are never imported and export nothing."
    category = "dependency"
    default_severity = Severity.INFO

    def check(self, context: RuleContext) -> Iterable[Issue]:
        for file_id in context.analysis.orphaned_files:
            yield self.issue("File is never imported and exports nothing", context.relative_path(file_id))


__all__ = ["CircularDependencyRule", "DeepDependencyChainRule", "OrphanedFileRule", "UnusedDependencyRule"]

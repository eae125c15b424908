"""Rules inspecting individual Angular entities."""

from __future__ import annotations

from typing import Iterable, Tuple, assert_never

from ..models import ChangeDetection, Component, Directive, Entity, NgModule, Pipe, Service
from .base import Issue, Rule, RuleContext, Severity


class ComponentComplexityRule(Rule):
    name = "component-complexity"
    description = "Components whose method count pushes complexity past max_complexity."
    default_options = {"max_complexity": 10}

    def check(self, context: RuleContext) -> Iterable[Issue]:
        limit = int(self.option("max_complexity"))
        for component in context.model.components:
            if component.complexity_score > limit:
                yield self.issue(
                    f"Component '{component.name}' has complexity {component.complexity_score} (max {limit})",
                    component.file_path,
                )


class ComponentComplexityCriticalRule(Rule):
    name = "component-complexity-critical"
    description = "Components whose complexity is more than twice max_complexity."
    default_severity = Severity.ERROR
    default_options = {"max_complexity": 10}

    def check(self, context: RuleContext) -> Iterable[Issue]:
        limit = int(self.option("max_complexity")) * 2
        for component in context.model.components:
            if component.complexity_score > limit:
                yield self.issue(
                    f"Component '{component.name}' has critically high complexity {component.complexity_score} "
                    f"(more than {limit}); split it up",
                    component.file_path,
                )


class ChangeDetectionRule(Rule):
    name = "change-detection-strategy"
    description = "Components still using the default change detection strategy."
    default_severity = Severity.INFO

    def check(self, context: RuleContext) -> Iterable[Issue]:
        for component in context.model.components:
            if component.change_detection is ChangeDetection.DEFAULT:
                yield self.issue(
                    f"Component '{component.name}' uses default change detection; consider OnPush",
                    component.file_path,
                )


def _bindings(entity: Component | Directive, direction: str) -> int:
    return len(entity.inputs if direction == "inputs" else entity.outputs)


class TooManyInputsRule(Rule):
    name = "too-many-inputs"
    description = "Components or directives exposing more than max_inputs inputs."
    default_options = {"max_inputs": 8}
    _direction = "inputs"
    _option = "max_inputs"

    def check(self, context: RuleContext) -> Iterable[Issue]:
        limit = int(self.option(self._option))
        bound: Tuple[Component | Directive, ...] = context.model.components + context.model.directives
        for entity in bound:
            count = _bindings(entity, self._direction)
            if count > limit:
                yield self.issue(
                    f"{entity.kind.value.capitalize()} '{entity.name}' declares {count} {self._direction} (max {limit})",
                    entity.file_path,
                )


class TooManyOutputsRule(TooManyInputsRule):
    name = "too-many-outputs"
    description = "Components or directives exposing more than max_outputs outputs."
    default_options = {"max_outputs": 5}
    _direction = "outputs"
    _option = "max_outputs"


class LifecycleHooksRule(Rule):
    name = "many-lifecycle-hooks"
    description = "Components implementing more than max_hooks lifecycle hooks."
    default_severity = Severity.INFO
    default_options = {"max_hooks": 4}

    def check(self, context: RuleContext) -> Iterable[Issue]:
        limit = int(self.option("max_hooks"))
        for component in context.model.components:
            if len(component.lifecycle_hooks) > limit:
                hooks = ", ".join(component.lifecycle_hooks)
                yield self.issue(
                    f"Component '{component.name}' implements {len(component.lifecycle_hooks)} lifecycle hooks ({hooks})",
                    component.file_path,
                )


class MissingCleanupPatternRule(Rule):
    name = "missing-cleanup-pattern"
    description = "Components with ngOnInit and ngOnDestroy whose ngOnDestroy makes no cleanup call."

    def check(self, context: RuleContext) -> Iterable[Issue]:
        for component in context.model.components:
            hooks = set(component.lifecycle_hooks)
            if {"ngOnInit", "ngOnDestroy"} <= hooks and not component.cleans_up_on_destroy:
                yield self.issue(
                    f"Component '{component.name}' implements ngOnInit and ngOnDestroy but ngOnDestroy "
                    "releases nothing (unsubscribe, complete, ...)",
                    component.file_path,
                )


class TemplateConflictRule(Rule):
    name = "template-conflict"
    description = "Components declaring both template and templateUrl."
    default_severity = Severity.ERROR

    def check(self, context: RuleContext) -> Iterable[Issue]:
        for component in context.model.components:
            keys = set(component.declared_template_keys)
            if {"template", "templateUrl"} <= keys:
                yield self.issue(
                    f"Component '{component.name}' declares both template and templateUrl",
                    component.file_path,
                )


class MissingTemplateRule(Rule):
    name = "missing-template"
    description = "Components without any template."

    def check(self, context: RuleContext) -> Iterable[Issue]:
        for component in context.model.components:
            if component.template is None:
                yield self.issue(f"Component '{component.name}' has no template", component.file_path)


class InlineTemplateSizeRule(Rule):
    name = "inline-template-too-large"
    description = "Inline templates longer than max_length characters."
    default_severity = Severity.INFO
    default_options = {"max_length": 500}

    def check(self, context: RuleContext) -> Iterable[Issue]:
        limit = int(self.option("max_length"))
        for component in context.model.components:
            template = component.template
            if template is None or not template.is_inline:
                continue
            if len(template.inline) > limit:
                yield self.issue(
                    f"Component '{component.name}' has a {len(template.inline)}-character inline template; "
                    "move it to a templateUrl",
                    component.file_path,
                )


def injected_dependencies(entity: Entity) -> Tuple[str, ...]:
    if isinstance(entity, (Component, Service, Directive)):
        return entity.dependencies
    if isinstance(entity, (NgModule, Pipe)):
        return ()
    assert_never(entity)


class TooManyDependenciesRule(Rule):
    name = "too-many-dependencies"
    description = "Entities injecting more than max_dependencies constructor dependencies."
    default_options = {"max_dependencies": 6}

    def check(self, context: RuleContext) -> Iterable[Issue]:
        limit = int(self.option("max_dependencies"))
        for entity in context.model.entities():
            dependencies = injected_dependencies(entity)
            if len(dependencies) > limit:
                yield self.issue(
                    f"{entity.kind.value.capitalize()} '{entity.name}' injects {len(dependencies)} dependencies (max {limit})",
                    entity.file_path,
                )


__all__ = [
    "ChangeDetectionRule",
    "ComponentComplexityCriticalRule",
    "ComponentComplexityRule",
    "InlineTemplateSizeRule",
    "LifecycleHooksRule",
    "MissingCleanupPatternRule",
    "MissingTemplateRule",
    "TemplateConflictRule",
    "TooManyDependenciesRule",
    "TooManyInputsRule",
    "TooManyOutputsRule",
    "injected_dependencies",
]

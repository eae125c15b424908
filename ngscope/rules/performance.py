"""Rules flagging change-detection, bundle-size and memory costs."""

from __future__ import annotations

from typing import Iterable

from ..models import ChangeDetection
from .base import PROJECT_SCOPE, Issue, Rule, RuleContext, Severity
from .state import injects_services


class TooManyStylesheetsRule(Rule):
    name = "too-many-stylesheets"
    description = "Components referencing more than max_stylesheets style files."
    category = "performance"
    default_options = {"max_stylesheets": 3}

    def check(self, context: RuleContext) -> Iterable[Issue]:
        limit = int(self.option("max_stylesheets"))
        for component in context.model.components:
            if len(component.style_urls) > limit:
                yield self.issue(
                    f"Component '{component.name}' has {len(component.style_urls)} stylesheets; consolidate them",
                    component.file_path,
                )


class LargeInlineTemplateRule(Rule):
    name = "large-inline-template"
    description = "Inline templates past max_length characters, which bloat the component bundle."
    category = "performance"
    default_options = {"max_length": 2000}

    def check(self, context: RuleContext) -> Iterable[Issue]:
        limit = int(self.option("max_length"))
        for component in context.model.components:
            template = component.template
            if template is None or not template.is_inline:
                continue
            if len(template.inline) > limit:
                yield self.issue(
                    f"Component '{component.name}' has a large inline template ({len(template.inline)} characters)",
                    component.file_path,
                )


class HighDefaultChangeDetectionRule(Rule):
    name = "high-default-change-detection"
    description = "Projects where more than threshold_percentage of components use default change detection."
    category = "performance"
    default_options = {"threshold_percentage": 70, "min_components": 5}

    def check(self, context: RuleContext) -> Iterable[Issue]:
        components = context.model.components
        if len(components) <= int(self.option("min_components")):
            return
        default_count = sum(1 for c in components if c.change_detection is ChangeDetection.DEFAULT)
        share = default_count * 100.0 / len(components)
        if share > float(self.option("threshold_percentage")):
            yield self.issue(
                f"{share:.1f}% of components use default change detection; consider OnPush",
                PROJECT_SCOPE,
            )


class ComplexDefaultChangeDetectionRule(Rule):
    name = "complex-component-default-cd"
    description = "Components above max_complexity that still use default change detection."
    category = "performance"
    default_options = {"max_complexity": 8}

    def check(self, context: RuleContext) -> Iterable[Issue]:
        limit = int(self.option("max_complexity"))
        for component in context.model.components:
            if component.change_detection is ChangeDetection.DEFAULT and component.complexity_score > limit:
                yield self.issue(
                    f"Complex component '{component.name}' (score {component.complexity_score}) "
                    "uses default change detection",
                    component.file_path,
                )


class ConsiderLazyLoadingRule(Rule):
    name = "consider-lazy-loading"
    description = "A single NgModule holding more than component_threshold components."
    category = "performance"
    default_severity = Severity.INFO
    default_options = {"component_threshold": 10}

    def check(self, context: RuleContext) -> Iterable[Issue]:
        model = context.model
        if len(model.modules) == 1 and len(model.components) > int(self.option("component_threshold")):
            yield self.issue(
                f"{len(model.components)} components live in a single module; split lazy-loaded feature modules",
                model.modules[0].file_path,
            )


class UnbalancedModulesRule(Rule):
    name = "unbalanced-modules"
    description = "Average components per NgModule above max_average."
    category = "performance"
    default_severity = Severity.INFO
    default_options = {"max_average": 8}

    def check(self, context: RuleContext) -> Iterable[Issue]:
        model = context.model
        if len(model.modules) < 2:
            return
        average = len(model.components) / len(model.modules)
        if average > float(self.option("max_average")):
            yield self.issue(
                f"Average of {average:.1f} components per module; reorganise modules for lazy loading",
                PROJECT_SCOPE,
            )


class PotentialMemoryLeakRule(Rule):
    name = "potential-memory-leak"
    description = "Components injecting HTTP clients or services without ngOnDestroy."
    category = "performance"

    def check(self, context: RuleContext) -> Iterable[Issue]:
        for component in context.model.components:
            if injects_services(component) and "ngOnDestroy" not in component.lifecycle_hooks:
                yield self.issue(
                    f"Component '{component.name}' uses HTTP/services without ngOnDestroy; potential memory leak",
                    component.file_path,
                )


class ExcessiveBindingsRule(Rule):
    name = "excessive-bindings"
    description = "Components whose inputs plus outputs exceed max_bindings."
    category = "performance"
    default_options = {"max_bindings": 15}

    def check(self, context: RuleContext) -> Iterable[Issue]:
        limit = int(self.option("max_bindings"))
        for component in context.model.components:
            total = len(component.inputs) + len(component.outputs)
            if total > limit:
                yield self.issue(
                    f"Component '{component.name}' has {total} bindings (max {limit})",
                    component.file_path,
                )


__all__ = [
    "ComplexDefaultChangeDetectionRule",
    "ConsiderLazyLoadingRule",
    "ExcessiveBindingsRule",
    "HighDefaultChangeDetectionRule",
    "LargeInlineTemplateRule",
    "PotentialMemoryLeakRule",
    "TooManyStylesheetsRule",
    "UnbalancedModulesRule",
]

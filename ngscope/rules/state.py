"""Rules about how state lives in services and flows into components."""

from __future__ import annotations

from typing import Iterable, List

from ..models import ChangeDetection, Component, ProjectModel, Service
from .base import PROJECT_SCOPE, Issue, Rule, RuleContext, Severity

_STATE_NAME_HINTS = ("subject", "behaviorsubject", "replaysubject", "observable", "state", "store", "cache")
_STATE_METHOD_HINTS = ("get", "set", "update", "state")
_STORE_LIBRARY_HINTS = ("store", "effect", "reducer")


def looks_stateful(service: Service) -> bool:
    """Heuristic: accessor-style methods or a state-ish class name."""
    lowered = service.name.lower()
    if any(hint in lowered for hint in _STATE_NAME_HINTS):
        return True
    return any(hint in method.name.lower() for method in service.methods for hint in _STATE_METHOD_HINTS)


def state_services(model: ProjectModel) -> List[Service]:
    return [service for service in model.services if looks_stateful(service)]


def uses_store_library(model: ProjectModel) -> bool:
    return any(hint in service.name.lower() for service in model.services for hint in _STORE_LIBRARY_HINTS)


def injects_services(component: Component, hints: Iterable[str] = ("service", "http")) -> bool:
    """True when any injected type name contains one of ``hints`` (case-insensitive)."""
    wanted = tuple(hints)
    return any(hint in dependency.lower() for dependency in component.dependencies for hint in wanted)


class ConsiderStateManagementRule(Rule):
    name = "consider-state-management"
    description = "Projects with more than state_service_threshold stateful services and no store library."
    category = "state"
    default_severity = Severity.INFO
    default_options = {"state_service_threshold": 3}

    def check(self, context: RuleContext) -> Iterable[Issue]:
        limit = int(self.option("state_service_threshold"))
        stateful = state_services(context.model)
        if len(stateful) > limit and not uses_store_library(context.model):
            yield self.issue(
                f"{len(stateful)} services appear to manage state; consider NgRx or another central store",
                PROJECT_SCOPE,
            )


class UnclearStateServiceNamingRule(Rule):
    name = "unclear-state-service-naming"
    description = "Stateful services whose name mentions neither State nor Store."
    category = "state"

    def check(self, context: RuleContext) -> Iterable[Issue]:
        for service in state_services(context.model):
            lowered = service.name.lower()
            if "state" not in lowered and "store" not in lowered:
                yield self.issue(
                    f"Service '{service.name}' appears to manage state; name it with 'State' or 'Store'",
                    service.file_path,
                )


class MissingUnsubscribePatternRule(Rule):
    name = "missing-unsubscribe-pattern"
    description = "Components injecting services without implementing ngOnDestroy."
    category = "state"

    def check(self, context: RuleContext) -> Iterable[Issue]:
        for component in context.model.components:
            if "ngOnDestroy" in component.lifecycle_hooks:
                continue
            if injects_services(component):
                yield self.issue(
                    f"Component '{component.name}' uses services but has no ngOnDestroy to unsubscribe in",
                    component.file_path,
                )


class StateChangeDetectionMismatchRule(Rule):
    name = "state-change-detection-mismatch"
    description = "More than max_components default-strategy components consuming state services."
    category = "state"
    default_options = {"max_components": 2}

    def check(self, context: RuleContext) -> Iterable[Issue]:
        limit = int(self.option("max_components"))
        heavy = [
            component
            for component in context.model.components
            if component.change_detection is ChangeDetection.DEFAULT
            and injects_services(component, ("state", "store", "service"))
        ]
        if len(heavy) > limit:
            names = ", ".join(component.name for component in heavy)
            yield self.issue(
                f"{len(heavy)} components use state services with default change detection ({names}); "
                "consider OnPush",
                PROJECT_SCOPE,
            )


__all__ = [
    "ConsiderStateManagementRule",
    "MissingUnsubscribePatternRule",
    "StateChangeDetectionMismatchRule",
    "UnclearStateServiceNamingRule",
    "injects_services",
    "looks_stateful",
    "state_services",
    "uses_store_library",
]

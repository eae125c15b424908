"""Project-level recommendations, one generator per rule category."""

from __future__ import annotations

from typing import Callable, Dict, List, Sequence, Set, Tuple

from .models import ChangeDetection, Priority, ProjectModel, Recommendation
from .rules.base import RULE_CATEGORIES
from .rules.state import injects_services, state_services, uses_store_library

DEFAULT_MAX_COMPLEXITY = 10


def _default_cd_count(model: ProjectModel) -> int:
    return sum(1 for component in model.components if component.change_detection is ChangeDetection.DEFAULT)


def component_recommendations(model: ProjectModel, max_complexity: int) -> List[Recommendation]:
    advice: List[Recommendation] = []
    default_cd = _default_cd_count(model)
    if default_cd:
        advice.append(
            Recommendation(
                category="Performance",
                title="Optimize Change Detection",
                description=f"Use the OnPush change detection strategy in {default_cd} components.",
                priority=Priority.MEDIUM,
            )
        )
    complex_count = sum(1 for component in model.components if component.complexity_score > max_complexity)
    if complex_count:
        advice.append(
            Recommendation(
                category="Code Quality",
                title="Reduce Component Complexity",
                description=f"Break {complex_count} complex components into smaller ones.",
                priority=Priority.HIGH,
            )
        )
    return advice


def dependency_recommendations(model: ProjectModel, max_complexity: int) -> List[Recommendation]:
    advice: List[Recommendation] = []
    if not model.services and len(model.components) > 3:
        advice.append(
            Recommendation(
                category="Architecture",
                title="Consider Adding Services",
                description="Several components but no services; extract shared logic into injectable services.",
                priority=Priority.MEDIUM,
            )
        )
    injectors = len(model.components) + len(model.services)
    if injectors:
        total = sum(len(item.dependencies) for item in model.components) + sum(
            len(item.dependencies) for item in model.services
        )
        average = total / injectors
        if average > 5:
            advice.append(
                Recommendation(
                    category="Dependency Management",
                    title="High Dependency Coupling",
                    description=f"Average injected dependency count is {average:.1f}; reduce coupling.",
                    priority=Priority.MEDIUM,
                )
            )
    return advice


def performance_recommendations(model: ProjectModel, max_complexity: int) -> List[Recommendation]:
    advice: List[Recommendation] = []
    candidates = sum(
        1
        for component in model.components
        if component.change_detection is ChangeDetection.DEFAULT
        and (component.complexity_score > 5 or len(component.inputs) + len(component.outputs) > 5)
    )
    if candidates:
        advice.append(
            Recommendation(
                category="Performance",
                title="Implement OnPush Change Detection",
                description=f"Switch {candidates} busy components to OnPush to cut unnecessary re-renders.",
                priority=Priority.HIGH,
            )
        )
    if len(model.modules) == 1 and len(model.components) > 8:
        advice.append(
            Recommendation(
                category="Performance",
                title="Implement Lazy Loading",
                description="Split the application into lazy-loaded feature modules to shrink the initial bundle.",
                priority=Priority.MEDIUM,
            )
        )
    at_risk = sum(
        1
        for component in model.components
        if injects_services(component) and "ngOnDestroy" not in component.lifecycle_hooks
    )
    if at_risk:
        advice.append(
            Recommendation(
                category="Memory Management",
                title="Prevent Memory Leaks",
                description=f"Add cleanup for observables and listeners in {at_risk} components.",
                priority=Priority.HIGH,
            )
        )
    large_inline = sum(
        1
        for component in model.components
        if component.template is not None and component.template.is_inline and len(component.template.inline) > 500
    )
    if large_inline:
        advice.append(
            Recommendation(
                category="Bundle Size",
                title="Optimize Template Size",
                description=f"Move {large_inline} large inline templates to templateUrl files.",
                priority=Priority.LOW,
            )
        )
    return advice


def state_recommendations(model: ProjectModel, max_complexity: int) -> List[Recommendation]:
    advice: List[Recommendation] = []
    stateful = state_services(model)
    if len(stateful) > 1 and not uses_store_library(model):
        advice.append(
            Recommendation(
                category="State Management",
                title="Centralize State Management",
                description=f"Consider a central store for the state held in {len(stateful)} services.",
                priority=Priority.MEDIUM,
            )
        )
    default_cd = _default_cd_count(model)
    if default_cd and stateful:
        advice.append(
            Recommendation(
                category="Performance",
                title="Optimize Change Detection",
                description=f"Use OnPush in {default_cd} components that read from state services.",
                priority=Priority.HIGH,
            )
        )
    without_destroy = sum(1 for component in model.components if "ngOnDestroy" not in component.lifecycle_hooks)
    if without_destroy:
        advice.append(
            Recommendation(
                category="Memory Management",
                title="Implement Proper Cleanup",
                description=f"Implement ngOnDestroy in {without_destroy} components to release subscriptions.",
                priority=Priority.HIGH,
            )
        )
    return advice


RECOMMENDERS: Dict[str, Callable[[ProjectModel, int], List[Recommendation]]] = {
    "component": component_recommendations,
    "dependency": dependency_recommendations,
    "state": state_recommendations,
    "performance": performance_recommendations,
}


def recommend(
    model: ProjectModel,
    categories: Sequence[str] = RULE_CATEGORIES,
    *,
    max_complexity: int = DEFAULT_MAX_COMPLEXITY,
) -> Tuple[Recommendation, ...]:
    """Collect advice for ``categories``, highest priority first.

    When two categories produce the same (category, title) pair only the first
    is kept.
    """
    seen: Set[Tuple[str, str]] = set()
    advice: List[Recommendation] = []
    for category in categories:
        for item in RECOMMENDERS[category](model, max_complexity):
            key = (item.category, item.title)
            if key in seen:
                continue
            seen.add(key)
            advice.append(item)
    advice.sort(key=lambda item: -item.priority.rank)
    return tuple(advice)


__all__ = [
    "RECOMMENDERS",
    "component_recommendations",
    "dependency_recommendations",
    "performance_recommendations",
    "recommend",
    "state_recommendations",
]

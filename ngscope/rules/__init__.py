"""Rule implementations and discovery utilities."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Dict, Iterable, List, Mapping, Sequence, Set, Type

from ..config import RuleSettings
from .base import PROJECT_SCOPE, RULE_CATEGORIES, Issue, Rule, RuleContext, Severity
from .component import (
    ChangeDetectionRule,
    ComponentComplexityCriticalRule,
    ComponentComplexityRule,
    InlineTemplateSizeRule,
    LifecycleHooksRule,
    MissingCleanupPatternRule,
    MissingTemplateRule,
    TemplateConflictRule,
    TooManyDependenciesRule,
    TooManyInputsRule,
    TooManyOutputsRule,
)
from .dependency import CircularDependencyRule, DeepDependencyChainRule, OrphanedFileRule, UnusedDependencyRule
from .performance import (
    ComplexDefaultChangeDetectionRule,
    ConsiderLazyLoadingRule,
    ExcessiveBindingsRule,
    HighDefaultChangeDetectionRule,
    LargeInlineTemplateRule,
    PotentialMemoryLeakRule,
    TooManyStylesheetsRule,
    UnbalancedModulesRule,
)
from .state import (
    ConsiderStateManagementRule,
    MissingUnsubscribePatternRule,
    StateChangeDetectionMismatchRule,
    UnclearStateServiceNamingRule,
)

_ENTRY_POINT_GROUP = "ngscope.rules"

BUILTIN_RULES: Dict[str, Type[Rule]] = {
    rule.name: rule
    for rule in (
        ComponentComplexityRule,
        ComponentComplexityCriticalRule,
        ChangeDetectionRule,
        TooManyInputsRule,
        TooManyOutputsRule,
        LifecycleHooksRule,
        MissingCleanupPatternRule,
        TemplateConflictRule,
        MissingTemplateRule,
        InlineTemplateSizeRule,
        TooManyDependenciesRule,
        CircularDependencyRule,
        UnusedDependencyRule,
        DeepDependencyChainRule,
        OrphanedFileRule,
        TooManyStylesheetsRule,
        LargeInlineTemplateRule,
        HighDefaultChangeDetectionRule,
        ComplexDefaultChangeDetectionRule,
        ConsiderLazyLoadingRule,
        UnbalancedModulesRule,
        PotentialMemoryLeakRule,
        ExcessiveBindingsRule,
        ConsiderStateManagementRule,
        UnclearStateServiceNamingRule,
        MissingUnsubscribePatternRule,
        StateChangeDetectionMismatchRule,
    )
}


def discover_rules(
    settings: Mapping[str, RuleSettings] | None = None,
    enabled: Sequence[str] | None = None,
    categories: Sequence[str] | None = None,
) -> List[Rule]:
    """Return instantiated rules, skipping those disabled in ``settings``.

    ``enabled`` narrows the result to the named rules; unknown names raise
    ``ValueError``. ``categories`` keeps only rules whose ``category`` is listed.
    """

    settings = settings or {}
    if categories is not None:
        unknown = sorted(set(categories) - set(RULE_CATEGORIES))
        if unknown:
            raise ValueError(f"Unknown rule categories: {', '.join(unknown)}")
    wanted: Set[str] | None = {name.lower() for name in enabled} if enabled is not None else None
    rules: List[Rule] = []
    seen: Set[str] = set()

    def _add(name: str, factory: Callable[[RuleSettings], Rule]) -> None:
        key = name.lower()
        if key in seen:
            return
        seen.add(key)
        if wanted is not None:
            if key not in wanted:
                return
            wanted.discard(key)
        rule_settings = settings.get(name, RuleSettings())
        if not rule_settings.enabled:
            return
        instance = factory(rule_settings)
        if not isinstance(instance, Rule):
            raise TypeError(f"Rule factory for '{name}' did not return a Rule instance")
        if categories is not None and instance.category not in categories:
            return
        rules.append(instance)

    for name, rule_type in BUILTIN_RULES.items():
        _add(name, rule_type)

    for entry in _iter_entry_points():
        loaded = entry.load()
        if not (isinstance(loaded, type) and issubclass(loaded, Rule)):
            raise TypeError(f"Rule entry point '{entry.name}' must be a Rule subclass")
        _add(entry.name, loaded)

    if wanted:
        missing = ", ".join(sorted(wanted))
        raise ValueError(f"Unknown rules requested: {missing}")

    return rules


def run_rules(rules: Iterable[Rule], context: RuleContext) -> List[Issue]:
    issues: List[Issue] = []
    for rule in rules:
        issues.extend(rule.check(context))
    issues.sort(key=lambda issue: (-issue.severity.rank, issue.file_path, issue.rule, issue.message))
    return issues


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


__all__ = [
    "BUILTIN_RULES",
    "Issue",
    "PROJECT_SCOPE",
    "RULE_CATEGORIES",
    "Rule",
    "RuleContext",
    "Severity",
    "discover_rules",
    "run_rules",
]

"""Tests for the change-detection, bundle-size and memory rules."""

from __future__ import annotations

from ngscope.config import RuleSettings
from ngscope.models import Binding, ChangeDetection, NgModule, ProjectModel, TemplateSource
from ngscope.rules import PROJECT_SCOPE, Severity
from ngscope.rules.performance import (
    ComplexDefaultChangeDetectionRule,
    ConsiderLazyLoadingRule,
    ExcessiveBindingsRule,
    HighDefaultChangeDetectionRule,
    LargeInlineTemplateRule,
    PotentialMemoryLeakRule,
    TooManyStylesheetsRule,
    UnbalancedModulesRule,
)
from tests._fixtures.entities import make_component, rule_context


def _names(issues) -> list[str]:
    return [issue.message.split("'")[1] for issue in issues]


def _module(name: str) -> NgModule:
    return NgModule(name=name, file_id=f"file_{name}", file_path=f"src/{name.lower()}.module.ts")


def test_stylesheet_and_inline_template_size() -> None:
    styled = make_component(name="StyledComponent", style_urls=("a.css", "b.css", "c.css", "d.css"))
    inline = make_component(
        name="InlineComponent",
        template=TemplateSource(inline="<p>" * 700),
        declared_template_keys=("template",),
    )
    context = rule_context(ProjectModel(root="/p", components=(styled, inline)))

    assert _names(TooManyStylesheetsRule().check(context)) == ["StyledComponent"]
    assert _names(LargeInlineTemplateRule().check(context)) == ["InlineComponent"]
    assert list(LargeInlineTemplateRule(RuleSettings(options={"max_length": 5000})).check(context)) == []


def test_high_default_change_detection_is_project_wide() -> None:
    components = tuple(
        make_component(name=f"C{index}", change_detection=ChangeDetection.DEFAULT) for index in range(5)
    ) + (make_component(name="Fast"),)
    context = rule_context(ProjectModel(root="/p", components=components))

    issues = list(HighDefaultChangeDetectionRule().check(context))

    assert [issue.message for issue in issues] == [
        "83.3% of components use default change detection; consider OnPush"
    ]
    assert issues[0].file_path == PROJECT_SCOPE


def test_high_default_change_detection_needs_enough_components() -> None:
    components = tuple(make_component(name=f"C{i}", change_detection=ChangeDetection.DEFAULT) for i in range(5))

    assert list(HighDefaultChangeDetectionRule().check(rule_context(ProjectModel(root="/p", components=components)))) == []


def test_complex_component_with_default_change_detection() -> None:
    components = (
        make_component(name="HeavyComponent", complexity_score=9, change_detection=ChangeDetection.DEFAULT),
        make_component(name="HeavyPushComponent", complexity_score=9),
        make_component(name="LightComponent", complexity_score=3, change_detection=ChangeDetection.DEFAULT),
    )

    issues = ComplexDefaultChangeDetectionRule().check(rule_context(ProjectModel(root="/p", components=components)))

    assert _names(issues) == ["HeavyComponent"]


def test_lazy_loading_and_module_balance() -> None:
    components = tuple(make_component(name=f"C{index}") for index in range(11))
    single = ProjectModel(root="/p", components=components, modules=(_module("App"),))
    split = ProjectModel(root="/p", components=components * 2, modules=(_module("App"), _module("Admin")))

    lazy = list(ConsiderLazyLoadingRule().check(rule_context(single)))
    assert lazy[0].severity is Severity.INFO
    assert lazy[0].file_path == "src/app.module.ts"
    assert list(UnbalancedModulesRule().check(rule_context(single))) == []

    unbalanced = list(UnbalancedModulesRule().check(rule_context(split)))
    assert [issue.message for issue in unbalanced] == [
        "Average of 11.0 components per module; reorganise modules for lazy loading"
    ]
    assert list(ConsiderLazyLoadingRule().check(rule_context(split))) == []


def test_potential_memory_leak_and_excessive_bindings() -> None:
    leaky = make_component(name="LeakyComponent", dependencies=("HttpClient",))
    safe = make_component(name="SafeComponent", dependencies=("UserService",), lifecycle_hooks=("ngOnDestroy",))
    bound = make_component(
        name="BoundComponent",
        inputs=tuple(Binding(name=f"in{index}") for index in range(10)),
        outputs=tuple(Binding(name=f"out{index}") for index in range(6)),
    )
    context = rule_context(ProjectModel(root="/p", components=(leaky, safe, bound)))

    assert _names(PotentialMemoryLeakRule().check(context)) == ["LeakyComponent"]
    assert _names(ExcessiveBindingsRule().check(context)) == ["BoundComponent"]

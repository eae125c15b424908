"""Tests for the state-management rules."""

from __future__ import annotations

from ngscope.config import RuleSettings
from ngscope.models import ChangeDetection, Method, ProjectModel
from ngscope.rules import PROJECT_SCOPE, Severity
from ngscope.rules.state import (
    ConsiderStateManagementRule,
    MissingUnsubscribePatternRule,
    StateChangeDetectionMismatchRule,
    UnclearStateServiceNamingRule,
    looks_stateful,
    state_services,
)
from tests._fixtures.entities import make_component, make_service, rule_context


def test_stateful_service_heuristic() -> None:
    assert looks_stateful(make_service("CartState"))
    assert looks_stateful(make_service("Profiles", methods=(Method(name="updateProfile"),)))
    assert not looks_stateful(make_service("Logger", methods=(Method(name="log"),)))


def test_consider_state_management_over_threshold() -> None:
    services = tuple(make_service(f"Data{index}Cache") for index in range(4))
    model = ProjectModel(root="/p", services=services)

    issues = list(ConsiderStateManagementRule().check(rule_context(model)))

    assert len(state_services(model)) == 4
    assert [issue.file_path for issue in issues] == [PROJECT_SCOPE]
    assert issues[0].severity is Severity.INFO
    assert list(ConsiderStateManagementRule(RuleSettings(options={"state_service_threshold": 4})).check(rule_context(model))) == []


def test_store_services_suppress_state_management_hint() -> None:
    services = tuple(make_service(f"Data{index}Cache") for index in range(4)) + (make_service("AppStore"),)

    assert list(ConsiderStateManagementRule().check(rule_context(ProjectModel(root="/p", services=services)))) == []


def test_unclear_state_service_naming() -> None:
    services = (
        make_service("CartState"),
        make_service("Profiles", methods=(Method(name="setProfile"),)),
        make_service("Logger"),
    )

    issues = UnclearStateServiceNamingRule().check(rule_context(ProjectModel(root="/p", services=services)))

    assert [issue.file_path for issue in issues] == ["src/profiles.ts"]


def test_missing_unsubscribe_pattern() -> None:
    components = (
        make_component(name="ListComponent", dependencies=("OrderService",)),
        make_component(name="CleanComponent", dependencies=("OrderService",), lifecycle_hooks=("ngOnDestroy",)),
        make_component(name="PlainComponent", dependencies=("ElementRef",)),
    )

    issues = MissingUnsubscribePatternRule().check(rule_context(ProjectModel(root="/p", components=components)))

    assert [issue.message.split("'")[1] for issue in issues] == ["ListComponent"]


def test_state_change_detection_mismatch() -> None:
    consumers = tuple(
        make_component(name=f"C{index}", dependencies=("CartStore",), change_detection=ChangeDetection.DEFAULT)
        for index in range(3)
    )
    model = ProjectModel(root="/p", components=consumers)

    issues = list(StateChangeDetectionMismatchRule().check(rule_context(model)))

    assert [issue.file_path for issue in issues] == [PROJECT_SCOPE]
    assert "3 components" in issues[0].message
    assert list(StateChangeDetectionMismatchRule().check(rule_context(ProjectModel(root="/p", components=consumers[:2])))) == []

"""End-to-end tests for the analysis pipeline."""

from __future__ import annotations

import pytest

from ngscope.config import ConfigError
from ngscope.models import CycleSeverity
from ngscope.orchestrator import Orchestrator
from ngscope.rules import Severity
from ngscope.rules.dependency import OrphanedFileRule
from tests._fixtures.projects import SAMPLE_APP
from tests._fixtures.repo_builder import RepoBuilder


def test_run_builds_model_graph_analysis_and_issues(repo_builder: RepoBuilder) -> None:
    repo_builder.write(SAMPLE_APP)

    run = Orchestrator().run(repo_builder.path())

    paths = [source.relative_path for source in run.model.files]
    assert "src/app/app.component.spec.ts" not in paths
    assert len(paths) == 5
    ids = {source.relative_path: source.id for source in run.graph.files}

    assert len(run.graph.edges) == 5
    assert {record.source for record in run.graph.external_imports} == {
        "@angular/core",
        "@angular/platform-browser",
    }

    assert len(run.analysis.cycles) == 1
    cycle = run.analysis.cycles[0]
    assert cycle.files == (ids["src/app/order.service.ts"], ids["src/app/cart.ts"], ids["src/app/order.service.ts"])
    assert cycle.severity is CycleSeverity.CRITICAL
    assert run.analysis.orphaned_files == (ids["src/main.ts"],)
    assert run.analysis.depths[ids["src/main.ts"]] == 5

    rules = {issue.rule for issue in run.issues}
    assert {"circular-dependency", "change-detection-strategy", "orphaned-file"} <= rules
    assert [issue.rule for issue in run.issues_at_least(Severity.ERROR)] == ["circular-dependency"]


def test_run_is_repeatable(repo_builder: RepoBuilder) -> None:
    repo_builder.write(SAMPLE_APP)
    orchestrator = Orchestrator()

    first = orchestrator.run(repo_builder.path())
    second = orchestrator.run(repo_builder.path(), workers=1)

    assert first.model == second.model
    assert first.graph == second.graph
    assert first.analysis == second.analysis
    assert first.issues == second.issues


def test_relaxed_profile_disables_rules(repo_builder: RepoBuilder) -> None:
    repo_builder.write(SAMPLE_APP)

    run = Orchestrator().run(repo_builder.path(), profile="relaxed")

    rules = {issue.rule for issue in run.issues}
    assert "orphaned-file" not in rules
    assert "change-detection-strategy" not in rules
    circular = [issue for issue in run.issues if issue.rule == "circular-dependency"]
    assert [issue.severity for issue in circular] == [Severity.WARNING]


def test_rule_overrides_and_graph_only_runs(repo_builder: RepoBuilder) -> None:
    repo_builder.write(SAMPLE_APP)

    run = Orchestrator(rules=[OrphanedFileRule()]).run(repo_builder.path())
    assert [issue.rule for issue in run.issues] == ["orphaned-file"]

    graph_only = Orchestrator().run(repo_builder.path(), with_rules=False, top_n=1)
    assert graph_only.issues == ()
    assert len(graph_only.analysis.most_imported) == 1


def test_missing_path_and_bad_config(repo_builder: RepoBuilder) -> None:
    with pytest.raises(FileNotFoundError):
        Orchestrator().run(repo_builder.path() / "absent")

    repo_builder.write({".ngscope.yml": "profile: nope\n"})
    with pytest.raises(ConfigError):
        Orchestrator().run(repo_builder.path())


def test_categories_limit_rules_and_recommendations(repo_builder: RepoBuilder) -> None:
    repo_builder.write(SAMPLE_APP)
    orchestrator = Orchestrator()

    deps = orchestrator.run(repo_builder.path(), categories=["dependency"])
    state = orchestrator.run(repo_builder.path(), categories=["state"])

    assert {issue.rule for issue in deps.issues} == {"circular-dependency", "orphaned-file"}
    assert deps.recommendations == ()
    assert {issue.rule for issue in state.issues} == {"missing-unsubscribe-pattern"}
    assert [item.title for item in state.recommendations] == ["Implement Proper Cleanup"]
    assert state.categories == ("state",)

    with pytest.raises(ValueError, match="styling"):
        orchestrator.run(repo_builder.path(), categories=["styling"])

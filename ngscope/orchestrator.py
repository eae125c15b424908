"""Pipeline orchestration: config -> project model -> graph -> analysis -> rules."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from .config import NgScopeConfig, load_config
from .graph import DependencyGraphBuilder, analyze
from .logging import get_logger
from .models import DependencyAnalysis, DependencyGraph, ProjectModel, Recommendation
from .parsers import TypeScriptParser
from .project import ProjectModelBuilder
from .recommendations import DEFAULT_MAX_COMPLEXITY, recommend
from .repo_scanner import RepoScanner
from .rules import RULE_CATEGORIES, Issue, Rule, RuleContext, Severity, discover_rules, run_rules


@dataclass(frozen=True)
class AnalysisRun:
    """Everything produced by one analysis of a project."""

    config: NgScopeConfig
    model: ProjectModel
    graph: DependencyGraph
    analysis: DependencyAnalysis
    issues: Sequence[Issue] = ()
    recommendations: Sequence[Recommendation] = ()
    categories: Sequence[str] = RULE_CATEGORIES

    def issues_at_least(self, severity: Severity) -> List[Issue]:
        return [issue for issue in self.issues if issue.severity.at_least(severity)]


class Orchestrator:
    """Coordinates one analysis run per call; holds no state between runs."""

    def __init__(
        self,
        parser: TypeScriptParser | None = None,
        graph_builder: DependencyGraphBuilder | None = None,
        rules: Optional[Iterable[Rule]] = None,
    ) -> None:
        self.parser = parser or TypeScriptParser()
        self.graph_builder = graph_builder or DependencyGraphBuilder()
        self._rule_overrides = list(rules) if rules is not None else None
        self.logger = get_logger("orchestrator")

    def run(
        self,
        path: str | Path,
        *,
        profile: str | None = None,
        workers: int | None = None,
        top_n: int | None = None,
        with_rules: bool = True,
        categories: Sequence[str] | None = None,
        should_continue: Callable[[], bool] | None = None,
    ) -> AnalysisRun:
        """Analyze the project at ``path``.

        ``categories`` limits rules and recommendations to those rule
        categories; ``with_rules=False`` skips both.
        """
        selected = tuple(categories) if categories is not None else RULE_CATEGORIES
        unknown = sorted(set(selected) - set(RULE_CATEGORIES))
        if unknown:
            raise ValueError(f"Unknown rule categories: {', '.join(unknown)}")
        root = Path(path).expanduser().resolve()
        self.logger.info("Starting analysis for %s", root)
        if not root.exists():
            raise FileNotFoundError(f"Project path not found: {path}")
        if not root.is_dir():
            raise NotADirectoryError(f"Project path is not a directory: {path}")
        config = load_config(root, profile=profile)

        builder = ProjectModelBuilder(
            RepoScanner(config.exclude_paths, include_hidden=config.include_hidden),
            self.parser,
            workers=workers or config.workers,
        )
        model = builder.build(root, should_continue=should_continue)
        graph = self.graph_builder.build(model)
        analysis = analyze(
            graph,
            top_n if top_n is not None else config.graph.top_n,
            config.graph.depth_budget,
        )

        issues: List[Issue] = []
        advice: Sequence[Recommendation] = ()
        if with_rules:
            rules = self._select_rules(config, selected)
            self.logger.debug("Running %d rules for %s", len(rules), ", ".join(selected))
            issues = run_rules(rules, RuleContext(model=model, graph=graph, analysis=analysis))
            max_complexity = config.rule("component-complexity").options.get("max_complexity", DEFAULT_MAX_COMPLEXITY)
            advice = recommend(model, selected, max_complexity=int(max_complexity))

        self.logger.info(
            "Analysis finished: %d files, %d entities, %d issues",
            len(model.files),
            sum(1 for _ in model.entities()),
            len(issues),
        )
        return AnalysisRun(
            config=config,
            model=model,
            graph=graph,
            analysis=analysis,
            issues=tuple(issues),
            recommendations=advice,
            categories=selected,
        )

    def _select_rules(self, config: NgScopeConfig, categories: Sequence[str]) -> List[Rule]:
        if self._rule_overrides is not None:
            return [rule for rule in self._rule_overrides if rule.category in categories]
        return discover_rules(config.rules, categories=categories)


__all__ = ["AnalysisRun", "Orchestrator"]

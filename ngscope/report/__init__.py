"""Report rendering for analysis runs (json, table, html, dot, mermaid)."""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Set, Tuple

from jinja2 import Environment, FileSystemLoader

from ..rules import Severity

if TYPE_CHECKING:
    from ..orchestrator import AnalysisRun
    from ..search import SearchReport

FORMATS = ("json", "table", "html", "dot", "mermaid")
SEARCH_FORMATS = ("text", "json")

_TEMPLATES_DIR = Path(__file__).with_name("templates")


def _escape_html(template_name: str | None) -> bool:
    return template_name == "html.j2"


def _create_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(_TEMPLATES_DIR)),
        autoescape=_escape_html,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


_ENV = _create_env()


def render_report(fmt: str, run: "AnalysisRun") -> str:
    """Render ``run`` in one of :data:`FORMATS`."""
    fmt = fmt.lower()
    if fmt == "json":
        return json.dumps(report_data(run), indent=2, default=str) + "\n"
    if fmt in {"table", "html"}:
        return _ENV.get_template(f"{fmt}.j2").render(**_table_context(run))
    if fmt in {"dot", "mermaid"}:
        return _ENV.get_template(f"{fmt}.j2").render(**_graph_context(run))
    raise ValueError(f"Unknown report format '{fmt}' (expected one of: {', '.join(FORMATS)})")


def render_search(fmt: str, report: "SearchReport", *, line_numbers: bool = True) -> str:
    """Render a search report as grep-style ``text`` or ``json``."""
    fmt = fmt.lower()
    if fmt == "json":
        data = asdict(report)
        data["mode"] = report.mode.value
        data["total_matches"] = report.total_matches
        return json.dumps(data, indent=2) + "\n"
    if fmt == "text":
        return _ENV.get_template("search.j2").render(report=report, line_numbers=line_numbers)
    raise ValueError(f"Unknown search format '{fmt}' (expected one of: {', '.join(SEARCH_FORMATS)})")


def report_data(run: "AnalysisRun") -> Dict[str, Any]:
    """JSON-ready view of a run."""
    model, graph, analysis = run.model, run.graph, run.analysis
    paths = _paths(run)
    return {
        "root": model.root,
        "profile": run.config.profile,
        "summary": dict(_summary(run)),
        "files": [asdict(source) for source in model.files],
        "skipped": list(model.skipped),
        "entities": {
            "components": [asdict(item) for item in model.components],
            "services": [asdict(item) for item in model.services],
            "modules": [asdict(item) for item in model.modules],
            "pipes": [asdict(item) for item in model.pipes],
            "directives": [asdict(item) for item in model.directives],
        },
        "graph": {
            "edges": [asdict(edge) for edge in graph.edges],
            "external_imports": sorted({record.source for record in graph.external_imports}),
            "unresolved_imports": [asdict(record) for record in graph.unresolved_imports],
        },
        "analysis": {
            "cycles": [
                {
                    "files": [paths.get(file_id, file_id) for file_id in cycle.files],
                    "length": cycle.length,
                    "severity": cycle.severity.value,
                }
                for cycle in analysis.cycles
            ],
            "orphaned_files": [paths.get(file_id, file_id) for file_id in analysis.orphaned_files],
            "depths": {paths.get(file_id, file_id): depth for file_id, depth in analysis.depths.items()},
            "most_imported": [
                {"file": paths.get(file_id, file_id), "count": count} for file_id, count in analysis.most_imported
            ],
            "most_dependent": [
                {"file": paths.get(file_id, file_id), "count": count} for file_id, count in analysis.most_dependent
            ],
        },
        "categories": list(run.categories),
        "issues": [asdict(issue) for issue in run.issues],
        "recommendations": [asdict(item) for item in run.recommendations],
    }


def _paths(run: "AnalysisRun") -> Dict[str, str]:
    return {source.id: source.relative_path for source in run.graph.files}


def _summary(run: "AnalysisRun") -> List[Tuple[str, int]]:
    model = run.model
    return [
        ("files", len(model.files)),
        ("skipped", len(model.skipped)),
        ("components", len(model.components)),
        ("services", len(model.services)),
        ("modules", len(model.modules)),
        ("pipes", len(model.pipes)),
        ("directives", len(model.directives)),
        ("edges", len(run.graph.edges)),
        ("cycles", len(run.analysis.cycles)),
        ("orphans", len(run.analysis.orphaned_files)),
        ("issues", len(run.issues)),
        ("recommendations", len(run.recommendations)),
    ]


def _table_context(run: "AnalysisRun") -> Dict[str, Any]:
    paths = _paths(run)
    return {
        "root": run.model.root,
        "profile": run.config.profile,
        "summary": _summary(run),
        "entities": list(run.model.entities()),
        "cycles": [
            {
                "severity": cycle.severity,
                "chain": " -> ".join(paths.get(file_id, file_id) for file_id in cycle.files),
            }
            for cycle in run.analysis.cycles
        ],
        "most_imported": [(paths[file_id], count) for file_id, count in run.analysis.most_imported],
        "most_dependent": [(paths[file_id], count) for file_id, count in run.analysis.most_dependent],
        "orphans": [paths.get(file_id, file_id) for file_id in run.analysis.orphaned_files],
        "issues": run.issues,
        "issue_counts": {
            severity.value: sum(1 for issue in run.issues if issue.severity is severity) for severity in Severity
        },
        "recommendations": run.recommendations,
    }


def _cycle_edges(run: "AnalysisRun") -> Set[Tuple[str, str]]:
    pairs: Set[Tuple[str, str]] = set()
    for cycle in run.analysis.cycles:
        pairs.update(zip(cycle.files, cycle.files[1:]))
    return pairs


def _graph_context(run: "AnalysisRun") -> Dict[str, Any]:
    cycle_edges = _cycle_edges(run)
    cycle_nodes = sorted({file_id for pair in cycle_edges for file_id in pair})
    return {
        "nodes": [
            {
                "id": source.id,
                "label": source.relative_path.replace('"', "'"),
                "in_cycle": source.id in cycle_nodes,
            }
            for source in run.graph.files
        ],
        "edges": [
            {
                "source": edge.source,
                "target": edge.target,
                "in_cycle": (edge.source, edge.target) in cycle_edges,
            }
            for edge in run.graph.edges
        ],
        "cycle_nodes": cycle_nodes,
    }


__all__ = ["FORMATS", "SEARCH_FORMATS", "render_report", "render_search", "report_data"]

"""Structural analysis over a DependencyGraph: cycles, orphans, depth and rankings."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Set, Tuple

from ..logging import get_logger
from ..models import Cycle, CycleSeverity, DependencyAnalysis, DependencyGraph

DEFAULT_TOP_N = 10
DEFAULT_DEPTH_BUDGET = 200_000

_logger = get_logger("graph.analysis")

Adjacency = Mapping[str, Sequence[str]]


def cycle_severity(length: int) -> CycleSeverity:
    """Shorter cycles are harder to untangle incrementally and rank higher."""
    if length <= 2:
        return CycleSeverity.CRITICAL
    if length <= 4:
        return CycleSeverity.WARNING
    return CycleSeverity.INFO


def find_cycles(graph: DependencyGraph) -> Tuple[Cycle, ...]:
    """Report the first cycle reachable from each unvisited file, in registry order."""
    adjacency = graph.adjacency()
    visited: Set[str] = set()
    cycles: List[Cycle] = []
    for root in graph.file_ids():
        if root in visited:
            continue
        closed = _first_cycle_from(root, adjacency, visited)
        if closed is not None:
            cycles.append(Cycle(files=tuple(closed), severity=cycle_severity(len(closed) - 1)))
    return tuple(cycles)


def _first_cycle_from(root: str, adjacency: Adjacency, visited: Set[str]) -> Optional[List[str]]:
    path = [root]
    on_path = {root}
    visited.add(root)
    stack: List[Iterator[str]] = [iter(adjacency.get(root, ()))]

    while stack:
        for successor in stack[-1]:
            if successor in on_path:
                start = path.index(successor)
                return path[start:] + [successor]
            if successor not in visited:
                visited.add(successor)
                path.append(successor)
                on_path.add(successor)
                stack.append(iter(adjacency.get(successor, ())))
                break
        else:
            stack.pop()
            on_path.discard(path.pop())
    return None


def find_orphans(graph: DependencyGraph) -> Tuple[str, ...]:
    """Files nothing imports and that export nothing themselves."""
    targets = {edge.target for edge in graph.edges}
    return tuple(source.id for source in graph.files if source.id not in targets and not source.exports)


@dataclass
class _Frame:
    node: str
    successors: Iterator[str]
    deepest: int = 0
    touched_path: bool = False


@dataclass
class _DepthBudget:
    """Counts node visits across one depth computation."""

    limit: Optional[int]
    steps: int = 0
    exhausted: bool = False

    def spend(self) -> None:
        self.steps += 1
        if self.limit is not None and not self.exhausted and self.steps > self.limit:
            self.exhausted = True
            _logger.warning(
                "Depth search exceeded %d steps; remaining depths are approximate lower bounds",
                self.limit,
            )


def compute_depths(graph: DependencyGraph, max_steps: Optional[int] = DEFAULT_DEPTH_BUDGET) -> Dict[str, int]:
    """Longest acyclic import chain starting at each file; a leaf has depth 1.

    Exact longest simple paths are exponential inside densely connected
    cycles. After ``max_steps`` node visits every finished node is memoised
    even when its value depended on the current path, so the walk stays
    linear and later depths may be lower bounds. ``None`` disables the limit.
    """
    adjacency = graph.adjacency()
    memo: Dict[str, int] = {}
    budget = _DepthBudget(max_steps)
    return {file_id: _depth(file_id, adjacency, memo, budget) for file_id in graph.file_ids()}


def _depth(root: str, adjacency: Adjacency, memo: Dict[str, int], budget: _DepthBudget) -> int:
    if root in memo:
        return memo[root]

    on_path = {root}
    frames = [_Frame(root, iter(adjacency.get(root, ())))]
    budget.spend()
    depth = 1

    while frames:
        frame = frames[-1]
        descended = False
        for successor in frame.successors:
            if successor in on_path:
                frame.touched_path = True
                continue
            if successor in memo:
                frame.deepest = max(frame.deepest, memo[successor])
                continue
            on_path.add(successor)
            frames.append(_Frame(successor, iter(adjacency.get(successor, ()))))
            budget.spend()
            descended = True
            break
        if descended:
            continue

        frames.pop()
        on_path.discard(frame.node)
        depth = 1 + frame.deepest
        # A value computed while part of the path was excluded depends on that path.
        if not frame.touched_path or budget.exhausted:
            memo[frame.node] = depth
        if frames:
            parent = frames[-1]
            parent.deepest = max(parent.deepest, depth)
            parent.touched_path = parent.touched_path or frame.touched_path

    return depth


def most_imported(graph: DependencyGraph, top_n: int = DEFAULT_TOP_N) -> Tuple[Tuple[str, int], ...]:
    return _rank(graph, Counter(edge.target for edge in graph.edges), top_n)


def most_dependent(graph: DependencyGraph, top_n: int = DEFAULT_TOP_N) -> Tuple[Tuple[str, int], ...]:
    return _rank(graph, Counter(edge.source for edge in graph.edges), top_n)


def _rank(graph: DependencyGraph, counts: Counter, top_n: int) -> Tuple[Tuple[str, int], ...]:
    paths = {source.id: source.relative_path for source in graph.files}
    ranked = sorted(
        ((file_id, count) for file_id, count in counts.items() if count > 0 and file_id in paths),
        key=lambda item: (-item[1], paths[item[0]]),
    )
    return tuple(ranked[: max(top_n, 0)])


def analyze(
    graph: DependencyGraph,
    top_n: int = DEFAULT_TOP_N,
    depth_budget: Optional[int] = DEFAULT_DEPTH_BUDGET,
) -> DependencyAnalysis:
    cycles = find_cycles(graph)
    orphans = find_orphans(graph)
    if cycles:
        _logger.info("Detected %d circular dependencies", len(cycles))
    _logger.debug("Found %d orphaned files", len(orphans))
    return DependencyAnalysis(
        cycles=cycles,
        orphaned_files=orphans,
        depths=compute_depths(graph, depth_budget),
        most_imported=most_imported(graph, top_n),
        most_dependent=most_dependent(graph, top_n),
    )


__all__ = [
    "DEFAULT_DEPTH_BUDGET",
    "DEFAULT_TOP_N",
    "analyze",
    "compute_depths",
    "cycle_severity",
    "find_cycles",
    "find_orphans",
    "most_dependent",
    "most_imported",
]

"""Dependency graph construction and analysis."""

from .analysis import analyze, compute_depths, find_cycles, find_orphans, most_dependent, most_imported
from .builder import DependencyGraphBuilder

__all__ = [
    "DependencyGraphBuilder",
    "analyze",
    "compute_depths",
    "find_cycles",
    "find_orphans",
    "most_dependent",
    "most_imported",
]

"""Helper utilities for constructing temporary Angular projects in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Mapping

from ngscope.models import ProjectModel
from ngscope.project import ProjectModelBuilder


class RepoBuilder:
    """Utility for writing files into a throwaway project and rebuilding its model."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "repo"
        self.root.mkdir()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the project."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def build(self, *, workers: int = 2) -> ProjectModel:
        """Return a fresh project model of the current contents."""
        return ProjectModelBuilder(workers=workers).build(self.root)

    def path(self) -> Path:
        """Return the project root path."""
        return self.root


__all__ = ["RepoBuilder"]

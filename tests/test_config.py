"""Tests for .ngscope.yml loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from ngscope.config import (
    CONFIG_FILENAME,
    ConfigError,
    available_profiles,
    load_config,
    profile_rules,
)


def _write_config(root: Path, content: str) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    path = root / CONFIG_FILENAME
    path.write_text(content, encoding="utf-8")
    return path


def test_defaults_when_file_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert config.root == tmp_path.resolve()
    assert config.profile == "recommended"
    assert config.exclude_paths == ["*.spec.ts", "*.test.ts"]
    assert config.workers is None
    assert config.graph.top_n == 10
    assert config.output.formats == ["json"]
    assert config.rule("circular-dependency").severity == "error"
    assert config.rule("unlisted-rule").enabled is True


def test_file_values_and_rule_overrides(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
profile: strict
exclude_paths:
  - "e2e/"
  - "*.stories.ts"
include_hidden: true
workers: 3
graph:
  top_n: 4
rules:
  component-complexity:
    severity: warning
    options:
      max_complexity: 20
  orphaned-file: false
output:
  formats: [table, dot]
  path: reports/ngscope.txt
""",
    )

    config = load_config(tmp_path / CONFIG_FILENAME)

    assert config.profile == "strict"
    assert config.exclude_paths == ["*.spec.ts", "*.test.ts", "e2e/", "*.stories.ts"]
    assert config.include_hidden is True
    assert config.workers == 3
    assert config.graph.top_n == 4
    complexity = config.rule("component-complexity")
    assert complexity.severity == "warning"
    assert complexity.options == {"max_complexity": 20}
    assert config.rule("orphaned-file").enabled is False
    assert config.output.formats == ["table", "dot"]
    assert config.output.path == tmp_path.resolve() / "reports/ngscope.txt"


def test_profile_argument_overrides_file(tmp_path: Path) -> None:
    _write_config(tmp_path, "profile: strict\n")

    config = load_config(tmp_path, profile="relaxed")

    assert config.profile == "relaxed"
    assert config.rule("change-detection-strategy").enabled is False


@pytest.mark.parametrize(
    "content",
    [
        "- just\n- a list\n",
        "rules: {a: [unclosed\n",
        "profile: legendary\n",
        "rules:\n  component-complexity:\n    severity: fatal\n",
        "workers: 0\n",
        "graph:\n  depth_budget: 0\n",
    ],
)
def test_invalid_configuration_raises(tmp_path: Path, content: str) -> None:
    _write_config(tmp_path, content)

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_empty_file_uses_defaults(tmp_path: Path) -> None:
    _write_config(tmp_path, "\n")

    assert load_config(tmp_path).profile == "recommended"


def test_profiles_are_independent_copies() -> None:
    first = profile_rules("strict")
    first["component-complexity"].options["max_complexity"] = 99

    assert profile_rules("strict")["component-complexity"].options["max_complexity"] == 8
    assert available_profiles() == ["recommended", "relaxed", "strict"]


def test_graph_depth_budget_is_configurable(tmp_path: Path) -> None:
    _write_config(tmp_path, "graph:\n  depth_budget: 500\n")

    config = load_config(tmp_path)

    assert config.graph.depth_budget == 500
    assert config.graph.top_n == 10

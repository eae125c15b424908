"""Configuration loading for ngscope (.ngscope.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from .graph.analysis import DEFAULT_DEPTH_BUDGET

CONFIG_FILENAME = ".ngscope.yml"
DEFAULT_PROFILE = "recommended"
SEVERITIES = ("error", "warning", "info")
DEFAULT_EXCLUDES = ("*.spec.ts", "*.test.ts")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class RuleSettings:
    """Per-rule enablement, severity and threshold options."""

    enabled: bool = True
    severity: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)

    def merged(self, override: "RuleSettings") -> "RuleSettings":
        options = dict(self.options)
        options.update(override.options)
        return RuleSettings(
            enabled=override.enabled,
            severity=override.severity or self.severity,
            options=options,
        )


@dataclass
class GraphConfig:
    top_n: int = 10
    depth_budget: Optional[int] = DEFAULT_DEPTH_BUDGET


@dataclass
class OutputConfig:
    formats: List[str] = field(default_factory=lambda: ["json"])
    path: Optional[Path] = None


@dataclass
class NgScopeConfig:
    """Represents the settings defined in .ngscope.yml merged over a profile."""

    root: Path
    profile: str = DEFAULT_PROFILE
    rules: Dict[str, RuleSettings] = field(default_factory=dict)
    exclude_paths: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDES))
    include_hidden: bool = False
    workers: Optional[int] = None
    graph: GraphConfig = field(default_factory=GraphConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def rule(self, name: str) -> RuleSettings:
        """Return effective settings for a rule, defaulting to enabled."""
        return self.rules.get(name, RuleSettings())


def _strict_rules() -> Dict[str, RuleSettings]:
    return {
        "component-complexity": RuleSettings(severity="error", options={"max_complexity": 8}),
        "component-complexity-critical": RuleSettings(severity="error", options={"max_complexity": 8}),
        "change-detection-strategy": RuleSettings(severity="warning"),
        "too-many-inputs": RuleSettings(severity="error", options={"max_inputs": 6}),
        "too-many-outputs": RuleSettings(severity="error", options={"max_outputs": 4}),
        "too-many-dependencies": RuleSettings(severity="error", options={"max_dependencies": 5}),
        "circular-dependency": RuleSettings(severity="error"),
        "deep-dependency-chain": RuleSettings(severity="error", options={"max_depth": 4}),
        "orphaned-file": RuleSettings(severity="warning"),
        "unused-dependency": RuleSettings(severity="warning"),
        "missing-cleanup-pattern": RuleSettings(severity="error"),
        "too-many-stylesheets": RuleSettings(severity="warning", options={"max_stylesheets": 2}),
        "large-inline-template": RuleSettings(severity="warning", options={"max_length": 1000}),
        "high-default-change-detection": RuleSettings(severity="error", options={"threshold_percentage": 50}),
        "complex-component-default-cd": RuleSettings(severity="error", options={"max_complexity": 6}),
        "consider-lazy-loading": RuleSettings(severity="warning", options={"component_threshold": 8}),
        "potential-memory-leak": RuleSettings(severity="error"),
        "excessive-bindings": RuleSettings(severity="error", options={"max_bindings": 10}),
        "consider-state-management": RuleSettings(severity="warning", options={"state_service_threshold": 2}),
        "missing-unsubscribe-pattern": RuleSettings(severity="error"),
    }


def _recommended_rules() -> Dict[str, RuleSettings]:
    return {
        "component-complexity": RuleSettings(severity="warning", options={"max_complexity": 10}),
        "component-complexity-critical": RuleSettings(severity="error", options={"max_complexity": 10}),
        "change-detection-strategy": RuleSettings(severity="info"),
        "too-many-inputs": RuleSettings(severity="warning", options={"max_inputs": 8}),
        "circular-dependency": RuleSettings(severity="error"),
        "unused-dependency": RuleSettings(severity="info"),
        "high-default-change-detection": RuleSettings(severity="warning", options={"threshold_percentage": 70}),
        "potential-memory-leak": RuleSettings(severity="warning"),
        "missing-unsubscribe-pattern": RuleSettings(severity="warning"),
    }


def _relaxed_rules() -> Dict[str, RuleSettings]:
    return {
        "component-complexity": RuleSettings(severity="info", options={"max_complexity": 15}),
        "change-detection-strategy": RuleSettings(enabled=False, severity="info"),
        "circular-dependency": RuleSettings(severity="warning"),
        "deep-dependency-chain": RuleSettings(severity="info", options={"max_depth": 8}),
        "orphaned-file": RuleSettings(enabled=False),
        "component-complexity-critical": RuleSettings(severity="warning", options={"max_complexity": 15}),
        "unused-dependency": RuleSettings(enabled=False),
        "missing-cleanup-pattern": RuleSettings(severity="info"),
        "high-default-change-detection": RuleSettings(severity="info", options={"threshold_percentage": 90}),
        "complex-component-default-cd": RuleSettings(severity="info", options={"max_complexity": 12}),
        "potential-memory-leak": RuleSettings(severity="info"),
        "excessive-bindings": RuleSettings(severity="info", options={"max_bindings": 20}),
        "unclear-state-service-naming": RuleSettings(enabled=False),
        "missing-unsubscribe-pattern": RuleSettings(severity="info"),
        "state-change-detection-mismatch": RuleSettings(enabled=False),
    }


_PROFILES = {
    "strict": _strict_rules,
    "recommended": _recommended_rules,
    "relaxed": _relaxed_rules,
}


def available_profiles() -> List[str]:
    return sorted(_PROFILES)


def profile_rules(name: str) -> Dict[str, RuleSettings]:
    """Return a fresh copy of the rule settings bundled with a profile."""
    try:
        factory = _PROFILES[name]
    except KeyError:
        known = ", ".join(available_profiles())
        raise ConfigError(f"Unknown profile '{name}' (expected one of: {known})") from None
    return factory()


def load_config(config_path: Path, *, profile: str | None = None) -> NgScopeConfig:
    """Load configuration from disk; ``profile`` overrides the file's choice."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    data: Dict[str, Any] = {}
    if config_file.exists():
        data = _read_config(config_file)

    profile_name = profile or _as_str(data.get("profile")) or DEFAULT_PROFILE
    rules = profile_rules(profile_name)
    for name, override in _parse_rule_overrides(data.get("rules")).items():
        base = rules.get(name)
        rules[name] = base.merged(override) if base else override

    config = NgScopeConfig(root=root, profile=profile_name, rules=rules)

    if "exclude_paths" in data:
        config.exclude_paths = list(DEFAULT_EXCLUDES) + _as_str_list(data.get("exclude_paths"))

    include_hidden = _as_bool(data.get("include_hidden"))
    if include_hidden is not None:
        config.include_hidden = include_hidden

    workers = _as_int(data.get("workers"))
    if workers is not None:
        if workers < 1:
            raise ConfigError("workers must be a positive integer")
        config.workers = workers

    graph_data = _as_dict(data.get("graph"))
    top_n = _as_int(graph_data.get("top_n"))
    if top_n is not None:
        config.graph = replace(config.graph, top_n=max(top_n, 0))
    depth_budget = _as_int(graph_data.get("depth_budget"))
    if depth_budget is not None:
        if depth_budget < 1:
            raise ConfigError("graph.depth_budget must be a positive integer")
        config.graph = replace(config.graph, depth_budget=depth_budget)

    output_data = _as_dict(data.get("output"))
    if output_data:
        formats = _as_str_list(output_data.get("formats")) or list(config.output.formats)
        path_str = _as_str(output_data.get("path"))
        config.output = OutputConfig(
            formats=formats,
            path=root / path_str if path_str else None,
        )

    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")
    return loaded


def _parse_rule_overrides(value: Any) -> Dict[str, RuleSettings]:
    overrides: Dict[str, RuleSettings] = {}
    for name, raw in _as_dict(value).items():
        if isinstance(raw, bool):
            overrides[str(name)] = RuleSettings(enabled=raw)
            continue
        entry = _as_dict(raw)
        severity = _as_str(entry.get("severity"))
        if severity is not None:
            severity = severity.lower()
            if severity not in SEVERITIES:
                raise ConfigError(f"Rule '{name}' has unknown severity '{severity}'")
        enabled = _as_bool(entry.get("enabled"))
        overrides[str(name)] = RuleSettings(
            enabled=True if enabled is None else enabled,
            severity=severity,
            options=dict(_as_dict(entry.get("options"))),
        )
    return overrides


def _as_dict(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "GraphConfig",
    "NgScopeConfig",
    "OutputConfig",
    "RuleSettings",
    "available_profiles",
    "load_config",
    "profile_rules",
]

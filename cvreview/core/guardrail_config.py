from __future__ import annotations

import os
from importlib.resources import files
from importlib.resources.abc import Traversable
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

_GUARDRAIL_CONFIG_CACHE: Mapping[str, Any] | None = None


def guardrail_config_path() -> Path | Traversable:
    """GUARDRAIL_CONFIG_PATH when set, otherwise the rules shipped inside the package."""
    override = (os.getenv("GUARDRAIL_CONFIG_PATH") or "").strip()
    if override:
        return Path(override)
    return files("cvreview") / "config" / "guardrails.yaml"


def _freeze(value: Any) -> Any:
    if isinstance(value, dict):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(item) for item in value)
    return value


def get_guardrail_config() -> Mapping[str, Any]:
    """Load guardrail rules from cvreview/config/guardrails.yaml and cache them read-only."""
    global _GUARDRAIL_CONFIG_CACHE

    if _GUARDRAIL_CONFIG_CACHE is not None:
        return _GUARDRAIL_CONFIG_CACHE

    config_path = guardrail_config_path()
    if not config_path.is_file():
        raise RuntimeError(
            f"Guardrail config not found at '{config_path}'. "
            "Expected file: cvreview/config/guardrails.yaml"
        )

    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuntimeError(
            f"Failed to read guardrail config '{config_path}': {exc}"
        ) from exc

    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise RuntimeError(
            f"Invalid YAML in guardrail config '{config_path}': {exc}"
        ) from exc

    if not isinstance(parsed, dict):
        raise RuntimeError(
            f"Invalid guardrail config '{config_path}': expected a top-level mapping."
        )

    _GUARDRAIL_CONFIG_CACHE = _freeze(parsed)
    return _GUARDRAIL_CONFIG_CACHE


def get_guardrail_value(path: str, default: Any = None) -> Any:
    """Get nested config value using dot path notation, e.g. 'colors.green_min'."""
    if not path:
        return default

    current: Any = get_guardrail_config()
    for key in path.split("."):
        if not isinstance(current, Mapping):
            return default
        if key not in current:
            return default
        current = current[key]
    return current

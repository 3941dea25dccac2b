from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import ValidationError

from .errors import ConfigurationError
from .models import Settings

PROJECT_ROOT = Path(__file__).resolve().parents[1]

# Flat option name -> (section, field) in the nested settings document.
OPTION_PATHS = {
    "window_size": ("window", "size"),
    "window_freq": ("window", "freq"),
    "top_k": ("window", "top_k"),
    "retweet": ("filter", "retweet"),
    "contains": ("filter", "contains"),
    "not_contains": ("filter", "not_contains"),
    "start": ("filter", "start"),
    "stop": ("filter", "stop"),
    "filter_entities": ("filter", "filter_entities"),
}


def load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            payload = yaml.safe_load(fh) or {}
    except OSError as exc:
        raise ConfigurationError(f"Cannot read settings file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError(f"Settings file {path} must contain a mapping")
    return payload


def merge_options(config: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """Apply flat option overrides (``None`` means "not given") on top of a settings document."""

    merged: Dict[str, Any] = {key: dict(value) if isinstance(value, dict) else value for key, value in config.items()}
    for name, value in overrides.items():
        if value is None:
            continue
        if name in OPTION_PATHS:
            section, field = OPTION_PATHS[name]
            if not isinstance(merged.get(section), dict):
                merged[section] = {}
            merged[section][field] = value
        else:
            merged[name] = value
    return merged


def build_settings(config: Mapping[str, Any]) -> Settings:
    try:
        return Settings(**config)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {problems}") from exc


def load_settings(
    settings_path: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> Settings:
    """Load the YAML settings file (if any) and apply CLI overrides on top."""

    config: Dict[str, Any] = {}
    if settings_path is not None:
        if not settings_path.is_absolute() and not settings_path.exists():
            settings_path = (PROJECT_ROOT / settings_path).resolve()
        config = load_yaml(settings_path)
    return build_settings(merge_options(config, overrides or {}))

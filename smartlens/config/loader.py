"""YAML configuration loader for pipeline thresholds.

Configuration is layered (later layers override earlier):

    1. :class:`PipelineConfig` defaults  -- the production values
    2. ``config/config.yaml``            -- ``pipeline:`` section, optional

Secrets and deployment values never live in YAML; they come from
:class:`~smartlens.config.settings.Settings` (environment / ``.env``).
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from smartlens.config.settings import PipelineConfig
from smartlens.utils.errors import ConfigurationError


def load_config(path: str = "config/config.yaml") -> dict[str, Any]:
    """Load the YAML config file, returning ``{}`` when it does not exist.

    Raises:
        ConfigurationError: If the file exists but is not a YAML mapping.
    """
    config_path = Path(path)
    if not config_path.exists():
        return {}

    with open(config_path, encoding="utf-8") as f:
        try:
            loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping at the top level")
    return loaded


def load_pipeline_config(path: str = "config/config.yaml") -> PipelineConfig:
    """Build a :class:`PipelineConfig` from the ``pipeline:`` section of *path*.

    Raises:
        ConfigurationError: If the section holds unknown keys or values out
            of range.
    """
    section = load_config(path).get("pipeline") or {}
    if not isinstance(section, dict):
        raise ConfigurationError("'pipeline' section must be a mapping")
    try:
        return PipelineConfig(**section)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid pipeline config in {path}: {exc}") from exc

"""Configuration: environment settings and pipeline thresholds."""

from smartlens.config.loader import load_config, load_pipeline_config
from smartlens.config.settings import PipelineConfig, Settings

__all__ = ["PipelineConfig", "Settings", "load_config", "load_pipeline_config"]

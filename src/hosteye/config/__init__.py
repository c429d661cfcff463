"""Configuration for hosteye: defaults, YAML loading and validation."""

from hosteye.config.defaults import DEFAULT_CONFIG
from hosteye.config.errors import ConfigError, ConfigSyntaxError, ConfigValidationError
from hosteye.config.loader import get_config_path, load_config
from hosteye.config.models import (
    CollectorConfig,
    Config,
    ConsoleConfig,
    InfluxConfig,
    LoggingConfig,
    PipelineConfig,
    SentryConfig,
)

__all__ = [
    "DEFAULT_CONFIG",
    "CollectorConfig",
    "Config",
    "ConfigError",
    "ConfigSyntaxError",
    "ConfigValidationError",
    "ConsoleConfig",
    "InfluxConfig",
    "LoggingConfig",
    "PipelineConfig",
    "SentryConfig",
    "get_config_path",
    "load_config",
]

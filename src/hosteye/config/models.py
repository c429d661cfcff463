"""Pydantic models for the hosteye configuration file."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Precision = Literal["s", "ms", "u", "ns"]
SinkKind = Literal["influx", "console"]
WriteErrorPolicy = Literal["ignore", "log", "raise"]


class Section(BaseModel):
    """Base for config sections; unknown keys are errors."""

    model_config = ConfigDict(extra="forbid")


class InfluxConfig(Section):
    """InfluxDB destination settings."""

    url: str = "http://localhost:8086"
    database: str = Field(default="eye", min_length=1)
    username: str = "root"
    password: str = "root"
    precision: Precision = "s"
    timeout: float = Field(default=5.0, gt=0, le=300)


class CollectorConfig(Section):
    """Per-collector settings. Unset values keep the collector's defaults."""

    enabled: bool = True
    interval: float | None = Field(default=None, gt=0, le=86400)
    timeout: float | None = Field(default=None, gt=0, le=3600)

    def as_plugin_config(self) -> dict[str, Any]:
        """Settings in the form DataCollector.initialize() accepts."""
        return self.model_dump(exclude_none=True)


class PipelineConfig(Section):
    stream_capacity: int = Field(default=1, ge=1, le=10000)
    shutdown_timeout: float = Field(default=5.0, gt=0, le=600)


class ConsoleConfig(Section):
    format: Literal["line", "json"] = "line"


class LoggingConfig(Section):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    file: str | None = None

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class SentryConfig(Section):
    """Error reporting; off unless a DSN is set."""

    dsn: str | None = None
    environment: str = "production"

    @field_validator("dsn", mode="before")
    @classmethod
    def blank_dsn_disables(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class Config(Section):
    """Validated hosteye configuration.

    Built by ``load_config()`` from the defaults, the config file and CLI
    overrides.
    """

    influx: InfluxConfig = Field(default_factory=InfluxConfig)
    sink: SinkKind = "influx"
    on_write_error: WriteErrorPolicy = "log"
    collectors: dict[str, CollectorConfig] = Field(default_factory=dict)
    tags: dict[str, str] = Field(default_factory=dict)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    console: ConsoleConfig = Field(default_factory=ConsoleConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    sentry: SentryConfig = Field(default_factory=SentryConfig)

    @field_validator("collectors", mode="before")
    @classmethod
    def allow_bare_intervals(cls, v: Any) -> Any:
        """Accept ``cpu: 10`` as shorthand for ``cpu: {interval: 10}``."""
        if not isinstance(v, dict):
            return v
        expanded = {}
        for name, conf in v.items():
            if isinstance(conf, int | float) and not isinstance(conf, bool):
                conf = {"interval": conf}
            expanded[name] = conf
        return expanded

    @field_validator("tags", mode="before")
    @classmethod
    def stringify_tags(cls, v: Any) -> Any:
        """Tag values may be written as numbers or booleans in YAML."""
        if isinstance(v, dict):
            return {str(k): "" if val is None else str(val) for k, val in v.items()}
        return v

    def get_collector_config(self, name: str) -> CollectorConfig:
        return self.collectors.get(name) or CollectorConfig()

    def enabled_collectors(self) -> list[str]:
        """Names of enabled collectors, in config order."""
        return [name for name, conf in self.collectors.items() if conf.enabled]

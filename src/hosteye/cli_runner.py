"""Runner for the hosteye commands.

This module provides the implementation behind the CLI:
- Logging setup (rich console handler, optional log file)
- Building collectors from the registry and the config
- Building the write destination (InfluxDB or console)
- Running the pipeline until SIGINT/SIGTERM
- Single snapshot collection (``hosteye once``)

The runner coordinates between the collector registry, the pipeline,
and the sinks and formatters.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from hosteye.collectors.base import DataCollector
from hosteye.config import Config, LoggingConfig
from hosteye.formatters import get_formatter
from hosteye.models.base import DataPoint, Tags
from hosteye.pipeline import Pipeline
from hosteye.plugins import CollectorError, CollectorRegistry
from hosteye.plugins.host import get_host_tags
from hosteye.sentry import capture_fatal_error
from hosteye.sinks import ConsoleSink, InfluxSink, PointSink, SinkConstructionError, SinkError

console = Console(stderr=True)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(name)s: %(message)s"
FILE_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(config: LoggingConfig, debug: bool = False) -> None:
    """Configure the root logger.

    Installs a RichHandler on stderr and, if ``config.file`` is set, a plain
    FileHandler. Calling it again replaces the handlers it installed before.

    Args:
        config: Logging section of the configuration
        debug: Force DEBUG level regardless of the configured level
    """
    level = logging.DEBUG if debug else getattr(logging, config.level)

    handlers: list[logging.Handler] = [
        RichHandler(console=console, show_path=False, rich_tracebacks=True)
    ]
    handlers[0].setFormatter(logging.Formatter(LOG_FORMAT))
    if config.file:
        file_handler = logging.FileHandler(config.file)
        file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    # Keep HTTP connection chatter out of debug output
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_registry() -> CollectorRegistry:
    """Create a registry holding the built-in and entry-point collectors."""
    registry = CollectorRegistry()
    registry.discover()
    for name, error in registry.failed_plugins.items():
        logger.warning("Skipping collector plugin '%s': %s", name, error)
    return registry


def build_collectors(
    config: Config,
    collector_names: list[str] | None = None,
    registry: CollectorRegistry | None = None,
) -> list[DataCollector]:
    """Instantiate the collectors to schedule.

    Without ``collector_names`` every collector enabled in the config is
    used. Names given explicitly are used even if the config disables them.

    Args:
        config: Application configuration
        collector_names: Explicit selection from the command line
        registry: Registry to create collectors from

    Returns:
        Initialized collectors, in selection order

    Raises:
        CollectorNotFoundError: If a name is not registered
    """
    registry = registry if registry is not None else get_registry()
    explicit = collector_names is not None
    names = collector_names if explicit else config.enabled_collectors()

    collectors: list[DataCollector] = []
    for name in dict.fromkeys(names):
        plugin_config = config.get_collector_config(name).as_plugin_config()
        if explicit:
            plugin_config["enabled"] = True
        collectors.append(registry.create(name, plugin_config))
    return collectors


def build_sink(
    config: Config,
    stdout: bool = False,
    format_name: str | None = None,
) -> PointSink:
    """Create the write destination.

    Args:
        config: Application configuration
        stdout: Write to the console instead of the configured sink
        format_name: Console output format (defaults to ``console.format``)

    Returns:
        A ready sink

    Raises:
        SinkConstructionError: If the InfluxDB settings are unusable
        ValueError: If the console format is unknown
    """
    if stdout or config.sink == "console":
        formatter = get_formatter(
            format_name or config.console.format,
            precision=config.influx.precision,
        )
        return ConsoleSink(formatter)

    influx = config.influx
    return InfluxSink(
        influx.url,
        influx.database,
        influx.username,
        influx.password,
        precision=influx.precision,
        timeout=influx.timeout,
    )


async def run_pipeline(pipeline: Pipeline) -> None:
    """Run a pipeline, stopping it on SIGINT or SIGTERM."""
    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not available on every platform (e.g. Windows event loops)
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, pipeline.request_stop)
            installed.append(sig)
    try:
        await pipeline.run()
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


def run_agent(
    config: Config,
    collector_names: list[str] | None = None,
    stdout: bool = False,
    format_name: str | None = None,
) -> int:
    """Run the collection pipeline until interrupted.

    Args:
        config: Application configuration
        collector_names: Explicit collector selection, or None for the config's
        stdout: Print points instead of writing them to InfluxDB
        format_name: Console output format

    Returns:
        Exit code (0 for a clean stop, 1 for a fatal error)
    """
    try:
        collectors = build_collectors(config, collector_names)
        sink = build_sink(config, stdout=stdout, format_name=format_name)
    except (CollectorError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1
    except SinkConstructionError as e:
        logger.error("Cannot create sink: %s", e)
        return 1

    if not collectors:
        console.print("[yellow]Warning: No collectors enabled[/yellow]")
        return 1

    tags = get_host_tags(config.tags)
    pipeline = Pipeline(
        collectors,
        tags,
        sink,
        stream_capacity=config.pipeline.stream_capacity,
        shutdown_timeout=config.pipeline.shutdown_timeout,
        on_write_error=config.on_write_error,
    )
    logger.info(
        "Starting hosteye with %d collectors (%s) -> %s",
        len(collectors),
        ", ".join(c.name for c in collectors),
        type(sink).__name__,
    )

    try:
        asyncio.run(run_pipeline(pipeline))
    except (SinkError, OSError) as e:
        logger.error("Pipeline stopped: %s", e)
        capture_fatal_error(e, extra={"sink": type(sink).__name__})
        return 1
    except KeyboardInterrupt:
        pass
    finally:
        sink.close()
    return 0


async def collect_once(collectors: list[DataCollector], tags: Tags) -> list[DataPoint]:
    """Sample every collector once, concurrently.

    Failed collectors and invalid samples are reported on stderr and
    produce no point.

    Returns:
        One point per successful collector, in collector order
    """
    results = await asyncio.gather(*(c.safe_collect() for c in collectors))

    points: list[DataPoint] = []
    for collector, result in zip(collectors, results):
        if not result.success or result.fields is None:
            console.print(
                f"[yellow]Warning: Failed to collect {collector.name}: {result.error}[/yellow]"
            )
            continue
        try:
            point = DataPoint(
                name=collector.name,
                tags=tags,
                fields=result.fields,
                timestamp=result.timestamp,
            )
        except ValidationError as e:
            reason = e.errors()[0]["msg"]
            console.print(
                f"[yellow]Warning: Invalid sample from {collector.name}: {reason}[/yellow]"
            )
            continue
        points.append(point)
    return points


def run_once(
    config: Config,
    collector_names: list[str] | None = None,
    format_name: str = "line",
    pretty: bool = False,
) -> int:
    """Take a single snapshot and print it to stdout.

    Args:
        config: Application configuration
        collector_names: Explicit collector selection, or None for the config's
        format_name: Output format (line, json)
        pretty: Indent JSON output

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        formatter = get_formatter(
            format_name, precision=config.influx.precision, pretty_print=pretty
        )
        collectors = build_collectors(config, collector_names)
    except (CollectorError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    points = asyncio.run(collect_once(collectors, get_host_tags(config.tags)))
    if not points:
        console.print("[yellow]Warning: No data collected from any collector[/yellow]")
        return 1

    print(formatter.format_many(points))
    return 0

"""Command-line interface for hosteye.

This module provides:
- Typer-based CLI application
- Config file loading with CLI overrides
- The run, once and collectors commands

Usage:
    hosteye run                      # Collect and write to InfluxDB until stopped
    hosteye run --stdout             # Print points instead of writing them
    hosteye once --format json       # Sample every collector once
    hosteye collectors               # List available collectors

Examples:
    # Run only the CPU and memory collectors with a custom config
    hosteye run --config /etc/hosteye/custom.yaml --collectors cpu,mem

    # Inspect what would be written, as pretty JSON
    hosteye once --format json --pretty
"""

from enum import Enum
from pathlib import Path
from typing import Annotated, Any

from rich.console import Console
from rich.table import Table
import typer

from hosteye import __version__
from hosteye.config import Config, ConfigError, load_config

# Create the main Typer app
app = typer.Typer(
    name="hosteye",
    help="hosteye - host metrics collection agent for InfluxDB",
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
)

# Console for rich output
console = Console()


class OutputFormat(str, Enum):
    """Output format options for console output."""

    LINE = "line"
    JSON = "json"


def version_callback(value: bool) -> None:
    """Display version and exit."""
    if value:
        console.print(f"hosteye version {__version__}")
        raise typer.Exit()


def parse_collectors_option(collectors: list[str] | None) -> list[str] | None:
    """Parse the --collectors option into a list of collector names.

    Handles both repeated --collectors flags and comma-separated values.

    Args:
        collectors: List from typer, may contain comma-separated values

    Returns:
        Flattened list of collector names, or None if none specified
    """
    if not collectors:
        return None

    result: list[str] = []
    for item in collectors:
        for name in item.split(","):
            name = name.strip().lower()
            if name:
                result.append(name)

    return result if result else None


def load_cli_config(config: Path | None, overrides: dict[str, Any] | None = None) -> Config:
    """Load configuration, exiting with a readable message on failure."""
    try:
        config_path = str(config) if config else None
        return load_config(config_path=config_path, cli_overrides=overrides)
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1) from e


# Common options
ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to custom config file",
        envvar="HOSTEYE_CONFIG_PATH",
        exists=False,  # We handle existence check ourselves
    ),
]

CollectorsOption = Annotated[
    list[str] | None,
    typer.Option(
        "--collectors",
        "-C",
        help="Comma-separated list of collectors to run",
    ),
]

FormatOption = Annotated[
    OutputFormat | None,
    typer.Option(
        "--format",
        "-f",
        help="Console output format",
        case_sensitive=False,
    ),
]

DebugOption = Annotated[
    bool,
    typer.Option(
        "--debug",
        "-d",
        help="Enable debug logging",
    ),
]


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """hosteye - periodic host metrics into a time-series database.

    Samples CPU, memory, disk, load, process, user and uptime metrics at
    independent intervals and writes each sample as a point to InfluxDB.
    """


@app.command("run")
def run_command(
    config: ConfigOption = None,
    collectors: CollectorsOption = None,
    stdout: Annotated[
        bool,
        typer.Option(
            "--stdout",
            help="Print points to stdout instead of writing to InfluxDB",
        ),
    ] = False,
    output_format: FormatOption = None,
    debug: DebugOption = False,
) -> None:
    """Run the collection agent until interrupted (SIGINT/SIGTERM)."""
    from hosteye.cli_runner import run_agent, setup_logging
    from hosteye.sentry import init_sentry, set_agent_context

    overrides: dict[str, Any] = {}
    if debug:
        overrides["logging"] = {"level": "DEBUG"}
    cfg = load_cli_config(config, overrides)

    setup_logging(cfg.logging, debug=debug)
    collector_names = parse_collectors_option(collectors)
    sink_kind = "console" if stdout else cfg.sink
    if init_sentry(dsn=cfg.sentry.dsn, environment=cfg.sentry.environment, debug=debug):
        set_agent_context(
            collectors=collector_names or cfg.enabled_collectors(),
            sink=sink_kind,
            config_path=str(config) if config else None,
        )

    exit_code = run_agent(
        cfg,
        collector_names=collector_names,
        stdout=stdout,
        format_name=output_format.value if output_format else None,
    )
    if exit_code != 0:
        raise typer.Exit(exit_code)


@app.command("once")
def once_command(
    config: ConfigOption = None,
    collectors: CollectorsOption = None,
    output_format: FormatOption = None,
    pretty: Annotated[
        bool,
        typer.Option(
            "--pretty/--no-pretty",
            help="Pretty-print JSON output",
        ),
    ] = False,
    debug: DebugOption = False,
) -> None:
    """Sample every collector once and print the points."""
    from hosteye.cli_runner import run_once, setup_logging

    cfg = load_cli_config(config)
    setup_logging(cfg.logging, debug=debug)

    exit_code = run_once(
        cfg,
        collector_names=parse_collectors_option(collectors),
        format_name=output_format.value if output_format else cfg.console.format,
        pretty=pretty,
    )
    if exit_code != 0:
        raise typer.Exit(exit_code)


@app.command("collectors")
def collectors_command(
    config: ConfigOption = None,
) -> None:
    """List available collectors and their intervals."""
    from hosteye.cli_runner import get_registry

    cfg = load_cli_config(config)
    registry = get_registry()

    table = Table(title="Collectors")
    table.add_column("Name", style="cyan")
    table.add_column("Interval (s)", justify="right")
    table.add_column("Enabled")
    table.add_column("Source", style="dim")

    enabled_names = set(cfg.enabled_collectors())
    for name in registry.names():
        cls = registry.get(name)
        interval = cfg.get_collector_config(name).interval or cls.default_interval
        enabled = "[green]yes[/green]" if name in enabled_names else "[red]no[/red]"
        table.add_row(name, f"{interval:g}", enabled, cls.__module__)

    console.print(table)


def cli_main() -> None:
    """Entry point for the CLI application."""
    app()

"""Loading the hosteye configuration.

The effective configuration is ``DEFAULT_CONFIG``, overlaid with the config
file (if one is found) and then with CLI overrides. ``${VAR}`` and
``${VAR:-default}`` references are expanded after merging, so defaults can
pull from the environment too.
"""

import os
from pathlib import Path
import re
from typing import Any

from pydantic import ValidationError
import yaml

from hosteye.config.defaults import DEFAULT_CONFIG
from hosteye.config.errors import (
    ConfigValidationError,
    describe_value,
    from_validation_error,
    from_yaml_error,
)
from hosteye.config.models import Config

ENV_REFERENCE = re.compile(r"\$\{(?P<name>[A-Za-z_]\w*)(?::-(?P<default>[^}]*))?\}")

SEARCH_PATHS = (
    Path("~/.config/hosteye/config.yaml"),
    Path("/etc/hosteye/config.yaml"),
)


def _substitute(match: re.Match[str]) -> str:
    value = os.environ.get(match["name"])
    if value:
        return value
    if match["default"] is not None:
        return match["default"]
    # Unresolved references stay visible in the value
    return match[0]


def expand_env_vars(value: Any) -> Any:
    """Expand ``${VAR}`` / ``${VAR:-default}`` in every string of a config tree."""
    if isinstance(value, str):
        return ENV_REFERENCE.sub(_substitute, value)
    if isinstance(value, dict):
        return {key: expand_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    return value


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` overlaid with ``override``; nested dicts merge key by key."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            value = deep_merge(current, value)
        merged[key] = value
    return merged


def get_config_path(custom_path: str | None = None) -> Path | None:
    """Find the config file to load.

    An explicit path wins, then ``$HOSTEYE_CONFIG_PATH``, then
    ``~/.config/hosteye/config.yaml`` and ``/etc/hosteye/config.yaml``.

    Raises:
        FileNotFoundError: If an explicit path does not exist
    """
    if custom_path:
        path = Path(custom_path).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {custom_path}")
        return path

    env_path = os.environ.get("HOSTEYE_CONFIG_PATH")
    if env_path:
        path = Path(env_path).expanduser()
        return path if path.exists() else None

    for candidate in SEARCH_PATHS:
        if str(candidate).startswith("~"):
            candidate = Path.home() / candidate.relative_to("~")
        if candidate.exists():
            return candidate
    return None


def _read_file(path: Path) -> dict[str, Any]:
    content = path.read_text()
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise from_yaml_error(e, str(path), content) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigValidationError(
            f"Top level must be a mapping, got {describe_value(data)}",
            file_path=str(path),
        )
    return data


def load_config(
    config_path: str | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> Config:
    """Load and validate the configuration.

    Args:
        config_path: Explicit config file (``--config``)
        cli_overrides: Values from command-line flags, merged last

    Returns:
        Validated Config

    Raises:
        FileNotFoundError: If ``config_path`` does not exist
        ConfigSyntaxError: If the file is not valid YAML
        ConfigValidationError: If a value is invalid
    """
    path = get_config_path(config_path)
    data = DEFAULT_CONFIG
    if path is not None:
        data = deep_merge(data, _read_file(path))
    if cli_overrides:
        data = deep_merge(data, cli_overrides)
    data = expand_env_vars(data)

    try:
        return Config(**data)
    except ValidationError as e:
        raise from_validation_error(e, data, str(path) if path else None) from e

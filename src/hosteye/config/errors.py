"""Configuration errors with readable messages.

YAML and pydantic failures are translated into ``ConfigError`` subclasses
that point at the offending key (or file line) and, where possible, carry a
hint such as a did-you-mean for a misspelt key.
"""

from __future__ import annotations

from collections.abc import Callable
from difflib import get_close_matches
from typing import Any

from pydantic import ValidationError
import yaml


class ConfigError(Exception):
    """Base exception for configuration errors.

    Attributes:
        message: What is wrong
        file_path: Config file the error came from, if any
        line_number: 1-based line in that file, if known
        column: 1-based column, if known
        suggestion: A hint for fixing the problem
        context_lines: Source lines shown under the message
    """

    def __init__(
        self,
        message: str,
        *,
        file_path: str | None = None,
        line_number: int | None = None,
        column: int | None = None,
        suggestion: str | None = None,
        context_lines: list[str] | None = None,
    ) -> None:
        self.message = message
        self.file_path = file_path
        self.line_number = line_number
        self.column = column
        self.suggestion = suggestion
        self.context_lines = context_lines or []
        super().__init__(self.render())

    @property
    def location(self) -> str:
        """``file:line:column`` for the error, as far as it is known."""
        if not self.file_path:
            return "<config>"
        parts = [self.file_path]
        if self.line_number:
            parts.append(str(self.line_number))
            if self.column:
                parts.append(str(self.column))
        return ":".join(parts)

    def render(self) -> str:
        lines = [f"{self.location}: {self.message}"]
        for source in self.context_lines:
            lines.append(f"    {source}")
        if self.context_lines and self.column:
            lines.append(" " * (self.column + 3) + "^")
        if self.suggestion:
            lines.append(f"hint: {self.suggestion}")
        return "\n".join(lines)


class ConfigSyntaxError(ConfigError):
    """The config file is not valid YAML."""


class ConfigValidationError(ConfigError):
    """A config value has the wrong type or is out of range."""


# Keys accepted in each section, used for did-you-mean hints
SECTION_KEYS: dict[str, set[str]] = {
    "": {
        "influx",
        "sink",
        "on_write_error",
        "collectors",
        "tags",
        "pipeline",
        "console",
        "logging",
        "sentry",
    },
    "influx": {"url", "database", "username", "password", "precision", "timeout"},
    "collectors.*": {"enabled", "interval", "timeout"},
    "pipeline": {"stream_capacity", "shutdown_timeout"},
    "console": {"format"},
    "logging": {"level", "file"},
    "sentry": {"dsn", "environment"},
}

YAML_HINTS: list[tuple[str, str]] = [
    ("could not find expected ':'", "a key is missing its colon ('key: value')"),
    ("found character '\\t'", "indent with spaces, not tabs"),
    ("mapping values are not allowed", "a nested key is probably mis-indented"),
    ("found undefined alias", "define each anchor (&name) before using it (*name)"),
]


def did_you_mean(key: str, candidates: set[str]) -> str | None:
    """Return a hint naming the closest candidate, if one is close enough."""
    matches = get_close_matches(key, sorted(candidates), n=1, cutoff=0.6)
    return f"Did you mean '{matches[0]}'?" if matches else None


def describe_value(value: Any) -> str:
    """Short human-readable description of a YAML value."""
    if value is None:
        return "null"
    if isinstance(value, str):
        return f'string "{value}"'
    names = {bool: "boolean", int: "integer", float: "number", list: "list", dict: "object"}
    return names.get(type(value), type(value).__name__)


def _lookup(data: Any, loc: tuple[Any, ...]) -> Any:
    for key in loc:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _section_of(loc: tuple[Any, ...]) -> str:
    parent = [str(part) for part in loc[:-1]]
    if len(parent) == 2 and parent[0] == "collectors":
        return "collectors.*"
    return ".".join(parent)


# Each handler gets (dotted path, error dict, offending value) and returns
# (message, suggestion).
Describer = Callable[[str, dict[str, Any], Any], tuple[str, str | None]]


def _literal(path: str, err: dict[str, Any], value: Any) -> tuple[str, str | None]:
    expected = err.get("ctx", {}).get("expected", "")
    return f"Invalid value for '{path}': got {describe_value(value)}", f"Expected one of: {expected}"


def _range(path: str, err: dict[str, Any], value: Any) -> tuple[str, str | None]:
    ctx = err.get("ctx", {})
    bounds = {
        "greater_than": ("greater than", ctx.get("gt")),
        "greater_than_equal": ("at least", ctx.get("ge")),
        "less_than": ("less than", ctx.get("lt")),
        "less_than_equal": ("at most", ctx.get("le")),
    }
    words, limit = bounds[err["type"]]
    return f"Value for '{path}' is out of range: {value}", f"Value must be {words} {limit}"


def _number(path: str, err: dict[str, Any], value: Any) -> tuple[str, str | None]:
    return f"Invalid number for '{path}': got {describe_value(value)}", "Use a plain number"


def _string(path: str, err: dict[str, Any], value: Any) -> tuple[str, str | None]:
    return f"Expected text for '{path}': got {describe_value(value)}", "Quote the value"


def _boolean(path: str, err: dict[str, Any], value: Any) -> tuple[str, str | None]:
    return f"Expected boolean for '{path}': got {describe_value(value)}", "Use true or false"


def _unknown_key(path: str, err: dict[str, Any], value: Any) -> tuple[str, str | None]:
    loc = err.get("loc", ())
    key = str(loc[-1]) if loc else path
    hint = did_you_mean(key, SECTION_KEYS.get(_section_of(loc), set()))
    return f"Unknown configuration key '{path}'", hint or "Remove the key or check its spelling"


DESCRIBERS: dict[str, Describer] = {
    "literal_error": _literal,
    "greater_than": _range,
    "greater_than_equal": _range,
    "less_than": _range,
    "less_than_equal": _range,
    "int_parsing": _number,
    "float_parsing": _number,
    "int_from_float": _number,
    "string_type": _string,
    "bool_type": _boolean,
    "bool_parsing": _boolean,
    "extra_forbidden": _unknown_key,
}


def from_validation_error(
    error: ValidationError,
    data: dict[str, Any],
    file_path: str | None = None,
) -> ConfigValidationError:
    """Translate the first pydantic error into a ConfigValidationError.

    Args:
        error: The pydantic validation error
        data: The merged config data that failed validation
        file_path: Config file the data came from, if any
    """
    errors = error.errors()
    if not errors:
        return ConfigValidationError("Configuration is invalid", file_path=file_path)

    err = dict(errors[0])
    loc = tuple(err.get("loc", ()))
    path = ".".join(str(part) for part in loc)
    describer = DESCRIBERS.get(err.get("type", ""))
    if describer is None:
        message, suggestion = f"Invalid value for '{path}': {err.get('msg')}", None
    else:
        message, suggestion = describer(path, err, _lookup(data, loc))
    return ConfigValidationError(message, file_path=file_path, suggestion=suggestion)


def from_yaml_error(
    error: yaml.YAMLError,
    file_path: str | None = None,
    content: str | None = None,
) -> ConfigSyntaxError:
    """Translate a YAML parse error into a ConfigSyntaxError with its position."""
    mark = getattr(error, "problem_mark", None)
    line_number = column = None
    context: list[str] = []
    if mark is not None:
        line_number, column = mark.line + 1, mark.column + 1
        source = (content or "").splitlines()
        if mark.line < len(source):
            context = [source[mark.line]]

    text = str(error)
    suggestion = next((hint for needle, hint in YAML_HINTS if needle in text), None)
    problem = getattr(error, "problem", None)

    return ConfigSyntaxError(
        f"YAML syntax error: {problem}" if problem else "Invalid YAML syntax",
        file_path=file_path,
        line_number=line_number,
        column=column,
        suggestion=suggestion,
        context_lines=context,
    )

"""Configuration module for gitdiffy.

This module provides the immutable configuration value that is passed to the
planner, the applicator and the watch monitor, together with the loader that
builds it from a YAML file, environment variables and command-line overrides.
"""

import math
import os
import re
from dataclasses import dataclass, field, fields
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from gitdiffy.errors import ConfigError

__all__ = [
    "Config",
    "DEFAULT_API_URL",
    "DEFAULT_CONFIG_FILE",
    "load_config",
    "parse_duration",
]

DEFAULT_CONFIG_FILE = ".gitdiffy.yaml"
DEFAULT_API_URL = "http://localhost:8080/generate-message"

# Keys accepted in the YAML file, mapped to Config field names.
_FILE_KEYS: Dict[str, str] = {
    "license": "license",
    "branchPrefix": "branch_prefix",
    "branch_prefix": "branch_prefix",
    "prefix": "branch_prefix",
    "pushRemote": "push_remote",
    "push_remote": "push_remote",
    "maxWorkDuration": "max_work_duration",
    "max_work_duration": "max_work_duration",
    "apiUrl": "api_url",
    "api_url": "api_url",
    "requestTimeout": "request_timeout",
    "request_timeout": "request_timeout",
    "gitTimeout": "git_timeout",
    "git_timeout": "git_timeout",
    "pollInterval": "poll_interval",
    "poll_interval": "poll_interval",
}

_ENV_KEYS: Dict[str, str] = {
    "GITDIFFY_LICENSE": "license",
    "GITDIFFY_BRANCH_PREFIX": "branch_prefix",
    "GITDIFFY_PUSH_REMOTE": "push_remote",
    "GITDIFFY_MAX_WORK_DURATION": "max_work_duration",
    "GITDIFFY_API_URL": "api_url",
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: Union[str, int, float, timedelta]) -> timedelta:
    """Parse a duration such as ``"10m"``, ``"1h30m"`` or ``"90"``.

    Bare numbers are read as seconds.

    Args:
        value: Duration text, a number of seconds, or a timedelta.

    Returns:
        timedelta: The parsed duration.

    Raises:
        ConfigError: If the value cannot be parsed or is negative.
    """
    if isinstance(value, timedelta):
        seconds = value.total_seconds()
    elif isinstance(value, bool):
        raise ConfigError(f"invalid duration: {value!r}")
    elif isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        seconds = _parse_duration_text(value.strip())
    else:
        raise ConfigError(f"invalid duration: {value!r}")

    if not math.isfinite(seconds):
        raise ConfigError(f"invalid duration: {value!r}")
    if seconds < 0:
        raise ConfigError(f"duration must not be negative: {value!r}")
    try:
        return timedelta(seconds=seconds)
    except OverflowError as exc:
        raise ConfigError(f"duration out of range: {value!r}") from exc


def _parse_duration_text(text: str) -> float:
    if not text:
        raise ConfigError("invalid duration: empty value")
    try:
        return float(text)
    except ValueError:
        pass

    position = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            raise ConfigError(f"invalid duration: {text!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position == 0 or position != len(text):
        raise ConfigError(f"invalid duration: {text!r}")
    return total


@dataclass(frozen=True)
class Config:
    """Configuration for a gitdiffy process.

    Read once at startup and never mutated afterwards.

    Attributes:
        license: License key sent to the message generation service.
        branch_prefix: Prefix for branches created by watch mode.
        push_remote: Remote that watch mode pushes to.
        max_work_duration: Continuous work time that triggers an auto commit.
        api_url: Endpoint of the message generation service.
        request_timeout: Seconds to wait for the generation service.
        git_timeout: Seconds to wait for a single git command.
        poll_interval: Seconds between two change checks in watch mode.
    """

    license: str = ""
    branch_prefix: str = "gitdiffy"
    push_remote: str = "origin"
    max_work_duration: timedelta = field(default_factory=lambda: timedelta(minutes=10))
    api_url: str = DEFAULT_API_URL
    request_timeout: float = 30.0
    git_timeout: float = 30.0
    poll_interval: float = 1.0

    def __post_init__(self) -> None:
        errors = self._validate()
        if errors:
            raise ValueError(f"Invalid configuration: {'; '.join(errors)}")

    def _validate(self) -> list:
        errors = []
        if not isinstance(self.license, str):
            errors.append("license must be a string")
        if not isinstance(self.branch_prefix, str) or not self.branch_prefix.strip():
            errors.append("branch_prefix must be a non-empty string")
        if not isinstance(self.push_remote, str) or not self.push_remote.strip():
            errors.append("push_remote must be a non-empty string")
        if not isinstance(self.max_work_duration, timedelta) or self.max_work_duration < timedelta(0):
            errors.append("max_work_duration must be a non-negative timedelta")
        if not isinstance(self.api_url, str) or not self.api_url.startswith(("http://", "https://")):
            errors.append("api_url must be an http(s) URL")
        for name in ("request_timeout", "git_timeout", "poll_interval"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                errors.append(f"{name} must be a positive number")
        return errors

    def is_valid(self) -> bool:
        """Return True if every field passes validation."""
        return not self._validate()

    def require_license(self) -> None:
        """Raise ConfigError unless a license key is configured."""
        if not self.license.strip():
            raise ConfigError(
                "Please provide a license key using --license or .gitdiffy.yaml"
            )


def _read_config_file(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ConfigError(f"could not parse {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"could not read {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")

    values: Dict[str, Any] = {}
    for key, value in data.items():
        name = _FILE_KEYS.get(str(key))
        if name is None:
            continue
        values[name] = value
    return values


def _coerce(values: Dict[str, Any]) -> Dict[str, Any]:
    coerced = dict(values)
    if "max_work_duration" in coerced:
        coerced["max_work_duration"] = parse_duration(coerced["max_work_duration"])
    for name in ("request_timeout", "git_timeout", "poll_interval"):
        if name in coerced and isinstance(coerced[name], str):
            coerced[name] = parse_duration(coerced[name]).total_seconds()
    for name in ("license", "branch_prefix", "push_remote", "api_url"):
        if name in coerced and coerced[name] is not None:
            coerced[name] = str(coerced[name])
    return coerced


def load_config(
    config_file: Optional[Union[str, Path]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
    search_dir: Optional[Path] = None,
) -> Config:
    """Build a Config from defaults, a YAML file, the environment and overrides.

    Later sources win: defaults, then the config file, then ``GITDIFFY_*``
    environment variables, then explicit overrides (usually CLI flags).

    Args:
        config_file: Explicit config file. When omitted, ``.gitdiffy.yaml`` in
            ``search_dir`` (default: current directory) is used if present.
        overrides: Field values that take precedence over everything else.
            ``None`` values are ignored.
        environ: Environment mapping, defaults to ``os.environ``.
        search_dir: Directory searched for the default config file.

    Returns:
        Config: The merged configuration.

    Raises:
        ConfigError: If a source cannot be read or a value is invalid.
    """
    environ = os.environ if environ is None else environ
    values: Dict[str, Any] = {}

    if config_file is not None:
        path = Path(config_file)
        if not path.is_file():
            raise ConfigError(f"config file not found: {path}")
        values.update(_read_config_file(path))
    else:
        path = (search_dir or Path.cwd()) / DEFAULT_CONFIG_FILE
        if path.is_file():
            values.update(_read_config_file(path))

    for env_name, name in _ENV_KEYS.items():
        if environ.get(env_name):
            values[name] = environ[env_name]

    for name, value in (overrides or {}).items():
        if value is not None:
            values[name] = value

    known = {f.name for f in fields(Config)}
    unknown = set(values) - known
    if unknown:
        raise ConfigError(f"unknown configuration keys: {', '.join(sorted(unknown))}")

    try:
        return Config(**_coerce(values))
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc

"""qarun project configuration — discover / load / merge.

Merge order (later wins):
    1. Model defaults
    2. Config file values (YAML or JSON)
    3. Environment variables (QARUN_ prefix, __ nested delimiter)
    4. Explicit overrides dict
"""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any

import yaml

from qarun.core.exceptions import ConfigError
from qarun.core.models import Config

DEFAULT_CONFIG_FILENAMES = ("qarun.config.yaml", "qarun.json")

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

# camelCase keys whose snake_case form differs from the field name
_KEY_ALIASES = {"suites_list": "suites"}


def load_config(
    config_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Config:
    """Load Config from config file + env vars + overrides.

    Args:
        config_path: Explicit path to the config file. If None, searches cwd and parents.
        overrides: Overrides merged on top of everything else.

    Returns:
        Validated Config instance.

    Raises:
        ConfigError: If the file is missing, unparsable, or fails validation.
    """
    if config_path is None:
        config_path = find_config_file()
        if config_path is None:
            msg = (
                f"No config file found ({', '.join(DEFAULT_CONFIG_FILENAMES)}) "
                f"in {Path.cwd()} or its parents"
            )
            raise ConfigError(msg)
    elif not config_path.exists():
        msg = f"Config file not found: {config_path}"
        raise ConfigError(msg)

    file_data = normalize_keys(_load_file(config_path))
    env_data = _collect_env_vars()
    merged = _deep_merge(file_data, env_data)
    if overrides:
        merged = _deep_merge(merged, normalize_keys(overrides))

    try:
        return Config(**merged)
    except Exception as e:
        msg = f"Config validation failed ({config_path}): {e}"
        raise ConfigError(msg) from e


def find_config_file(start: Path | None = None) -> Path | None:
    """Search for a config file in start (default cwd), then parent directories."""
    current = start or Path.cwd()
    for directory in [current, *current.parents]:
        for name in DEFAULT_CONFIG_FILENAMES:
            candidate = directory / name
            if candidate.exists():
                return candidate
            candidate = directory / ".qarun" / name
            if candidate.exists():
                return candidate
    return None


def normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Convert camelCase keys (baseURL, digitalProduct) to field names, recursively."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        snake = _CAMEL_BOUNDARY.sub("_", key).lower()
        snake = _KEY_ALIASES.get(snake, snake)
        result[snake] = normalize_keys(value) if isinstance(value, dict) else value
    return result


def _load_file(path: Path) -> dict[str, Any]:
    """Load and parse a config file. JSON is read through the YAML parser."""
    try:
        with open(path, encoding="utf-8") as f:  # noqa: PTH123
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        msg = f"Failed to parse config: {path}: {e}"
        raise ConfigError(msg) from e
    except OSError as e:
        msg = f"Failed to read config: {path}: {e}"
        raise ConfigError(msg) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Config file must be a mapping, got {type(data).__name__}: {path}"
        raise ConfigError(msg)
    return data


def _collect_env_vars() -> dict[str, Any]:
    """Collect QARUN_ prefixed env vars into a nested dict."""
    prefix = "QARUN_"
    delimiter = "__"
    result: dict[str, Any] = {}

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        parts = key[len(prefix) :].lower().split(delimiter)
        current = result
        for part in parts[:-1]:
            if part not in current or not isinstance(current[part], dict):
                current[part] = {}
            current = current[part]
        current[parts[-1]] = _decode_env_value(value)

    return result


def _decode_env_value(value: str) -> Any:
    """JSON-decode list and object values (QARUN_SUITES='["login", "search"]')."""
    if value.lstrip().startswith(("[", "{")):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base. Override wins on conflicts."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result

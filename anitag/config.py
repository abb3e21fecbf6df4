#!/usr/bin/env python3
"""
Runtime configuration.

Configuration is merged section by section from, lowest priority first:
1. Built-in defaults
2. A JSON config file
3. Explicit overrides (usually command line flags)

The merged result is validated against CONFIG_SCHEMA before use.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from jsonschema import Draft7Validator

from .options import Options

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    "options": Options().to_dict(),
    "batch": {
        "batch_size": 100,
        "max_workers": 4,
        "parallel": False,
    },
    "report": {
        "sheet_name": "Parsed Filenames",
    },
}

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "options": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                **{name: {"type": "boolean"} for name, value in Options().to_dict().items() if isinstance(value, bool)},
                "year_min": {"type": "integer", "minimum": 0, "maximum": 9999},
                "year_max": {"type": "integer", "minimum": 0, "maximum": 9999},
            },
        },
        "batch": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "batch_size": {"type": "integer", "minimum": 1},
                "max_workers": {"type": "integer", "minimum": 1},
                "parallel": {"type": "boolean"},
            },
        },
        "report": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "sheet_name": {"type": "string", "minLength": 1, "maxLength": 31},
            },
        },
    },
}


class ConfigError(ValueError):
    """Raised when a config file cannot be read or fails validation."""


def read_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a JSON config file.

    Args:
        path: Path to the file

    Returns:
        Parsed config mapping

    Raises:
        ConfigError: If the file is missing, unreadable or not a JSON object
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"cannot read config {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must be a JSON object")
    return data


def merge_config(*sources: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Merge config mappings section-wise; later sources win."""
    merged = copy.deepcopy(DEFAULT_CONFIG)
    for source in sources:
        for section, values in (source or {}).items():
            if isinstance(values, dict) and isinstance(merged.get(section), dict):
                merged[section] = {**merged[section], **values}
            else:
                merged[section] = values
    return merged


def validate_config(config: Mapping[str, Any]) -> None:
    """Raise ConfigError listing every schema violation in ``config``."""
    validator = Draft7Validator(CONFIG_SCHEMA)
    errors = sorted(validator.iter_errors(config), key=lambda e: list(e.absolute_path))
    if errors:
        messages = []
        for error in errors:
            location = " > ".join(str(p) for p in error.absolute_path) or "root"
            messages.append(f"{location}: {error.message}")
        raise ConfigError("invalid config: " + "; ".join(messages))


def load_config(path: Optional[Union[str, Path]] = None, overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """
    Load configuration with precedence: defaults < file < overrides.

    Args:
        path: Optional JSON config file
        overrides: Optional section-keyed overrides

    Returns:
        Validated, merged config

    Raises:
        ConfigError: If the file is unreadable or the merged config is invalid
    """
    file_config = read_config_file(path) if path is not None else {}
    if path is not None:
        logger.info("Loaded config from %s", path)
    merged = merge_config(file_config, overrides)
    validate_config(merged)
    return merged


def options_from_config(config: Mapping[str, Any]) -> Options:
    """Build validated Options from the ``options`` section."""
    return Options.from_mapping(config.get("options") or {})

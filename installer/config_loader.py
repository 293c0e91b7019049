# installer/config_loader.py
# -*- coding: utf-8 -*-
"""
Configuration loader for the installer.

Handles loading settings from Pydantic model defaults, an optional YAML file,
environment variables, and command-line arguments, applying a specific
order of precedence:
1. Pydantic Model Defaults
2. Environment Variables (NEXTCLOUD_ prefix, via Pydantic's BaseSettings)
3. YAML Configuration File (only when --config is given)
4. Command-Line Arguments
"""

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from installer.cli_handler import UsageError
from installer.config_models import AppSettings

module_logger = logging.getLogger(__name__)


def _deep_update(
    source: Dict[str, Any], overrides: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Recursively updates a dictionary `source` with values from another dictionary
    `overrides`. Nested dictionaries are merged key by key; any other value
    replaces the one in `source`. None values in `overrides` are ignored.

    Parameters:
        source: Dict[str, Any]
            The dictionary to be updated. This dictionary gets modified in place.
        overrides: Dict[str, Any]
            The dictionary containing values to update or add to the `source`.

    Returns:
        Dict[str, Any]:
            The updated dictionary after applying all `overrides` to the input `source`.
    """
    for key, value in overrides.items():
        if (
            isinstance(value, dict)
            and key in source
            and isinstance(source[key], dict)
        ):
            source[key] = _deep_update(source[key], value)
        elif value is not None:
            source[key] = value
    return source


def _load_yaml_file(config_file_path: str) -> Dict[str, Any]:
    yaml_config_path = Path(config_file_path)
    if not yaml_config_path.is_file():
        raise UsageError(f"Configuration file not found: {config_file_path}")
    try:
        with open(yaml_config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise UsageError(
            f"Could not parse YAML config file '{config_file_path}': {e}"
        ) from e
    except OSError as e:
        raise UsageError(
            f"Could not read config file '{config_file_path}': {e}"
        ) from e

    if yaml_data is None:
        return {}
    if not isinstance(yaml_data, dict):
        raise UsageError(
            f"Config file '{config_file_path}' does not contain a YAML mapping"
        )
    return yaml_data


def cli_overrides(cli_args: argparse.Namespace) -> Dict[str, Any]:
    """Map parsed command line flags onto AppSettings field names."""
    mapped_cli_values: Dict[str, Any] = {}
    if cli_args.quiet:
        mapped_cli_values["verbose"] = False
    if cli_args.no_configure_mariadb:
        mapped_cli_values["skip_database_hardening"] = True
    for cli_key in ("version", "install_dir", "database_name", "database_user"):
        cli_value = getattr(cli_args, cli_key, None)
        if cli_value is not None:
            mapped_cli_values[cli_key] = cli_value
    return mapped_cli_values


def _first_validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", str(error))
    # Strip pydantic's "Value error, " prefix from custom validator messages.
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return f"Invalid {location}: {message}" if location else message


def load_app_settings(
    cli_args: Optional[argparse.Namespace] = None,
    current_logger: Optional[logging.Logger] = None,
) -> AppSettings:
    """
    Loads application settings with the following precedence:
    1. Pydantic Model Defaults.
    2. Environment Variables (loaded by Pydantic BaseSettings).
    3. Values from the YAML configuration file named by --config.
    4. Command-Line Arguments (highest precedence, overrides all else).

    Args:
        cli_args: Parsed command-line arguments (from cli_handler.parse_arguments).
        current_logger: Optional logger to use instead of the module logger.

    Returns:
        A frozen AppSettings instance with the fully resolved configuration.

    Raises:
        UsageError: If the YAML file is unusable or a value fails validation.
    """
    logger_to_use = current_logger if current_logger else module_logger

    try:
        # Model Defaults < Environment Variables
        current_values_dict = AppSettings().model_dump()
    except ValidationError as e:
        raise UsageError(_first_validation_message(e)) from e

    config_file_path = getattr(cli_args, "config", None) if cli_args else None
    if config_file_path:
        yaml_data = _load_yaml_file(config_file_path)
        current_values_dict = _deep_update(current_values_dict, yaml_data)
        logger_to_use.debug(f"Loaded configuration from {config_file_path}")

    if cli_args:
        current_values_dict = _deep_update(
            current_values_dict, cli_overrides(cli_args)
        )

    try:
        final_settings = AppSettings(**current_values_dict)
    except ValidationError as e:
        logger_to_use.debug(f"Configuration validation failed: {e}")
        raise UsageError(_first_validation_message(e)) from e

    logger_to_use.debug("Successfully loaded and validated application settings")
    return final_settings

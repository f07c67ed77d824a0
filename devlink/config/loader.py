"""Configuration loader for the DevLink notifier."""

from pathlib import Path
from typing import Optional, Tuple

import yaml
from pydantic import ValidationError

from devlink.logging import get_logger

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .models import AppConfig
from .validators import check_for_warnings, emit_warnings

logger = get_logger(__name__, component="config")

DEFAULT_CONFIG_LOCATIONS = (
    Path("config.yaml"),
    Path("config") / "config.yaml",
)


def load_config(config_path: Optional[Path] = None) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load and validate the YAML configuration and the environment.

    The config file is optional. Lookup order:
    1. config_path, if given (must exist)
    2. config.yaml in the current directory
    3. ./config/config.yaml
    4. Built-in defaults

    Environment variables are always required and validated eagerly.

    Args:
        config_path: Optional explicit path to a configuration file

    Returns:
        Tuple of (AppConfig, EnvironmentConfig)

    Raises:
        ConfigurationError: If the file or the environment is invalid
    """
    config_file = _find_config_file(config_path)

    if config_file is None:
        logger.info(
            "No configuration file found, using defaults",
            extra={"event": "config.defaults"},
        )
        app_config = AppConfig()
    else:
        app_config = parse_config_file(config_file)

    try:
        env_config = load_environment_config()
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load environment configuration: {e}",
            suggestions=[
                "Copy .env.example to .env and fill in your settings",
            ],
        )

    return app_config, env_config


def parse_config_file(config_file: Path) -> AppConfig:
    """
    Read and validate one YAML configuration file.

    Args:
        config_file: Path to the YAML file

    Returns:
        Validated AppConfig

    Raises:
        ConfigurationError: If the file is unreadable, not YAML, or fails validation
    """
    try:
        with open(config_file, "r") as f:
            config_dict = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(
            f"Configuration file not found: {config_file}",
            suggestions=["Copy config.example.yaml to config.yaml"],
        )
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse YAML configuration: {e}",
            suggestions=[
                "Check YAML syntax in your config file",
                "Ensure proper indentation (use spaces, not tabs)",
            ],
        )
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read configuration file: {e}",
            suggestions=[f"Ensure {config_file} is readable"],
        )

    # An empty file means "all defaults"
    if config_dict is None:
        config_dict = {}

    if not isinstance(config_dict, dict):
        raise ConfigurationError(
            "Configuration file must contain a mapping at the top level",
            suggestions=["Review config.example.yaml for the expected layout"],
        )

    warnings = check_for_warnings(config_dict)
    if warnings:
        emit_warnings(warnings)

    try:
        return AppConfig.model_validate(config_dict)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            field_path = " -> ".join(str(loc) for loc in error["loc"])
            error_type = error["type"]

            if error_type == "missing":
                errors.append(f"Missing required field: {field_path}")
            elif error_type in ("string_type", "int_type", "bool_type", "int_parsing", "bool_parsing"):
                expected_type = error_type.split("_")[0]
                errors.append(
                    f"Invalid type for '{field_path}': expected {expected_type}, got {error.get('input')!r}"
                )
            elif error_type == "extra_forbidden":
                errors.append(f"Unknown setting: {field_path}")
            else:
                errors.append(f"{field_path}: {error['msg']}")

        raise ConfigurationError(
            "Configuration validation failed",
            errors=errors,
            suggestions=[
                "Review config.example.yaml for correct format",
                "Durations look like '7d', '12h' or 'P3D'; cron uses five fields",
            ],
        )


def _find_config_file(config_path: Optional[Path] = None) -> Optional[Path]:
    """
    Resolve which configuration file to read, if any.

    Raises:
        ConfigurationError: If an explicitly requested file does not exist
    """
    if config_path:
        if not config_path.exists():
            raise ConfigurationError(
                f"Specified configuration file not found: {config_path}",
                suggestions=[
                    f"Ensure {config_path} exists",
                    "Omit --config to run with built-in defaults",
                ],
            )
        return config_path

    for candidate in DEFAULT_CONFIG_LOCATIONS:
        if candidate.exists():
            return candidate

    return None

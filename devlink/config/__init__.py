"""Configuration management for the DevLink notifier."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config, parse_config_file
from .models import (
    AppConfig,
    CohortConfig,
    EmailConfig,
    JobName,
    JobSchedule,
    JobsConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
)

__all__ = [
    # Loader functions
    "load_config",
    "parse_config_file",
    "load_environment_config",
    # Configuration models
    "AppConfig",
    "JobsConfig",
    "JobSchedule",
    "CohortConfig",
    "EmailConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    # Enums
    "JobName",
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
]

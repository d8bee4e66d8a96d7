"""Core modules for MultiLaunch."""

from .config import (
    MultiLaunchConfig,
    config,
    data_root,
    ensure_directories,
    env,
    get_config,
    reset_config,
)
from .errors import (
    ApplicationNotFoundError,
    ConfigurationError,
    LaunchFailedError,
    MultiLaunchError,
    describe_exception,
    get_error_message,
)
from .logger import setup_logging

__all__ = [
    "MultiLaunchConfig",
    "config",
    "data_root",
    "ensure_directories",
    "env",
    "get_config",
    "reset_config",
    "ApplicationNotFoundError",
    "ConfigurationError",
    "LaunchFailedError",
    "MultiLaunchError",
    "describe_exception",
    "get_error_message",
    "setup_logging",
]

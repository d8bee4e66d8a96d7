"""
Configuration management for MultiLaunch.

This module handles loading and validating configuration from YAML files
and environment variables using Pydantic for type safety.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import platformdirs
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from .errors import ConfigurationError

# Load environment variables from .env file
load_dotenv()

APP_NAME = "MultiLaunch"

# Defaults ship inside the package; user overrides live in the per-user config dir
DEFAULT_SETTINGS_FILE = Path(__file__).parent.parent / "settings.yaml"
USER_SETTINGS_FILE = Path(platformdirs.user_config_dir(APP_NAME, appauthor=False)) / "settings.yaml"
USER_DATA_DIR = Path(platformdirs.user_data_dir(APP_NAME, appauthor=False))


def _default_roots() -> List[str]:
    return [
        "/Applications",
        "/System/Applications",
        "/System/Library/CoreServices",
        "/usr/local/bin",
        "~/Applications",
    ]


class GeneralConfig(BaseModel):
    """General configuration."""
    name: str = "MultiLaunch"
    debug: bool = False
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    # empty means the per-user data directory
    data_dir: str = ""


class ScannerConfig(BaseModel):
    """Application directory scanner configuration."""
    roots: List[str] = Field(default_factory=_default_roots)
    package_suffix: str = ".app"
    icon_extension: str = "icns"
    load_icons: bool = True

    @field_validator("package_suffix")
    @classmethod
    def validate_suffix(cls, v: str) -> str:
        """Suffix must be non-empty and start with a dot."""
        v = (v or "").strip()
        if not v:
            raise ValueError("package_suffix must not be empty")
        return v if v.startswith(".") else "." + v

    def root_paths(self) -> List[Path]:
        """Configured roots with ``~`` expanded, in scan order."""
        return [Path(os.path.expanduser(r)) for r in self.roots]


class LauncherConfig(BaseModel):
    """Launch strategy chain configuration."""
    executable_subdir: str = "Contents/MacOS"
    shell: str = "/bin/bash"
    open_command: str = "/usr/bin/open"
    workspace_timeout: float = Field(default=10.0, gt=0.0)
    max_workers: int = Field(default=4, ge=1)


class FavoritesConfig(BaseModel):
    """Favorites key-value store configuration."""
    db_path: str = "favorites.db"
    key: str = "favorites"


class MultiLaunchConfig(BaseModel):
    """Main MultiLaunch configuration."""
    general: GeneralConfig = Field(default_factory=GeneralConfig)
    scanner: ScannerConfig = Field(default_factory=ScannerConfig)
    launcher: LauncherConfig = Field(default_factory=LauncherConfig)
    favorites: FavoritesConfig = Field(default_factory=FavoritesConfig)


class EnvSettings(BaseSettings):
    """Environment variables settings."""

    config_path: Optional[str] = Field(default=None, alias="MULTILAUNCH_CONFIG")
    log_level: Optional[str] = Field(default=None, alias="MULTILAUNCH_LOG_LEVEL")
    data_dir: Optional[str] = Field(default=None, alias="MULTILAUNCH_DATA_DIR")

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v):
        """Normalize the level name; blank means unset."""
        if v is None:
            return None
        v = str(v).strip().upper()
        return v or None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


def load_yaml_config(config_path: Path | str | None = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Without an explicit path the per-user settings file is read when it
    exists, otherwise the defaults shipped with the package.
    """
    if config_path is None:
        config_path = USER_SETTINGS_FILE if USER_SETTINGS_FILE.exists() else DEFAULT_SETTINGS_FILE

    config_path = Path(config_path)

    if not config_path.exists():
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping at the top level")
    return data


def get_config(config_path: Path | str | None = None) -> MultiLaunchConfig:
    """
    Load and return the MultiLaunch configuration.

    Merges YAML configuration with environment variables.
    """
    settings = env()
    if config_path is None and settings.config_path:
        config_path = settings.config_path

    yaml_config = load_yaml_config(config_path)
    try:
        cfg = MultiLaunchConfig(**yaml_config)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    if settings.log_level:
        cfg.general.log_level = settings.log_level
    if settings.data_dir:
        cfg.general.data_dir = settings.data_dir
    return cfg


def get_env_settings() -> EnvSettings:
    """Get environment settings."""
    return EnvSettings()


# Global configuration instances (lazy loaded)
_config: Optional[MultiLaunchConfig] = None
_env_settings: Optional[EnvSettings] = None


def config() -> MultiLaunchConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = get_config()
    return _config


def env() -> EnvSettings:
    """Get the global environment settings instance."""
    global _env_settings
    if _env_settings is None:
        _env_settings = get_env_settings()
    return _env_settings


def reset_config() -> None:
    """Drop cached globals so the next access reloads them."""
    global _config, _env_settings
    _config = None
    _env_settings = None


def data_root(cfg: MultiLaunchConfig) -> Path:
    """Directory holding logs and the favorites store."""
    if not cfg.general.data_dir:
        return USER_DATA_DIR
    return Path(os.path.expanduser(cfg.general.data_dir)).absolute()


def resolve_data_path(cfg: MultiLaunchConfig, relative: str | Path) -> Path:
    """Resolve a path against the data directory; absolute paths pass through."""
    p = Path(os.path.expanduser(str(relative)))
    if p.is_absolute():
        return p
    return data_root(cfg) / p


def ensure_directories(cfg: MultiLaunchConfig | None = None) -> None:
    """Ensure required directories exist."""
    cfg = cfg or config()
    data_dir = data_root(cfg)
    for directory in (data_dir, data_dir / "logs"):
        directory.mkdir(parents=True, exist_ok=True)

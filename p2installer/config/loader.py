"""
Settings loader

Loads installer defaults from a YAML file and lets environment variables
override them.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from p2installer.core.install.catalog import DEFAULT_SYSTEM_PACKAGES
from p2installer.core.install.exceptions import ConfigError

CONFIG_ENV = "P2_INSTALLER_CONFIG"
REPOSITORIES_ENV = "P2_INSTALLER_REPOSITORIES"
LOG_LEVEL_ENV = "P2_INSTALLER_LOG_LEVEL"

DEFAULT_CONFIG_PATH = Path.home() / ".p2installer" / "config.yaml"


@dataclass
class InstallerSettings:
    """Installer settings"""
    dropin_directory: str = "dropins"
    main_package: str = "main"
    repositories: List[Path] = field(default_factory=lambda: [Path("/usr/share/java")])
    system_packages: List[str] = field(default_factory=lambda: list(DEFAULT_SYSTEM_PACKAGES))
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InstallerSettings":
        """Create from dictionary; unknown keys are ignored"""
        defaults = cls()
        repositories = data.get("repositories")
        system_packages = data.get("system_packages")
        return cls(
            dropin_directory=str(data.get("dropin_directory", defaults.dropin_directory)),
            main_package=str(data.get("main_package", defaults.main_package)),
            repositories=[Path(p) for p in repositories] if repositories is not None else defaults.repositories,
            system_packages=list(system_packages) if system_packages is not None else defaults.system_packages,
            log_level=str(data.get("log_level", defaults.log_level)).upper(),
        )


def load_settings(config_path: Optional[Path] = None) -> InstallerSettings:
    """
    Load installer settings

    Priority (high to low):
    1. Environment variable P2_INSTALLER_CONFIG (path)
    2. Argument config_path
    3. Default path ~/.p2installer/config.yaml
    4. Built-in defaults

    P2_INSTALLER_REPOSITORIES (os.pathsep-separated) and
    P2_INSTALLER_LOG_LEVEL are applied on top of whatever was loaded.

    Args:
        config_path: Settings file path (optional)

    Returns:
        InstallerSettings

    Raises:
        ConfigError: If the settings file is unreadable or not a mapping
    """
    env_config_path = os.getenv(CONFIG_ENV)
    if env_config_path:
        config_path = Path(env_config_path)

    if config_path is None and DEFAULT_CONFIG_PATH.exists():
        config_path = DEFAULT_CONFIG_PATH

    settings = InstallerSettings()
    if config_path is not None:
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
        try:
            with open(config_path, encoding="utf-8") as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}")

        # Empty file
        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ConfigError(f"Config file must contain a mapping: {config_path}")
        settings = InstallerSettings.from_dict(config_data)

    env_repositories = os.getenv(REPOSITORIES_ENV)
    if env_repositories:
        settings.repositories = [Path(p) for p in env_repositories.split(os.pathsep) if p]

    env_log_level = os.getenv(LOG_LEVEL_ENV)
    if env_log_level:
        settings.log_level = env_log_level.upper()

    return settings

"""Configuration management for p2installer"""

from p2installer.config.loader import (
    InstallerSettings,
    load_settings,
)

__all__ = [
    "InstallerSettings",
    "load_settings",
]

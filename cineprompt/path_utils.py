"""Platform-aware path utilities for cineprompt.

Provides a single source of truth for the settings file and the reference
catalog so Windows entry points map to APPDATA while Unix-like platforms use
XDG-style defaults.
"""
from __future__ import annotations

import os
import platform
from pathlib import Path

PACKAGE_ROOT = Path(__file__).resolve().parent
PACKAGED_CATALOG = PACKAGE_ROOT / "catalog" / "data" / "catalog.yaml"


def _is_windows() -> bool:
    return platform.system().lower().startswith("windows")


def get_config_root() -> Path:
    """Return the base configuration directory.

    Environment overrides (CINEPROMPT_CONFIG_DIR) take precedence. On Windows we
    align with %APPDATA%\\cineprompt; otherwise ~/.config/cineprompt is used.
    """

    override = os.environ.get("CINEPROMPT_CONFIG_DIR")
    if override:
        return Path(override).expanduser()

    if _is_windows():
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "cineprompt"

    return Path.home() / ".config" / "cineprompt"


def get_settings_path() -> Path:
    """Return the user settings file path."""

    override = os.environ.get("CINEPROMPT_SETTINGS")
    if override:
        return Path(override).expanduser()
    return get_config_root() / "settings.yaml"


def get_catalog_path() -> Path:
    """Return the reference catalog path, falling back to the packaged YAML."""

    override = os.environ.get("CINEPROMPT_CATALOG")
    if override:
        return Path(override).expanduser()
    return PACKAGED_CATALOG

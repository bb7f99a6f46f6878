"""Where forksync keeps its per-user config file.

Clone and lock locations are workspace-relative and live in core/workspace.py.
"""

from __future__ import annotations

import os
import sys
from functools import lru_cache
from pathlib import Path

__all__ = ["clear_caches", "default_config_path", "user_config_dir"]

APP_NAME = "forksync"
CONFIG_FILENAME = "config.toml"


@lru_cache(maxsize=1)
def user_config_dir() -> Path:
    """$XDG_CONFIG_HOME/forksync, else ~/.config/forksync (%APPDATA% on Windows)."""
    if sys.platform == "win32":
        base = os.environ.get("APPDATA")
        root = Path(base) if base else Path.home() / "AppData" / "Roaming"
        return root / APP_NAME

    base = os.environ.get("XDG_CONFIG_HOME")
    if base:
        return Path(base) / APP_NAME
    return Path(os.environ.get("HOME") or Path.home()) / ".config" / APP_NAME


def default_config_path() -> Path:
    return user_config_dir() / CONFIG_FILENAME


def clear_caches() -> None:
    user_config_dir.cache_clear()

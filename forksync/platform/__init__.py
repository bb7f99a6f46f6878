"""Subprocess execution and per-user paths."""

from .paths import default_config_path, user_config_dir
from .process import ProcessError, run

__all__ = [
    "ProcessError",
    "default_config_path",
    "run",
    "user_config_dir",
]

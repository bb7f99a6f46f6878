"""Core domain types and logic."""

from .catalog import Catalog, build_catalog
from .config import Config, ConfigError, SyncSettings, load_config, resolve_settings
from .errors import ErrorCode
from .result import Err, Ok, Result
from .workspace import Workspace

__all__ = [
    # catalog
    "Catalog",
    "build_catalog",
    # config
    "Config",
    "ConfigError",
    "SyncSettings",
    "load_config",
    "resolve_settings",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
    # workspace
    "Workspace",
]

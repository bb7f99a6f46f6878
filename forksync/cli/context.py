from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

import typer

from forksync.core.config import (
    CatalogSettings,
    Config,
    ConfigError,
    SyncSettings,
    load_config,
    load_config_or_default,
    resolve_catalog_settings,
    resolve_settings,
)
from forksync.core.errors import ErrorCode
from forksync.core.result import Err, Result
from forksync.core.workspace import Workspace
from forksync.github.api import GitHubApi
from forksync.github.http import RealHttpClient
from forksync.output.console import ConsoleProtocol, RichConsole, Style
from forksync.platform.paths import default_config_path

CONFIG_ENV_VAR = "FORKSYNC_CONFIG"

S = TypeVar("S")


@dataclass(frozen=True, slots=True)
class CLIContext:
    settings: SyncSettings
    workspace: Workspace
    api: GitHubApi
    console: ConsoleProtocol
    config_path: Path


@dataclass(frozen=True, slots=True)
class CatalogContext:
    """Context for commands that only read the organization listing."""

    settings: CatalogSettings
    api: GitHubApi
    console: ConsoleProtocol
    config_path: Path


def config_path() -> tuple[Path, bool]:
    """Config file location and whether it was chosen explicitly."""
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        return Path(explicit).expanduser(), True
    return default_config_path(), False


def _load(console: ConsoleProtocol) -> tuple[Config, Path]:
    path, explicit = config_path()
    config_result = load_config(path) if explicit else load_config_or_default(path)
    if isinstance(config_result, Err):
        console.error(config_result.error.message)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    return config_result.value, path


def _settled(console: ConsoleProtocol, result: Result[S, ConfigError]) -> S:
    if isinstance(result, Err):
        error = result.error
        console.error(error.message)
        if error.hint:
            console.print(f"hint: {error.hint}", Style.DIM)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    return result.value


def _github(settings: CatalogSettings | SyncSettings) -> GitHubApi:
    return GitHubApi(http=RealHttpClient(), api_url=settings.api_url, token=settings.token)


def build_context(overrides: Mapping[str, str | None] | None = None) -> CLIContext:
    console = RichConsole()
    config, path = _load(console)
    settings = _settled(
        console, resolve_settings(config, environ=os.environ, overrides=overrides)
    )
    return CLIContext(
        settings=settings,
        workspace=Workspace(root=settings.workspace_root),
        api=_github(settings),
        console=console,
        config_path=path,
    )


def build_catalog_context(overrides: Mapping[str, str | None] | None = None) -> CatalogContext:
    console = RichConsole()
    config, path = _load(console)
    settings = _settled(
        console, resolve_catalog_settings(config, environ=os.environ, overrides=overrides)
    )
    return CatalogContext(settings=settings, api=_github(settings), console=console, config_path=path)

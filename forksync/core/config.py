"""Typed configuration loading and access.

Settings come from three layers, later layers winning:

1. config.toml (``[sync]`` table) in the user config dir or ``--config PATH``
2. environment variables (``FORKSYNC_*``, ``GITHUB_TOKEN``)
3. CLI options

``load_config`` parses the file into an all-optional ``Config``;
``resolve_settings`` merges the layers and validates them into an immutable
``SyncSettings``. Nothing touches the network or disk until that succeeds.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import JsonObject, as_object, string_field, string_list_field, table_field

__all__ = [
    "CatalogSettings",
    "Config",
    "ConfigError",
    "SyncConfig",
    "SyncSettings",
    "load_config",
    "load_config_or_default",
    "resolve_catalog_settings",
    "resolve_settings",
    "DEFAULT_API_URL",
    "DEFAULT_BRANCHES",
    "DEFAULT_REMOTE_URL",
    "ENV_VARS",
]

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_REMOTE_URL = "git@github.com:{owner}/{name}.git"
DEFAULT_BRANCHES = ("develop", "master")

# Setting name -> environment variable.
ENV_VARS: dict[str, str] = {
    "organization": "FORKSYNC_ORGANIZATION",
    "fork_account": "FORKSYNC_FORK_ACCOUNT",
    "workspace_root": "FORKSYNC_WORKSPACE",
    "exclude": "FORKSYNC_EXCLUDE",
    "token": "GITHUB_TOKEN",
}


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when configuration is missing, unreadable or invalid."""

    message: str
    path: Path | None = None
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class SyncConfig:
    """The ``[sync]`` table. Every value is optional at this layer."""

    organization: str | None = None
    fork_account: str | None = None
    workspace_root: str | None = None
    exclude: str | None = None
    api_url: str | None = None
    origin_url: str | None = None
    fork_url: str | None = None
    branches: tuple[str, ...] | None = None


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    sync: SyncConfig = field(default_factory=SyncConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML)."""
        sync: JsonObject = table_field(data, "sync") or {}

        # exclude accepts "a|b" or ["a", "b"]
        exclude = string_field(sync, "exclude")
        exclude_list = string_list_field(sync, "exclude")
        if exclude_list is not None:
            exclude = "|".join(exclude_list) or None

        branches = string_list_field(sync, "branches")

        return cls(
            sync=SyncConfig(
                organization=string_field(sync, "organization"),
                fork_account=string_field(sync, "fork_account"),
                workspace_root=string_field(sync, "workspace_root"),
                exclude=exclude,
                api_url=string_field(sync, "api_url"),
                origin_url=string_field(sync, "origin_url"),
                fork_url=string_field(sync, "fork_url"),
                branches=tuple(branches) if branches else None,
            )
        )


@dataclass(frozen=True, slots=True)
class CatalogSettings:
    """What listing the organization needs: no fork account, no workspace."""

    organization: str
    exclude: str = ""
    token: str | None = None
    api_url: str = DEFAULT_API_URL


@dataclass(frozen=True, slots=True)
class SyncSettings:
    """Validated settings for one sync run.

    Attributes:
        organization: GitHub organization owning the canonical repositories
        fork_account: Account holding the personal forks
        workspace_root: Directory containing one clone per repository
        exclude: Exclusion pattern ("" excludes nothing)
        token: API token, None for unauthenticated access
        api_url: Base URL of the REST API
        origin_url: Template for the organization remote URL
        fork_url: Template for the personal fork remote URL
        branches: Default branch candidates, in order of preference
    """

    organization: str
    fork_account: str
    workspace_root: Path
    exclude: str = ""
    token: str | None = None
    api_url: str = DEFAULT_API_URL
    origin_url: str = DEFAULT_REMOTE_URL
    fork_url: str = DEFAULT_REMOTE_URL
    branches: tuple[str, ...] = DEFAULT_BRANCHES

    def origin_url_for(self, name: str) -> str:
        return self.origin_url.format(owner=self.organization, name=name)

    def fork_url_for(self, name: str) -> str:
        return self.fork_url.format(owner=self.fork_account, name=name)

    @property
    def catalog(self) -> CatalogSettings:
        return CatalogSettings(
            organization=self.organization,
            exclude=self.exclude,
            token=self.token,
            api_url=self.api_url,
        )


def _parse_toml(path: Path) -> Result[JsonObject, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_object(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to config.toml file

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result
    return Ok(Config.from_dict(result.value))


def load_config_or_default(path: Path) -> Result[Config, ConfigError]:
    """Load config from file; a missing file yields the default (empty) config.

    A file that exists but cannot be parsed is still an error.
    """
    if not path.exists():
        return Ok(Config())
    return load_config(path)


def _pick(*values: str | None) -> str | None:
    for value in values:
        if value is not None and value.strip():
            return value.strip()
    return None


def _missing(setting: str, option: str) -> ConfigError:
    return ConfigError(
        f"{setting.replace('_', ' ')} is not configured",
        hint=f"Pass {option}, set ${ENV_VARS[setting]}, or set '{setting}' under [sync] in config.toml",
    )


def _check_template(key: str, template: str) -> ConfigError | None:
    try:
        template.format(owner="owner", name="name")
    except (KeyError, IndexError, ValueError) as e:
        return ConfigError(
            f"invalid {key} template {template!r}: {e}",
            hint="Only the {owner} and {name} placeholders are available",
        )
    if "{name}" not in template:
        return ConfigError(f"{key} template {template!r} must contain {{name}}")
    return None


def _layers(
    environ: Mapping[str, str],
    overrides: Mapping[str, str | None] | None,
) -> Callable[[str, str | None], str | None]:
    cli = overrides or {}

    def layered(setting: str, file_value: str | None) -> str | None:
        return _pick(cli.get(setting), environ.get(ENV_VARS[setting]), file_value)

    return layered


def resolve_catalog_settings(
    config: Config,
    *,
    environ: Mapping[str, str],
    overrides: Mapping[str, str | None] | None = None,
) -> Result[CatalogSettings, ConfigError]:
    """Resolve only what listing the organization needs.

    An explicit empty ``exclude`` override clears a pattern set in the
    environment or config file.
    """
    layered = _layers(environ, overrides)
    file = config.sync

    organization = layered("organization", file.organization)
    if organization is None:
        return Err(_missing("organization", "--org"))

    cli_exclude = (overrides or {}).get("exclude")
    if cli_exclude is not None:
        exclude = cli_exclude.strip()
    else:
        exclude = layered("exclude", file.exclude) or ""
    try:
        re.compile(exclude)
    except re.error as e:
        return Err(
            ConfigError(
                f"invalid exclude pattern {exclude!r}: {e}",
                hint="Separate repository names with '|', e.g. nubis-storage|nubis-vpc",
            )
        )

    return Ok(
        CatalogSettings(
            organization=organization,
            exclude=exclude,
            token=layered("token", None),
            api_url=(file.api_url or DEFAULT_API_URL).rstrip("/"),
        )
    )


def resolve_settings(
    config: Config,
    *,
    environ: Mapping[str, str],
    overrides: Mapping[str, str | None] | None = None,
) -> Result[SyncSettings, ConfigError]:
    """Merge config file, environment and CLI overrides into SyncSettings.

    Args:
        config: Parsed config file (or the default Config)
        environ: Environment mapping (os.environ in production)
        overrides: CLI values keyed by setting name; None means "not given"

    Returns:
        Ok(SyncSettings), or Err(ConfigError) for the first missing or
        invalid setting
    """
    catalog_result = resolve_catalog_settings(config, environ=environ, overrides=overrides)
    if isinstance(catalog_result, Err):
        return catalog_result
    catalog = catalog_result.value

    layered = _layers(environ, overrides)
    file = config.sync

    fork_account = layered("fork_account", file.fork_account)
    if fork_account is None:
        return Err(_missing("fork_account", "--fork-account"))

    workspace_root = layered("workspace_root", file.workspace_root)
    if workspace_root is None:
        return Err(_missing("workspace_root", "--workspace"))

    origin_url = file.origin_url or DEFAULT_REMOTE_URL
    fork_url = file.fork_url or DEFAULT_REMOTE_URL
    for key, template in (("origin_url", origin_url), ("fork_url", fork_url)):
        error = _check_template(key, template)
        if error is not None:
            return Err(error)

    return Ok(
        SyncSettings(
            organization=catalog.organization,
            fork_account=fork_account,
            workspace_root=Path(workspace_root).expanduser().resolve(),
            exclude=catalog.exclude,
            token=catalog.token,
            api_url=catalog.api_url,
            origin_url=origin_url,
            fork_url=fork_url,
            branches=file.branches or DEFAULT_BRANCHES,
        )
    )

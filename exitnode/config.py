"""TOML-based provider and run configuration.

Loads ~/.exitnode/defaults.toml (global) and exitnode.toml (project),
merges them, and resolves named provider tables into provider configs::

    [providers.do]
    type = "digitalocean"
    token_file = "~/do-token"

    [run]
    provider = "do"
    region = "lon1"
    poll_interval = 2
    delete_on_cancel = true
"""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any

from exitnode.core.exceptions import ConfigurationError
from exitnode.lifecycle import DEFAULT_MAX_ATTEMPTS, DEFAULT_POLL_INTERVAL, LifecycleOptions

if TYPE_CHECKING:
    from exitnode.providers.registry import AnyProviderConfig

type RawConfig = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".exitnode" / "defaults.toml"
PROJECT_CONFIG_NAME = "exitnode.toml"


@dataclass(frozen=True, slots=True)
class RunConfig:
    """Everything a single create invocation needs, built once at the boundary."""

    provider: str = "digitalocean"
    name: str = ""
    region: str = ""
    zone: str = ""
    plan: str = ""
    os_image: str = ""
    tags: Mapping[str, str] = field(default_factory=dict)
    control_port: int = 8080
    pro: bool = False
    poll_interval: float = DEFAULT_POLL_INTERVAL
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    delete_on_cancel: bool = False
    delete_timeout: float = 600.0

    def __post_init__(self) -> None:
        try:
            self.lifecycle
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"invalid run settings: {e}") from e

    @property
    def lifecycle(self) -> LifecycleOptions:
        return LifecycleOptions(
            poll_interval=self.poll_interval,
            max_attempts=self.max_attempts,
            delete_on_cancel=self.delete_on_cancel,
            delete_timeout=self.delete_timeout,
        )


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"invalid TOML in {path}: {e}") from e


def load_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
    explicit_path: Path | None = None,
) -> RawConfig:
    """Merge global, project and (optionally) an explicit config file, in that order."""
    merged = _read_toml(global_path or GLOBAL_CONFIG_PATH)
    project_path = (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME
    merged = _deep_merge(merged, _read_toml(project_path))
    if explicit_path is not None:
        if not explicit_path.is_file():
            raise ConfigurationError(f"config file not found: {explicit_path}")
        merged = _deep_merge(merged, _read_toml(explicit_path))

    merged.setdefault("providers", {})
    merged.setdefault("run", {})
    return merged


def _build_provider(name: str, raw: RawConfig) -> AnyProviderConfig:
    from exitnode.providers.registry import PROVIDER_CONFIGS, canonical_name

    raw = dict(raw)
    provider_type = raw.pop("type", None)
    if provider_type is None:
        raise ConfigurationError(f"provider '{name}' missing 'type' field")

    cls = PROVIDER_CONFIGS[canonical_name(provider_type)]
    try:
        return cls(**raw)
    except TypeError as e:
        raise ConfigurationError(f"invalid settings for provider '{name}': {e}") from e


def resolve_provider(name: str, config: RawConfig) -> AnyProviderConfig:
    """Build the provider config for ``name``.

    ``name`` is looked up among the ``[providers.*]`` tables first; a bare
    provider type (``gce``) with no table yields that provider's config
    with default settings.
    """
    from exitnode.providers.registry import ALIASES, PROVIDER_CONFIGS

    providers = config.get("providers", {})
    if name in providers:
        return _build_provider(name, providers[name])
    key = ALIASES.get(name, name)
    if key in PROVIDER_CONFIGS:
        return PROVIDER_CONFIGS[key]()
    raise ConfigurationError(
        f"provider '{name}' not found. Available: "
        f"{', '.join([*providers, *PROVIDER_CONFIGS]) or 'none'}"
    )


def resolve_run(config: RawConfig, **overrides: Any) -> RunConfig:
    """Build a RunConfig from the ``[run]`` table; non-empty overrides win."""
    raw = dict(config.get("run", {}))
    known = {f.name for f in fields(RunConfig)}
    unknown = set(raw) - known
    if unknown:
        raise ConfigurationError(f"unknown [run] settings: {', '.join(sorted(unknown))}")

    raw.update({k: v for k, v in overrides.items() if v not in (None, "")})
    if "tags" in raw:
        raw["tags"] = {str(k): str(v) for k, v in dict(raw["tags"]).items()}
    return RunConfig(**raw)

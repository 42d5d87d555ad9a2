from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Literal

from exitnode.core.exceptions import ConfigurationError

type HostStatus = Literal[
    "creating",
    "initializing",
    "active",
    "error",
]

CANONICAL_STATUSES: frozenset[str] = frozenset({"creating", "initializing", "active", "error"})

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _freeze(tags: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType(dict(tags or {}))


@dataclass(frozen=True, slots=True)
class HostDescriptor:
    """What to create: name, placement, size, image and boot script.

    ``tags`` carries provider-specific auxiliary parameters such as
    ``project_id``, ``firewall_name`` or ``control_port``. The mapping is
    copied into a read-only view on construction.
    """

    name: str
    region: str
    plan: str
    os_image: str
    boot_script: str = ""
    zone: str = ""
    tags: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("host name must not be empty")
        object.__setattr__(self, "tags", _freeze(self.tags))

    def tag(self, key: str, default: str = "") -> str:
        return self.tags.get(key, default) or default

    def flag(self, key: str) -> bool:
        return self.tags.get(key, "").strip().lower() in _TRUTHY


@dataclass(frozen=True, slots=True)
class ProvisionedHost:
    """A host as reported by its provider."""

    id: str
    status: str
    ip: str = ""

    @property
    def is_active(self) -> bool:
        return self.status == "active"


@dataclass(frozen=True, slots=True)
class HostDeleteRequest:
    """Identifies a host to delete, by ID or by public IP.

    ``project_id``, ``zone`` and ``region`` scope the lookup for providers
    that need them and override values encoded in a composite ID.
    """

    id: str = ""
    ip: str = ""
    project_id: str = ""
    zone: str = ""
    region: str = ""

    def __post_init__(self) -> None:
        if not self.id and not self.ip:
            raise ConfigurationError("delete request needs an id or an ip")


@dataclass(frozen=True, slots=True)
class ListFilter:
    filter: str = ""
    project_id: str = ""
    zone: str = ""

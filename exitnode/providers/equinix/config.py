"""Equinix Metal provider configuration."""

from __future__ import annotations

import typing
from dataclasses import dataclass

from exitnode.providers.provider import ProviderConfig

if typing.TYPE_CHECKING:
    from exitnode.providers.equinix.provider import EquinixProvider


@dataclass(frozen=True, slots=True)
class EquinixMetal(ProviderConfig):
    """Equinix Metal (formerly Packet) bare-metal devices.

    Args:
        token: API token. Falls back to ``token_file``, then $METAL_AUTH_TOKEN.
        token_file: Path to a file holding the API token.
        project_id: Project that owns new devices. A ``project_id`` host tag
            or delete/list scope overrides it.
        billing_cycle: Billing cycle of new devices.
        request_timeout: Per-call timeout in seconds.
    """

    token: str | None = None
    token_file: str | None = None
    project_id: str | None = None
    billing_cycle: str = "hourly"
    api_url: str = "https://api.equinix.com/metal/v1"
    request_timeout: float = 30.0

    @property
    def type(self) -> str: return "equinix"

    async def create_provider(self) -> EquinixProvider:
        from exitnode.providers.equinix.provider import EquinixProvider
        return await EquinixProvider.create(self)

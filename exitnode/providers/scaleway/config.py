"""Scaleway provider configuration."""

from __future__ import annotations

import typing
from dataclasses import dataclass

from exitnode.providers.provider import ProviderConfig

if typing.TYPE_CHECKING:
    from exitnode.providers.scaleway.provider import ScalewayProvider


@dataclass(frozen=True, slots=True)
class Scaleway(ProviderConfig):
    """Scaleway Instances.

    Args:
        secret_key: API secret key. Falls back to ``secret_key_file``, then $SCW_SECRET_KEY.
        secret_key_file: Path to a file holding the secret key.
        access_key: Access key ID, only used in log output.
        organization_id: Project (formerly organization) that owns new servers.
            Falls back to $SCW_DEFAULT_PROJECT_ID.
        zone: Default zone when neither the host nor its ID names one.
        request_timeout: Per-call timeout in seconds.
        poweroff_timeout: Seconds to wait for a server to stop before deleting it.
        poll_interval: Seconds between state checks while it stops.
    """

    secret_key: str | None = None
    secret_key_file: str | None = None
    access_key: str | None = None
    organization_id: str | None = None
    zone: str = "fr-par-1"
    api_url: str = "https://api.scaleway.com"
    request_timeout: float = 30.0
    poweroff_timeout: float = 300.0
    poll_interval: float = 5.0

    @property
    def type(self) -> str: return "scaleway"

    async def create_provider(self) -> ScalewayProvider:
        from exitnode.providers.scaleway.provider import ScalewayProvider
        return await ScalewayProvider.create(self)

"""DigitalOcean provider configuration."""

from __future__ import annotations

import typing
from dataclasses import dataclass

from exitnode.providers.provider import ProviderConfig

if typing.TYPE_CHECKING:
    from exitnode.providers.digitalocean.provider import DigitalOceanProvider


@dataclass(frozen=True, slots=True)
class DigitalOcean(ProviderConfig):
    """DigitalOcean Droplets.

    Args:
        token: API token. Falls back to ``token_file``, then $DIGITALOCEAN_ACCESS_TOKEN.
        token_file: Path to a file holding the API token.
        request_timeout: Per-call timeout in seconds.
        thread_pool_size: Threads used to drive the blocking pydo client.
    """

    token: str | None = None
    token_file: str | None = None
    request_timeout: float = 30.0
    thread_pool_size: int = 4

    @property
    def type(self) -> str: return "digitalocean"

    async def create_provider(self) -> DigitalOceanProvider:
        from exitnode.providers.digitalocean.provider import DigitalOceanProvider
        return await DigitalOceanProvider.create(self)

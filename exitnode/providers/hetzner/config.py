"""Hetzner Cloud provider configuration."""

from __future__ import annotations

import typing
from dataclasses import dataclass

from exitnode.providers.provider import ProviderConfig

if typing.TYPE_CHECKING:
    from exitnode.providers.hetzner.provider import HetznerProvider


@dataclass(frozen=True, slots=True)
class Hetzner(ProviderConfig):
    """Hetzner Cloud servers.

    Args:
        token: API token. Falls back to ``token_file``, then $HCLOUD_TOKEN.
        token_file: Path to a file holding the API token.
        request_timeout: Per-call timeout in seconds.
        thread_pool_size: Threads used to drive the blocking hcloud client.
    """

    token: str | None = None
    token_file: str | None = None
    request_timeout: float = 30.0
    thread_pool_size: int = 4

    @property
    def type(self) -> str: return "hetzner"

    async def create_provider(self) -> HetznerProvider:
        from exitnode.providers.hetzner.provider import HetznerProvider
        return await HetznerProvider.create(self)

"""Vultr provider configuration."""

from __future__ import annotations

import typing
from dataclasses import dataclass

from exitnode.providers.provider import ProviderConfig

if typing.TYPE_CHECKING:
    from exitnode.providers.vultr.provider import VultrProvider


@dataclass(frozen=True, slots=True)
class Vultr(ProviderConfig):
    """Vultr cloud compute instances.

    Args:
        api_key: API key. Falls back to ``api_key_file``, then $VULTR_API_KEY.
        api_key_file: Path to a file holding the API key.
        request_timeout: Per-call timeout in seconds.
    """

    api_key: str | None = None
    api_key_file: str | None = None
    api_url: str = "https://api.vultr.com/v2"
    request_timeout: float = 30.0

    @property
    def type(self) -> str: return "vultr"

    async def create_provider(self) -> VultrProvider:
        from exitnode.providers.vultr.provider import VultrProvider
        return await VultrProvider.create(self)

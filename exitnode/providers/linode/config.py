"""Linode provider configuration."""

from __future__ import annotations

import typing
from dataclasses import dataclass

from exitnode.providers.provider import ProviderConfig

if typing.TYPE_CHECKING:
    from exitnode.providers.linode.provider import LinodeProvider


@dataclass(frozen=True, slots=True)
class Linode(ProviderConfig):
    """Linode (Akamai) instances.

    Args:
        token: Personal access token. Falls back to ``token_file``, then $LINODE_TOKEN.
        token_file: Path to a file holding the token.
        request_timeout: Per-call timeout in seconds.
    """

    token: str | None = None
    token_file: str | None = None
    api_url: str = "https://api.linode.com/v4"
    request_timeout: float = 30.0

    @property
    def type(self) -> str: return "linode"

    async def create_provider(self) -> LinodeProvider:
        from exitnode.providers.linode.provider import LinodeProvider
        return await LinodeProvider.create(self)

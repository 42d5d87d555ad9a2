"""Civo provider configuration."""

from __future__ import annotations

import typing
from dataclasses import dataclass

from exitnode.providers.provider import ProviderConfig

if typing.TYPE_CHECKING:
    from exitnode.providers.civo.provider import CivoProvider


@dataclass(frozen=True, slots=True)
class Civo(ProviderConfig):
    """Civo compute instances.

    Args:
        api_key: API key. Falls back to ``api_key_file``, then $CIVO_TOKEN.
        api_key_file: Path to a file holding the API key.
        initial_user: Login user created on the instance.
        request_timeout: Per-call timeout in seconds.
    """

    api_key: str | None = None
    api_key_file: str | None = None
    initial_user: str = "civo"
    api_url: str = "https://api.civo.com"
    request_timeout: float = 30.0

    @property
    def type(self) -> str: return "civo"

    async def create_provider(self) -> CivoProvider:
        from exitnode.providers.civo.provider import CivoProvider
        return await CivoProvider.create(self)

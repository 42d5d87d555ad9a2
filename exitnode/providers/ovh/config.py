"""OVHcloud Public Cloud provider configuration."""

from __future__ import annotations

import typing
from dataclasses import dataclass

from exitnode.providers.provider import ProviderConfig

if typing.TYPE_CHECKING:
    from exitnode.providers.ovh.provider import OVHProvider


@dataclass(frozen=True, slots=True)
class OVH(ProviderConfig):
    """OVHcloud Public Cloud instances.

    Credentials fall back to $OVH_APPLICATION_KEY, $OVH_APPLICATION_SECRET
    and $OVH_CONSUMER_KEY.

    Args:
        endpoint: API endpoint name (``ovh-eu``, ``ovh-ca``, ``ovh-us``, ...).
        application_key: Application key.
        application_secret: Application secret.
        application_secret_file: Path to a file holding the application secret.
        consumer_key: Consumer key bound to the application.
        project_id: Public Cloud project (service name). A ``project_id``
            host tag or delete scope overrides it.
        request_timeout: Per-call timeout in seconds.
        thread_pool_size: Threads used to drive the blocking ovh client.
    """

    endpoint: str = "ovh-eu"
    application_key: str | None = None
    application_secret: str | None = None
    application_secret_file: str | None = None
    consumer_key: str | None = None
    project_id: str | None = None
    request_timeout: float = 30.0
    thread_pool_size: int = 4

    @property
    def type(self) -> str: return "ovh"

    async def create_provider(self) -> OVHProvider:
        from exitnode.providers.ovh.provider import OVHProvider
        return await OVHProvider.create(self)

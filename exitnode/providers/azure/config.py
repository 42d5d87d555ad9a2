"""Azure provider configuration."""

from __future__ import annotations

import typing
from dataclasses import dataclass

from exitnode.providers.provider import ProviderConfig

if typing.TYPE_CHECKING:
    from exitnode.providers.azure.provider import AzureProvider


@dataclass(frozen=True, slots=True)
class Azure(ProviderConfig):
    """Azure Resource Manager provider configuration.

    Authentication, in order: a service-principal auth file (the JSON
    produced by ``az ad sp create-for-rbac --sdk-auth``, also found via
    $AZURE_AUTH_LOCATION), explicit client credentials, then
    DefaultAzureCredential.

    Args:
        subscription_id: Subscription to deploy into. Read from the auth file if empty.
        auth_file: Path to an SDK auth file.
        tenant_id: Service principal tenant.
        client_id: Service principal application ID.
        client_secret: Service principal secret.
        deployment_timeout: Seconds to wait for resource group deletion.
        thread_pool_size: Threads used to drive the blocking management client.
    """

    subscription_id: str | None = None
    auth_file: str | None = None
    tenant_id: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    request_timeout: float = 30.0
    deployment_timeout: float = 1200.0
    thread_pool_size: int = 4

    @property
    def type(self) -> str: return "azure"

    async def create_provider(self) -> AzureProvider:
        from exitnode.providers.azure.provider import AzureProvider
        return await AzureProvider.create(self)

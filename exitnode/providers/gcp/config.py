"""Google Compute Engine provider configuration."""

from __future__ import annotations

import typing
from dataclasses import dataclass

from exitnode.providers.provider import ProviderConfig

if typing.TYPE_CHECKING:
    from exitnode.providers.gcp.provider import GCEProvider


@dataclass(frozen=True, slots=True)
class GCE(ProviderConfig):
    """Google Compute Engine provider configuration.

    Authenticates with a service-account key (JSON text or file). Without
    one, Application Default Credentials are used. The project defaults to
    the key's ``project_id``, then $GOOGLE_CLOUD_PROJECT, then ADC.

    Example:
        >>> from exitnode.providers.gcp import GCE
        >>> config = GCE(credentials_file="~/key.json", zone="europe-west1-b")

    Args:
        project: GCP project ID.
        zone: Default zone for new hosts.
        credentials_json: Service-account key as JSON text.
        credentials_file: Path to a service-account key file.
        network: VPC network the firewall rule and hosts attach to.
        disk_size_gb: Boot disk size.
        request_timeout: Per-call timeout in seconds.
        operation_timeout: Seconds to wait for long-running operations.
        thread_pool_size: Threads used to drive the blocking compute client.
    """

    project: str | None = None
    zone: str = "us-central1-a"
    credentials_json: str | None = None
    credentials_file: str | None = None
    network: str = "default"
    disk_size_gb: int = 10
    request_timeout: float = 30.0
    operation_timeout: float = 300.0
    thread_pool_size: int = 4

    @property
    def type(self) -> str: return "gce"

    async def create_provider(self) -> GCEProvider:
        from exitnode.providers.gcp.provider import GCEProvider
        return await GCEProvider.create(self)

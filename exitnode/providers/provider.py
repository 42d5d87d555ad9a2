from __future__ import annotations

from typing import Protocol, runtime_checkable

from exitnode.api.model import HostDeleteRequest, HostDescriptor, ListFilter, ProvisionedHost


@runtime_checkable
class Provisioner(Protocol):
    """Uniform contract every cloud adapter implements.

    Adapters hold only immutable config and an authenticated client handle.
    Polling, cancellation and auto-delete live in the lifecycle driver, so
    every method here is a single short-lived API interaction.
    """

    async def provision(self, host: HostDescriptor) -> ProvisionedHost:
        """Request creation of a host.

        Returns as soon as the provider has accepted the request. The
        returned status is whatever the provider reported at that point,
        typically ``creating``. Auxiliary resources (security groups,
        firewall rules, startup scripts) are created first; if any later
        step fails they are removed again before the error propagates.
        """
        ...

    async def status(self, host_id: str) -> ProvisionedHost:
        """Fetch the current status and public IP of a host.

        ``host_id`` is the opaque ID returned by ``provision``; composite
        IDs are decoded here. Raises NotFoundError if the host is gone.
        """
        ...

    async def delete(self, request: HostDeleteRequest) -> None:
        """Remove a host and the auxiliary resources created with it.

        When ``request.id`` is empty the host is located by public IP via
        ``list``. Any power-off or terminate wait the provider needs before
        cleanup happens inside this call.
        """
        ...

    async def list(self, filter: ListFilter) -> list[ProvisionedHost]:
        """List hosts created by this tool, across all result pages."""
        ...

    async def close(self) -> None:
        """Release clients, sessions and thread pools."""
        ...


@runtime_checkable
class ProviderConfig[P](Protocol):
    @property
    def type(self) -> str: ...

    async def create_provider(self) -> P: ...

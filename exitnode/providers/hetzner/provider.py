"""Hetzner Cloud adapter backed by the hcloud SDK.

Server type, location and image are looked up by name before anything is
created; an unknown name is a configuration error. Servers carry the
label ``inlets=exit-node``. A server is the only resource created.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any

from exitnode.api.model import HostDeleteRequest, HostDescriptor, ListFilter, ProvisionedHost
from exitnode.core.exceptions import ConfigurationError, NotFoundError, ProviderAPIError, ProviderError
from exitnode.credentials import resolve_secret
from exitnode.observability.logger import logger
from exitnode.providers.common import (
    EXIT_NODE_LABEL_KEY,
    EXIT_NODE_LABEL_VALUE,
    BlockingClientMixin,
    make_pool,
    map_status,
)
from exitnode.providers.lookup import resolve_delete_target

from .config import Hetzner

log = logger.bind(provider="hetzner")

STATUS_MAP = {
    "initializing": "initializing",
    "starting": "initializing",
    "running": "active",
}

LABEL_SELECTOR = f"{EXIT_NODE_LABEL_KEY}={EXIT_NODE_LABEL_VALUE}"


def _translate(e: Exception, operation: str, resource: str = "") -> ProviderError:
    from hcloud import APIException  # type: ignore[reportMissingImports]

    if isinstance(e, APIException) and e.code == "not_found":
        return NotFoundError("hetzner", operation, resource, detail="not found")
    return ProviderAPIError("hetzner", operation, resource, detail=str(e))


def _public_ip(server: Any) -> str:
    ipv4 = getattr(server.public_net, "ipv4", None) if server.public_net else None
    return getattr(ipv4, "ip", "") or ""


def _to_host(server: Any) -> ProvisionedHost:
    ip = _public_ip(server)
    status = map_status(STATUS_MAP, str(server.status or ""))
    if status == "active" and not ip:
        status = "initializing"
    return ProvisionedHost(id=str(server.id), status=status, ip=ip)


class HetznerProvider(BlockingClientMixin):
    name = "hetzner"

    def __init__(self, config: Hetzner, client: Any, thread_pool: ThreadPoolExecutor) -> None:
        self._config = config
        self._client = client
        self._pool = thread_pool

    @classmethod
    async def create(cls, config: Hetzner) -> HetznerProvider:
        from hcloud import Client  # type: ignore[reportMissingImports]

        token = resolve_secret(config.token, config.token_file, "HCLOUD_TOKEN", what="Hetzner token")
        client = Client(token=token, application_name="exitnode", timeout=config.request_timeout)
        return cls(config, client, make_pool("hetzner", config.thread_pool_size))

    async def _by_name(self, collection: Any, kind: str, name: str) -> Any:
        try:
            found = await self._run(collection.get_by_name, name)
        except Exception as e:
            raise _translate(e, f"get {kind}", name) from e
        if found is None:
            raise ConfigurationError(f"hetzner: {kind} {name!r} does not exist")
        return found

    async def provision(self, host: HostDescriptor) -> ProvisionedHost:
        server_type = await self._by_name(self._client.server_types, "server type", host.plan)
        location = await self._by_name(self._client.locations, "location", host.region)
        image = await self._by_name(self._client.images, "image", host.os_image)

        log.info("Creating server {name} ({plan}) in {region}", name=host.name, plan=host.plan, region=host.region)
        try:
            response = await self._run(
                self._client.servers.create,
                name=host.name,
                server_type=server_type,
                image=image,
                location=location,
                user_data=host.boot_script,
                labels={EXIT_NODE_LABEL_KEY: EXIT_NODE_LABEL_VALUE},
            )
        except Exception as e:
            raise _translate(e, "create server", host.name) from e
        return ProvisionedHost(id=str(response.server.id), status="creating")

    async def _server(self, host_id: str) -> Any:
        if not host_id.isdigit():
            raise ConfigurationError(f"hetzner: server id must be numeric, got {host_id!r}")
        try:
            return await self._run(self._client.servers.get_by_id, int(host_id))
        except Exception as e:
            raise _translate(e, "get server", host_id) from e

    async def status(self, host_id: str) -> ProvisionedHost:
        return _to_host(await self._server(host_id))

    async def delete(self, request: HostDeleteRequest) -> None:
        host_id = await resolve_delete_target(self, request)
        server = await self._server(host_id)
        log.info("Deleting server {id}", id=host_id)
        try:
            action = await self._run(self._client.servers.delete, server)
            await self._run(action.wait_until_finished)
        except Exception as e:
            raise _translate(e, "delete server", host_id) from e

    async def list(self, filter: ListFilter) -> list[ProvisionedHost]:
        selector = filter.filter or LABEL_SELECTOR
        try:
            servers = await self._run(self._client.servers.get_all, label_selector=selector)
        except Exception as e:
            raise _translate(e, "list servers", selector) from e
        return [_to_host(s) for s in servers]

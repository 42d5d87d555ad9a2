"""DigitalOcean adapter backed by the pydo SDK.

Droplets are tagged ``inlets-exit-node`` so they can be found again by IP.
A droplet is the only resource created, so a failed create leaves
nothing behind.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any

from exitnode.api.model import HostDeleteRequest, HostDescriptor, ListFilter, ProvisionedHost
from exitnode.core.exceptions import ConfigurationError, NotFoundError, ProviderAPIError, ProviderError
from exitnode.credentials import resolve_secret
from exitnode.observability.logger import logger
from exitnode.providers.common import EXIT_NODE_TAG, BlockingClientMixin, make_pool, map_status
from exitnode.providers.lookup import collect, resolve_delete_target

from .config import DigitalOcean

log = logger.bind(provider="digitalocean")

STATUS_MAP = {
    "new": "creating",
    "active": "active",
    "off": "error",
    "archive": "error",
}

PAGE_SIZE = 200


def _public_ip(droplet: dict[str, Any]) -> str:
    for network in droplet.get("networks", {}).get("v4", []):
        if network.get("type") == "public":
            return network.get("ip_address", "")
    return ""


def _to_host(droplet: dict[str, Any]) -> ProvisionedHost:
    ip = _public_ip(droplet)
    status = map_status(STATUS_MAP, droplet.get("status", ""))
    if status == "active" and not ip:
        status = "initializing"
    return ProvisionedHost(id=str(droplet["id"]), status=status, ip=ip)


def _droplet_id(host_id: str) -> int:
    if not host_id.isdigit():
        raise ConfigurationError(f"digitalocean: droplet id must be numeric, got {host_id!r}")
    return int(host_id)


def _translate(e: Exception, operation: str, resource: str = "") -> ProviderError:
    from azure.core.exceptions import ResourceNotFoundError  # type: ignore[reportMissingImports]

    if isinstance(e, ResourceNotFoundError):
        return NotFoundError("digitalocean", operation, resource, detail="not found")
    return ProviderAPIError("digitalocean", operation, resource, detail=str(e))


class DigitalOceanProvider(BlockingClientMixin):
    name = "digitalocean"

    def __init__(self, config: DigitalOcean, client: Any, thread_pool: ThreadPoolExecutor) -> None:
        self._config = config
        self._client = client
        self._pool = thread_pool

    @classmethod
    async def create(cls, config: DigitalOcean) -> DigitalOceanProvider:
        from pydo import Client  # type: ignore[reportMissingImports]

        token = resolve_secret(config.token, config.token_file, "DIGITALOCEAN_ACCESS_TOKEN")
        client = Client(token=token, timeout=int(config.request_timeout))
        return cls(config, client, make_pool("digitalocean", config.thread_pool_size))

    async def provision(self, host: HostDescriptor) -> ProvisionedHost:
        body: dict[str, Any] = {
            "name": host.name,
            "region": host.region,
            "size": host.plan,
            "image": host.os_image,
            "user_data": host.boot_script,
            "tags": [EXIT_NODE_TAG],
        }
        if ssh_key := host.tag("ssh_key"):
            body["ssh_keys"] = [ssh_key]

        log.info("Creating droplet {name} ({size}) in {region}",
                 name=host.name, size=host.plan, region=host.region)
        try:
            resp = await self._run(self._client.droplets.create, body=body)
        except Exception as e:
            raise _translate(e, "create droplet", host.name) from e
        return _to_host(resp["droplet"])

    async def status(self, host_id: str) -> ProvisionedHost:
        droplet_id = _droplet_id(host_id)
        try:
            resp = await self._run(self._client.droplets.get, droplet_id=droplet_id)
        except Exception as e:
            raise _translate(e, "get droplet", host_id) from e
        return _to_host(resp["droplet"])

    async def delete(self, request: HostDeleteRequest) -> None:
        host_id = await resolve_delete_target(self, request)
        droplet_id = _droplet_id(host_id)
        log.info("Destroying droplet {id}", id=host_id)
        try:
            await self._run(self._client.droplets.destroy, droplet_id=droplet_id)
        except Exception as e:
            raise _translate(e, "destroy droplet", host_id) from e

    async def list(self, filter: ListFilter) -> list[ProvisionedHost]:
        tag = filter.filter or EXIT_NODE_TAG

        async def page(token: str) -> tuple[list[dict[str, Any]], str]:
            number = int(token or "1")
            try:
                resp = await self._run(
                    self._client.droplets.list, tag_name=tag, per_page=PAGE_SIZE, page=number,
                )
            except Exception as e:
                raise _translate(e, "list droplets", tag) from e
            more = bool(resp.get("links", {}).get("pages", {}).get("next"))
            return resp.get("droplets", []), str(number + 1) if more else ""

        return [_to_host(d) for d in await collect(page)]

"""Vultr adapter over the v2 REST API.

The boot script is stored as a startup script named after the host and
referenced from the instance, whose label and hostname are the host name.
Delete removes the instance and then the startup script carrying its
label. A failed instance create removes the script again.
"""

from __future__ import annotations

from typing import Any

from exitnode.api.model import HostDeleteRequest, HostDescriptor, ListFilter, ProvisionedHost
from exitnode.core.exceptions import ConfigurationError
from exitnode.credentials import resolve_secret
from exitnode.infra.http import BearerAuth, HttpClient
from exitnode.observability.logger import logger
from exitnode.providers.common import EXIT_NODE_TAG, Rollback, map_status
from exitnode.providers.lookup import collect, paginate, resolve_delete_target

from .client import VultrClient
from .config import Vultr

log = logger.bind(provider="vultr")

STATUS_MAP = {
    "pending": "creating",
    "suspended": "error",
}

UNASSIGNED_IP = "0.0.0.0"


def _to_host(instance: dict[str, Any]) -> ProvisionedHost:
    ip = instance.get("main_ip") or ""
    if ip == UNASSIGNED_IP:
        ip = ""
    raw = instance.get("status", "")
    if raw == "active":
        ready = instance.get("server_status") == "ok" and ip
        status = "active" if ready else "initializing"
    else:
        status = map_status(STATUS_MAP, raw)
    return ProvisionedHost(id=instance["id"], status=status, ip=ip)


class VultrProvider:
    name = "vultr"

    def __init__(self, config: Vultr, client: VultrClient) -> None:
        self._config = config
        self._client = client

    @classmethod
    async def create(cls, config: Vultr) -> VultrProvider:
        key = resolve_secret(config.api_key, config.api_key_file, "VULTR_API_KEY", what="Vultr API key")
        http = HttpClient(config.api_url, BearerAuth(key), timeout=config.request_timeout)
        return cls(config, VultrClient(http))

    async def _region(self, wanted: str) -> str:
        async for region in paginate(self._client.regions):
            if wanted.lower() in (region.get("id", "").lower(), region.get("city", "").lower()):
                return region["id"]
        raise ConfigurationError(f"vultr: region {wanted!r} not available")

    async def provision(self, host: HostDescriptor) -> ProvisionedHost:
        try:
            os_id = int(host.os_image)
        except ValueError as e:
            raise ConfigurationError(f"vultr: os must be a numeric OS id, got {host.os_image!r}") from e
        region = await self._region(host.region)

        async with Rollback(log) as undo:
            script = await self._client.create_startup_script(host.name, host.boot_script)
            undo.push(
                f"startup script {script['id']}",
                lambda: self._client.delete_startup_script(script["id"]),
            )
            log.info("Creating instance {name} ({plan}) in {region}", name=host.name, plan=host.plan, region=region)
            instance = await self._client.create_instance({
                "region": region,
                "plan": host.plan,
                "os_id": os_id,
                "label": host.name,
                "hostname": host.name,
                "script_id": script["id"],
                "tags": [EXIT_NODE_TAG],
            })
        return _to_host(instance)

    async def status(self, host_id: str) -> ProvisionedHost:
        return _to_host(await self._client.get_instance(host_id))

    async def delete(self, request: HostDeleteRequest) -> None:
        host_id = await resolve_delete_target(self, request)
        instance = await self._client.get_instance(host_id)
        log.info("Deleting instance {id}", id=host_id)
        await self._client.delete_instance(host_id)

        async for script in paginate(self._client.startup_scripts):
            if script.get("name") == instance.get("label"):
                await self._client.delete_startup_script(script["id"])
                log.debug("Deleted startup script {id}", id=script["id"])
                break

    async def list(self, filter: ListFilter) -> list[ProvisionedHost]:
        tag = filter.filter or EXIT_NODE_TAG
        instances = await collect(lambda cursor: self._client.instances(tag, cursor))
        return [_to_host(instance) for instance in instances]

    async def close(self) -> None:
        await self._client.close()

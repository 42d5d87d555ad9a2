"""Linode adapter over the v4 REST API.

The boot script becomes a private StackScript labelled with the host
name; the instance is labelled ``inlets-<name>``, gets a random root
password and runs that StackScript. Delete removes the instance and then
the StackScript. A failed instance create removes the StackScript again.
"""

from __future__ import annotations

from typing import Any

from exitnode.api.model import HostDeleteRequest, HostDescriptor, ListFilter, ProvisionedHost
from exitnode.credentials import resolve_secret
from exitnode.infra.http import BearerAuth, HttpClient
from exitnode.observability.logger import logger
from exitnode.providers.common import EXIT_NODE_TAG, Rollback, map_status, random_password
from exitnode.providers.lookup import collect, paginate, resolve_delete_target

from .client import LinodeClient
from .config import Linode

log = logger.bind(provider="linode")

STATUS_MAP = {
    "provisioning": "creating",
    "booting": "initializing",
    "running": "active",
}

LABEL_PREFIX = "inlets-"


def _to_host(instance: dict[str, Any]) -> ProvisionedHost:
    addresses = instance.get("ipv4") or []
    ip = addresses[0] if addresses else ""
    status = map_status(STATUS_MAP, instance.get("status", ""))
    if status == "active" and not ip:
        status = "initializing"
    return ProvisionedHost(id=str(instance["id"]), status=status, ip=ip)


class LinodeProvider:
    name = "linode"

    def __init__(self, config: Linode, client: LinodeClient) -> None:
        self._config = config
        self._client = client

    @classmethod
    async def create(cls, config: Linode) -> LinodeProvider:
        token = resolve_secret(config.token, config.token_file, "LINODE_TOKEN", what="Linode token")
        http = HttpClient(config.api_url, BearerAuth(token), timeout=config.request_timeout)
        return cls(config, LinodeClient(http))

    async def provision(self, host: HostDescriptor) -> ProvisionedHost:
        async with Rollback(log) as undo:
            script = await self._client.create_stackscript(host.name, host.os_image, host.boot_script)
            undo.push(
                f"stackscript {script['id']}",
                lambda: self._client.delete_stackscript(script["id"]),
            )
            log.info("Creating instance {name} ({plan}) in {region}", name=host.name, plan=host.plan, region=host.region)
            instance = await self._client.create_instance({
                "label": f"{LABEL_PREFIX}{host.name}",
                "region": host.region,
                "type": host.plan,
                "image": host.os_image,
                "root_pass": random_password(),
                "stackscript_id": script["id"],
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

        label = instance.get("label", "").removeprefix(LABEL_PREFIX)
        async for script in paginate(self._client.stackscripts):
            if script.get("mine", True) and script.get("label") == label:
                await self._client.delete_stackscript(script["id"])
                log.debug("Deleted stackscript {id}", id=script["id"])
                break

    async def list(self, filter: ListFilter) -> list[ProvisionedHost]:
        tag = filter.filter or EXIT_NODE_TAG
        instances = await collect(self._client.instances)
        return [_to_host(i) for i in instances if tag in (i.get("tags") or [])]

    async def close(self) -> None:
        await self._client.close()

"""Civo adapter over the v2 REST API.

An instance is the only resource created; its ID is the provider's
instance ID. Civo reports states in upper case (``BUILD``, ``ACTIVE``),
which are lower-cased before mapping.
"""

from __future__ import annotations

from typing import Any

from exitnode.api.model import HostDeleteRequest, HostDescriptor, ListFilter, ProvisionedHost
from exitnode.credentials import resolve_secret
from exitnode.infra.http import BearerAuth, HttpClient
from exitnode.observability.logger import logger
from exitnode.providers.common import EXIT_NODE_TAG, map_status
from exitnode.providers.lookup import collect, resolve_delete_target

from .client import CivoClient
from .config import Civo

log = logger.bind(provider="civo")

STATUS_MAP = {
    "build": "creating",
    "building": "creating",
    "active": "active",
    "failed": "error",
    "error": "error",
}

PAGE_SIZE = 100


def _to_host(instance: dict[str, Any]) -> ProvisionedHost:
    ip = instance.get("public_ip") or ""
    status = map_status(STATUS_MAP, (instance.get("status") or "").lower())
    if status == "active" and not ip:
        status = "initializing"
    return ProvisionedHost(id=instance["id"], status=status, ip=ip)


class CivoProvider:
    name = "civo"

    def __init__(self, config: Civo, client: CivoClient) -> None:
        self._config = config
        self._client = client

    @classmethod
    async def create(cls, config: Civo) -> CivoProvider:
        key = resolve_secret(config.api_key, config.api_key_file, "CIVO_TOKEN", what="Civo API key")
        http = HttpClient(
            config.api_url,
            BearerAuth(key),
            timeout=config.request_timeout,
            default_headers={"User-Agent": "exitnode"},
        )
        return cls(config, CivoClient(http))

    async def provision(self, host: HostDescriptor) -> ProvisionedHost:
        body = {
            "hostname": host.name,
            "size": host.plan,
            "region": host.region,
            "template_id": host.os_image,
            "public_ip": "create",
            "initial_user": self._config.initial_user,
            "script": host.boot_script,
            "tags": EXIT_NODE_TAG,
        }
        log.info("Creating instance {name} ({size}) in {region}", name=host.name, size=host.plan, region=host.region)
        instance = await self._client.create_instance(body)
        log.info("Instance {id} accepted", id=instance["id"])
        return _to_host(instance) if instance.get("status") else ProvisionedHost(id=instance["id"], status="creating")

    async def status(self, host_id: str) -> ProvisionedHost:
        return _to_host(await self._client.get_instance(host_id))

    async def delete(self, request: HostDeleteRequest) -> None:
        host_id = await resolve_delete_target(self, request)
        log.info("Deleting instance {id}", id=host_id)
        await self._client.delete_instance(host_id)

    async def list(self, filter: ListFilter) -> list[ProvisionedHost]:
        tag = filter.filter or EXIT_NODE_TAG

        async def page(token: str) -> tuple[list[dict[str, Any]], str]:
            number = int(token or 1)
            data = await self._client.list_instances(tag, number, PAGE_SIZE)
            last = int(data.get("pages") or 1)
            return data.get("items", []), str(number + 1) if number < last else ""

        return [_to_host(item) for item in await collect(page)]

    async def close(self) -> None:
        await self._client.close()

"""Equinix Metal adapter over the REST API.

Devices are billed hourly and tagged ``inlets``. Every device belongs to
a project, so a project ID is required to create or list them. A
two-letter region is treated as a metro, anything longer as a facility.
"""

from __future__ import annotations

from typing import Any

from exitnode.api.model import HostDeleteRequest, HostDescriptor, ListFilter, ProvisionedHost
from exitnode.core.exceptions import ConfigurationError
from exitnode.credentials import resolve_secret
from exitnode.infra.http import HeaderTokenAuth, HttpClient
from exitnode.observability.logger import logger
from exitnode.providers.common import EXIT_NODE_LABEL_KEY, map_status
from exitnode.providers.lookup import collect, resolve_delete_target

from .client import EquinixClient
from .config import EquinixMetal

log = logger.bind(provider="equinix")

STATUS_MAP = {
    "queued": "creating",
    "provisioning": "creating",
    "active": "active",
    "failed": "error",
}

DEVICE_TAG = EXIT_NODE_LABEL_KEY
PAGE_SIZE = 100


def _public_ipv4(device: dict[str, Any]) -> str:
    for address in device.get("ip_addresses", []):
        if address.get("public") and address.get("address_family") == 4:
            return address.get("address", "")
    return ""


def _to_host(device: dict[str, Any]) -> ProvisionedHost:
    ip = _public_ipv4(device)
    status = map_status(STATUS_MAP, device.get("state", ""))
    if status == "active" and not ip:
        status = "initializing"
    return ProvisionedHost(id=device["id"], status=status, ip=ip)


class EquinixProvider:
    name = "equinix"

    def __init__(self, config: EquinixMetal, client: EquinixClient) -> None:
        self._config = config
        self._client = client

    @classmethod
    async def create(cls, config: EquinixMetal) -> EquinixProvider:
        token = resolve_secret(config.token, config.token_file, "METAL_AUTH_TOKEN", what="Equinix Metal token")
        http = HttpClient(config.api_url, HeaderTokenAuth("X-Auth-Token", token), timeout=config.request_timeout)
        return cls(config, EquinixClient(http))

    def _project(self, override: str = "") -> str:
        project = override or self._config.project_id
        if not project:
            raise ConfigurationError("equinix: a project_id is required")
        return project

    async def provision(self, host: HostDescriptor) -> ProvisionedHost:
        project = self._project(host.tag("project_id"))
        body: dict[str, Any] = {
            "hostname": host.name,
            "plan": host.plan,
            "operating_system": host.os_image,
            "billing_cycle": self._config.billing_cycle,
            "spot_instance": False,
            "userdata": host.boot_script,
            "tags": [DEVICE_TAG],
        }
        if len(host.region) == 2:
            body["metro"] = host.region
        else:
            body["facility"] = [host.region]

        log.info("Creating device {name} ({plan}) in {region}", name=host.name, plan=host.plan, region=host.region)
        device = await self._client.create_device(project, body)
        return ProvisionedHost(id=device["id"], status="creating")

    async def status(self, host_id: str) -> ProvisionedHost:
        return _to_host(await self._client.get_device(host_id))

    async def delete(self, request: HostDeleteRequest) -> None:
        host_id = await resolve_delete_target(
            self, request, ListFilter(filter=DEVICE_TAG, project_id=request.project_id),
        )
        log.info("Deleting device {id}", id=host_id)
        await self._client.delete_device(host_id)

    async def list(self, filter: ListFilter) -> list[ProvisionedHost]:
        project = self._project(filter.project_id)
        tag = filter.filter or DEVICE_TAG

        async def page(token: str) -> tuple[list[dict[str, Any]], str]:
            number = int(token or 1)
            data = await self._client.list_devices(project, tag, number, PAGE_SIZE)
            meta = data.get("meta") or {}
            return data.get("devices", []), str(number + 1) if meta.get("next") else ""

        return [_to_host(device) for device in await collect(page) if tag in device.get("tags", [])]

    async def close(self) -> None:
        await self._client.close()

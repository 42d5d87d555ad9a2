"""Scaleway adapter over the Instance REST API.

Host IDs are composite: ``server_id|zone``. Provisioning creates a stopped
server with a dynamic public IP, uploads the boot script as its
``cloud-init`` user data and asks for ``poweron`` without waiting for it;
the lifecycle poll covers the boot. If the user data or power-on step
fails, the server and its volumes are removed again.

A server must be stopped before it can be deleted, it rejects actions
while starting or stopping, and its volumes outlive it. Delete waits out
a transition, powers off a running server and waits for it to stop, then
deletes the server and each volume it had attached.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any

from tenacity import AsyncRetrying, RetryError, retry_if_result, stop_after_delay, wait_fixed

from exitnode.api.model import HostDeleteRequest, HostDescriptor, ListFilter, ProvisionedHost
from exitnode.core.exceptions import ConfigurationError, ProviderAPIError
from exitnode.credentials import resolve_secret
from exitnode.infra.http import HeaderTokenAuth, HttpClient
from exitnode.observability.logger import logger
from exitnode.providers.common import EXIT_NODE_TAG, Rollback, map_status
from exitnode.providers.ids import SCALEWAY_ID
from exitnode.providers.lookup import collect, resolve_delete_target

from .client import ScalewayClient
from .config import Scaleway

log = logger.bind(provider="scaleway")

STATUS_MAP = {
    "stopped": "creating",
    "stopped in place": "creating",
    "starting": "initializing",
    "running": "active",
    "stopping": "error",
    "locked": "error",
}

TRANSIENT_STATES = frozenset({"starting", "stopping"})
POWERED_STATES = frozenset({"running", "stopped in place"})

PAGE_SIZE = 50

_UUID = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$")


def _public_ip(server: dict[str, Any]) -> str:
    public = server.get("public_ip") or {}
    return public.get("address") or ""


def _to_host(server: dict[str, Any], zone: str) -> ProvisionedHost:
    ip = _public_ip(server)
    status = map_status(STATUS_MAP, server.get("state", ""))
    if status == "active" and not ip:
        status = "initializing"
    return ProvisionedHost(id=SCALEWAY_ID.encode(server=server["id"], zone=zone), status=status, ip=ip)


class ScalewayProvider:
    name = "scaleway"

    def __init__(self, config: Scaleway, client: ScalewayClient) -> None:
        self._config = config
        self._client = client

    @classmethod
    async def create(cls, config: Scaleway) -> ScalewayProvider:
        secret = resolve_secret(
            config.secret_key, config.secret_key_file, "SCW_SECRET_KEY", what="Scaleway secret key",
        )
        http = HttpClient(
            config.api_url,
            HeaderTokenAuth("X-Auth-Token", secret),
            timeout=config.request_timeout,
        )
        if config.access_key:
            log.debug("Using Scaleway access key {key}", key=config.access_key)
        return cls(config, ScalewayClient(http))

    def _project(self) -> str:
        return resolve_secret(
            self._config.organization_id, None, "SCW_DEFAULT_PROJECT_ID",
            required=False, what="Scaleway project id",
        )

    # ─── Provision ──────────────────────────────────────────────────

    async def _image(self, zone: str, os_image: str) -> str:
        if _UUID.match(os_image):
            return os_image
        label = os_image.replace("-", "_")
        image_id = await self._client.find_image(zone, label)
        if not image_id:
            raise ConfigurationError(f"scaleway: no image labelled {label!r} in {zone}")
        return image_id

    async def provision(self, host: HostDescriptor) -> ProvisionedHost:
        zone = host.zone or host.region or self._config.zone
        body: dict[str, Any] = {
            "name": host.name,
            "commercial_type": host.plan,
            "image": await self._image(zone, host.os_image),
            "dynamic_ip_required": True,
            "tags": [EXIT_NODE_TAG],
        }
        if project := self._project():
            body["project"] = project

        log.info("Creating server {name} ({plan}) in {zone}", name=host.name, plan=host.plan, zone=zone)
        async with Rollback(log) as undo:
            server = await self._client.create_server(zone, body)
            undo.push(f"server {server['id']}", lambda: self._remove(zone, server))

            await self._client.set_user_data(zone, server["id"], "cloud-init", host.boot_script)
            await self._client.server_action(zone, server["id"], "poweron")

        log.info("Server {id} is powering on", id=server["id"])
        return ProvisionedHost(id=SCALEWAY_ID.encode(server=server["id"], zone=zone), status="creating")

    # ─── Status ─────────────────────────────────────────────────────

    async def status(self, host_id: str) -> ProvisionedHost:
        fields = SCALEWAY_ID.decode(host_id)
        server = await self._client.get_server(fields["zone"], fields["server"])
        return _to_host(server, fields["zone"])

    # ─── Delete ─────────────────────────────────────────────────────

    async def delete(self, request: HostDeleteRequest) -> None:
        host_id = await resolve_delete_target(self, request)
        fields = SCALEWAY_ID.decode(host_id)
        zone = request.zone or fields["zone"]

        server = await self._client.get_server(zone, fields["server"])
        state = server.get("state", "")
        if state in TRANSIENT_STATES:
            log.info("Server {id} is {state}, waiting for it to settle", id=server["id"], state=state)
            state = await self._wait_state(zone, server["id"], lambda s: s not in TRANSIENT_STATES, "settle")
        if state in POWERED_STATES:
            log.info("Powering off server {id}", id=server["id"])
            await self._client.server_action(zone, server["id"], "poweroff")
            await self._wait_state(zone, server["id"], lambda s: s == "stopped", "poweroff")
        await self._remove(zone, server)

    async def _wait_state(self, zone: str, server_id: str, done: Callable[[str], bool], operation: str) -> str:
        async def state() -> str:
            return (await self._client.get_server(zone, server_id)).get("state", "")

        retrying = AsyncRetrying(
            stop=stop_after_delay(self._config.poweroff_timeout),
            wait=wait_fixed(self._config.poll_interval),
            retry=retry_if_result(lambda s: not done(s)),
        )
        try:
            return await retrying(state)
        except RetryError as e:
            raise ProviderAPIError(
                "scaleway", operation, server_id,
                detail=f"still {e.last_attempt.result()} after {self._config.poweroff_timeout:.0f}s",
            ) from e

    async def _remove(self, zone: str, server: dict[str, Any]) -> None:
        await self._client.delete_server(zone, server["id"])
        volumes = server.get("volumes") or {}
        for volume in volumes.values():
            log.debug("Deleting volume {id}", id=volume["id"])
            await self._client.delete_volume(zone, volume["id"])
        log.info("Deleted server {id}", id=server["id"])

    # ─── List ───────────────────────────────────────────────────────

    async def list(self, filter: ListFilter) -> list[ProvisionedHost]:
        zone = filter.zone or self._config.zone
        tag = filter.filter or EXIT_NODE_TAG

        async def page(token: str) -> tuple[list[dict[str, Any]], str]:
            number = int(token or 1)
            servers = await self._client.list_servers(zone, tag, number, PAGE_SIZE)
            return servers, str(number + 1) if len(servers) == PAGE_SIZE else ""

        return [_to_host(server, zone) for server in await collect(page)]

    async def close(self) -> None:
        await self._client.close()

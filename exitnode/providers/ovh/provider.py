"""OVHcloud Public Cloud adapter backed by the ovh client.

Host IDs are composite: ``instance_id|project``. Flavor and image are
resolved by name within the target region. OVH instances cannot be
tagged, so there is no List and no delete by IP.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any

from exitnode.api.model import HostDeleteRequest, HostDescriptor, ListFilter, ProvisionedHost
from exitnode.core.exceptions import ConfigurationError, NotFoundError, ProviderAPIError, ProviderError
from exitnode.credentials import resolve_secret
from exitnode.observability.logger import logger
from exitnode.providers.common import BlockingClientMixin, make_pool, map_status
from exitnode.providers.ids import OVH_ID
from exitnode.providers.lookup import resolve_delete_target

from .config import OVH

log = logger.bind(provider="ovh")

STATUS_MAP = {
    "BUILD": "creating",
    "BUILDING": "creating",
    "ACTIVE": "active",
    "ERROR": "error",
}


def _translate(e: Exception, operation: str, resource: str = "") -> ProviderError:
    from ovh.exceptions import ResourceNotFoundError  # type: ignore[reportMissingImports]

    if isinstance(e, ResourceNotFoundError):
        return NotFoundError("ovh", operation, resource, detail="not found")
    return ProviderAPIError("ovh", operation, resource, detail=str(e))


def _public_ipv4(instance: dict[str, Any]) -> str:
    for address in instance.get("ipAddresses", []):
        if address.get("type") == "public" and address.get("version") == 4:
            return address.get("ip", "")
    return ""


def _by_name(items: list[dict[str, Any]], name: str) -> str:
    for item in items:
        if name in (item.get("name"), item.get("id")):
            return item["id"]
    return ""


class OVHProvider(BlockingClientMixin):
    name = "ovh"

    def __init__(self, config: OVH, client: Any, thread_pool: ThreadPoolExecutor) -> None:
        self._config = config
        self._client = client
        self._pool = thread_pool

    @classmethod
    async def create(cls, config: OVH) -> OVHProvider:
        import ovh  # type: ignore[reportMissingImports]

        client = ovh.Client(
            endpoint=config.endpoint,
            application_key=resolve_secret(
                config.application_key, None, "OVH_APPLICATION_KEY", what="OVH application key",
            ),
            application_secret=resolve_secret(
                config.application_secret, config.application_secret_file, "OVH_APPLICATION_SECRET",
                what="OVH application secret",
            ),
            consumer_key=resolve_secret(
                config.consumer_key, None, "OVH_CONSUMER_KEY", what="OVH consumer key",
            ),
            timeout=config.request_timeout,
        )
        return cls(config, client, make_pool("ovh", config.thread_pool_size))

    def _project(self, override: str = "") -> str:
        project = override or self._config.project_id
        if not project:
            raise ConfigurationError("ovh: a project_id is required")
        return project

    async def _call(self, method: str, path: str, operation: str, resource: str, **params: Any) -> Any:
        try:
            return await self._run(getattr(self._client, method), path, **params)
        except Exception as e:
            raise _translate(e, operation, resource) from e

    async def provision(self, host: HostDescriptor) -> ProvisionedHost:
        project = self._project(host.tag("project_id"))
        base = f"/cloud/project/{project}"

        flavors = await self._call("get", f"{base}/flavor", "list flavors", host.region, region=host.region)
        flavor_id = _by_name(flavors, host.plan)
        if not flavor_id:
            raise ConfigurationError(f"ovh: flavor {host.plan!r} not available in {host.region}")

        images = await self._call("get", f"{base}/image", "list images", host.region, region=host.region)
        image_id = _by_name(images, host.os_image)
        if not image_id:
            raise ConfigurationError(f"ovh: image {host.os_image!r} not available in {host.region}")

        log.info("Creating instance {name} ({plan}) in {region}", name=host.name, plan=host.plan, region=host.region)
        instance = await self._call(
            "post",
            f"{base}/instance",
            "create instance",
            host.name,
            name=host.name,
            flavorId=flavor_id,
            imageId=image_id,
            region=host.region,
            userData=host.boot_script,
        )
        return ProvisionedHost(id=OVH_ID.encode(instance=instance["id"], project=project), status="creating")

    async def status(self, host_id: str) -> ProvisionedHost:
        fields = OVH_ID.decode(host_id)
        instance = await self._call(
            "get",
            f"/cloud/project/{fields['project']}/instance/{fields['instance']}",
            "get instance",
            fields["instance"],
        )
        ip = _public_ipv4(instance)
        status = map_status(STATUS_MAP, instance.get("status", ""))
        if status == "active" and not ip:
            status = "initializing"
        return ProvisionedHost(id=host_id, status=status, ip=ip)

    async def delete(self, request: HostDeleteRequest) -> None:
        fields = OVH_ID.decode(await resolve_delete_target(self, request))
        project = request.project_id or fields["project"]
        log.info("Deleting instance {id}", id=fields["instance"])
        await self._call(
            "delete",
            f"/cloud/project/{project}/instance/{fields['instance']}",
            "delete instance",
            fields["instance"],
        )

    async def list(self, filter: ListFilter) -> list[ProvisionedHost]:
        raise ConfigurationError("ovh: listing exit nodes is not supported, delete by --id instead")

"""Azure adapter: one resource group and one ARM deployment per host.

Host IDs are composite: ``resource_group|deployment``. The resource group
``inlets-<name>`` is tagged ``inlets=exit-node`` plus the deployment name,
which is what List uses to find hosts again. Everything a host needs lives
inside its group, so Delete removes the group and waits for it to go;
a failed deployment submission removes the group the same way.
"""

from __future__ import annotations

import json
import os
import uuid
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

from exitnode.api.model import HostDeleteRequest, HostDescriptor, ListFilter, ProvisionedHost
from exitnode.core.exceptions import ConfigurationError, NotFoundError, ProviderAPIError, ProviderError
from exitnode.observability.logger import logger
from exitnode.providers.common import (
    EXIT_NODE_LABEL_KEY,
    EXIT_NODE_LABEL_VALUE,
    BlockingClientMixin,
    Rollback,
    make_pool,
    map_status,
    random_password,
)
from exitnode.providers.ids import AZURE_ID
from exitnode.providers.lookup import collect, resolve_delete_target

from .config import Azure
from .template import build_parameters, build_template

log = logger.bind(provider="azure")

STATUS_MAP = {
    "Accepted": "creating",
    "Created": "creating",
    "Creating": "creating",
    "Running": "creating",
    "Ready": "creating",
    "Succeeded": "active",
    "Failed": "error",
    "Canceled": "error",
}

DEPLOYMENT_TAG = "inlets-deployment"
LIST_FILTER = f"tagName eq '{EXIT_NODE_LABEL_KEY}' and tagValue eq '{EXIT_NODE_LABEL_VALUE}'"


def _translate(e: Exception, operation: str, resource: str = "") -> ProviderError:
    from azure.core.exceptions import ResourceNotFoundError  # type: ignore[reportMissingImports]

    if isinstance(e, ResourceNotFoundError):
        return NotFoundError("azure", operation, resource, detail="not found")
    return ProviderAPIError("azure", operation, resource, detail=str(e))


def _public_ip(deployment: Any) -> str:
    outputs = getattr(deployment.properties, "outputs", None) or {}
    return str(outputs.get("publicIP", {}).get("value") or "")


def _read_auth_file(path: str) -> dict[str, str]:
    file = Path(path).expanduser()
    try:
        return json.loads(file.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"cannot read Azure auth file {file}: {e}") from e


def _credential(config: Azure) -> tuple[Any, str]:
    from azure.identity import ClientSecretCredential, DefaultAzureCredential  # type: ignore[reportMissingImports]

    subscription = config.subscription_id or os.environ.get("AZURE_SUBSCRIPTION_ID", "")
    auth_file = config.auth_file or os.environ.get("AZURE_AUTH_LOCATION")
    if auth_file:
        auth = _read_auth_file(auth_file)
        credential = ClientSecretCredential(
            tenant_id=auth["tenantId"],
            client_id=auth["clientId"],
            client_secret=auth["clientSecret"],
        )
        subscription = subscription or auth.get("subscriptionId", "")
    elif config.tenant_id and config.client_id and config.client_secret:
        credential = ClientSecretCredential(
            tenant_id=config.tenant_id,
            client_id=config.client_id,
            client_secret=config.client_secret,
        )
    else:
        credential = DefaultAzureCredential()

    if not subscription:
        raise ConfigurationError("azure: subscription_id is required")
    return credential, subscription


class AzureProvider(BlockingClientMixin):
    name = "azure"

    def __init__(self, config: Azure, client: Any, thread_pool: ThreadPoolExecutor) -> None:
        self._config = config
        self._client = client
        self._pool = thread_pool

    @classmethod
    async def create(cls, config: Azure) -> AzureProvider:
        from azure.mgmt.resource import ResourceManagementClient  # type: ignore[reportMissingImports]

        credential, subscription = _credential(config)
        client = ResourceManagementClient(
            credential,
            subscription,
            connection_timeout=config.request_timeout,
            read_timeout=config.request_timeout,
        )
        log.debug("Azure client ready for subscription {sub}", sub=subscription)
        return cls(config, client, make_pool("azure", config.thread_pool_size))

    # ─── Provision ──────────────────────────────────────────────────

    async def provision(self, host: HostDescriptor) -> ProvisionedHost:
        from azure.mgmt.resource.resources.models import (  # type: ignore[reportMissingImports]
            Deployment,
            DeploymentProperties,
            ResourceGroup,
        )

        if not host.region:
            raise ConfigurationError("azure: a region (location) is required")
        group = f"inlets-{host.name}"
        deployment = f"inlets-deploy-{uuid.uuid4()}"

        try:
            exists = await self._run(self._client.resource_groups.check_existence, group)
        except Exception as e:
            raise _translate(e, "check resource group", group) from e
        if exists:
            raise ConfigurationError(
                f"azure: resource group {group} already exists; pick another host name or delete it first"
            )

        async with Rollback(log) as undo:
            log.info("Creating resource group {group} in {region}", group=group, region=host.region)
            try:
                await self._run(
                    self._client.resource_groups.create_or_update,
                    group,
                    ResourceGroup(
                        location=host.region,
                        tags={EXIT_NODE_LABEL_KEY: EXIT_NODE_LABEL_VALUE, DEPLOYMENT_TAG: deployment},
                    ),
                )
            except Exception as e:
                raise _translate(e, "create resource group", group) from e
            undo.push(f"resource group {group}", lambda: self._delete_group(group))

            log.info("Submitting deployment {name}", name=deployment)
            try:
                await self._run(
                    self._client.deployments.begin_create_or_update,
                    group,
                    deployment,
                    Deployment(
                        properties=DeploymentProperties(
                            mode="Complete",
                            template=build_template(host),
                            parameters=build_parameters(host, random_password()),
                        ),
                    ),
                )
            except Exception as e:
                raise _translate(e, "create deployment", deployment) from e

        return ProvisionedHost(
            id=AZURE_ID.encode(resource_group=group, deployment=deployment),
            status="creating",
        )

    # ─── Status ─────────────────────────────────────────────────────

    async def status(self, host_id: str) -> ProvisionedHost:
        fields = AZURE_ID.decode(host_id)
        return await self._deployment_host(fields["resource_group"], fields["deployment"])

    async def _deployment_host(self, group: str, deployment: str) -> ProvisionedHost:
        try:
            result = await self._run(self._client.deployments.get, group, deployment)
        except Exception as e:
            raise _translate(e, "get deployment", f"{group}/{deployment}") from e

        state = str(getattr(result.properties, "provisioning_state", "") or "")
        status = map_status(STATUS_MAP, state)
        ip = _public_ip(result) if status == "active" else ""
        if status == "active" and not ip:
            status = "initializing"
        return ProvisionedHost(
            id=AZURE_ID.encode(resource_group=group, deployment=deployment),
            status=status,
            ip=ip,
        )

    # ─── Delete ─────────────────────────────────────────────────────

    async def delete(self, request: HostDeleteRequest) -> None:
        host_id = await resolve_delete_target(self, request)
        await self._delete_group(AZURE_ID.decode(host_id)["resource_group"])

    async def _delete_group(self, group: str) -> None:
        log.info("Deleting resource group {group}, this can take several minutes", group=group)
        try:
            poller = await self._run(self._client.resource_groups.begin_delete, group)
            await self._run(poller.result, timeout=self._config.deployment_timeout)
        except Exception as e:
            raise _translate(e, "delete resource group", group) from e
        log.info("Deleted resource group {group}", group=group)

    # ─── List ───────────────────────────────────────────────────────

    async def list(self, filter: ListFilter) -> list[ProvisionedHost]:
        expression = filter.filter or LIST_FILTER

        def _page(token: str) -> tuple[list[Any], str]:
            pages = self._client.resource_groups.list(filter=expression).by_page(
                continuation_token=token or None,
            )
            items = list(next(pages, []))
            return items, pages.continuation_token or ""

        async def page(token: str) -> tuple[list[Any], str]:
            try:
                return await self._run(_page, token)
            except Exception as e:
                raise _translate(e, "list resource groups", expression) from e

        hosts = []
        for group in await collect(page):
            deployment = (group.tags or {}).get(DEPLOYMENT_TAG)
            if not deployment:
                log.debug("Skipping group {name} without deployment tag", name=group.name)
                continue
            try:
                hosts.append(await self._deployment_host(group.name, deployment))
            except NotFoundError:
                log.debug("Deployment {d} in {g} is gone", d=deployment, g=group.name)
        return hosts

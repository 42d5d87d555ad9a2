"""Google Compute Engine adapter.

Uses the sync google-cloud-compute clients dispatched to a dedicated
thread pool. Host IDs are composite: ``instance|zone|project``.

Provision makes sure an ingress firewall rule (``firewall_name`` tag,
default ``inlets``) opens the control port, 80 and 443 to instances tagged
``inlets``, or every TCP port for ``pro`` hosts. An existing rule is updated
in place; a rule created by this call is removed again if the instance
insert fails. The rule is shared between hosts and survives Delete.
"""

from __future__ import annotations

import json
import os
from collections.abc import Callable
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
    control_ports,
    make_pool,
    map_status,
)
from exitnode.providers.ids import GCE_ID
from exitnode.providers.lookup import collect, resolve_id

from .config import GCE

log = logger.bind(provider="gce")

STATUS_MAP = {
    "PROVISIONING": "creating",
    "STAGING": "creating",
    "RUNNING": "active",
    "STOPPING": "error",
    "SUSPENDING": "error",
    "SUSPENDED": "error",
    "TERMINATED": "error",
}

NETWORK_TAG = "inlets"
LIST_FILTER = f"labels.{EXIT_NODE_LABEL_KEY}={EXIT_NODE_LABEL_VALUE}"
TEMPORARY_PRO_PLAN = "e2-micro"


def _translate(e: Exception, operation: str, resource: str = "") -> ProviderError:
    from google.api_core import exceptions as gexc  # type: ignore[reportMissingImports]

    if isinstance(e, gexc.NotFound):
        return NotFoundError("gce", operation, resource, detail="not found")
    return ProviderAPIError("gce", operation, resource, detail=str(e))


def _extract_external_ip(instance: object) -> str:
    for iface in getattr(instance, "network_interfaces", None) or []:
        for config in getattr(iface, "access_configs", None) or []:
            if ip := getattr(config, "nat_i_p", None):
                return str(ip)
    return ""


def _first_page(pager: Any) -> tuple[list[Any], str]:
    page = next(iter(pager.pages))
    return list(page.items), page.next_page_token


def _load_credentials(config: GCE) -> tuple[Any, str | None]:
    """Return (credentials, project from the key) or (None, None) for ADC."""
    raw = config.credentials_json
    if not raw and config.credentials_file:
        path = Path(config.credentials_file).expanduser()
        try:
            raw = path.read_text()
        except OSError as e:
            raise ConfigurationError(f"cannot read GCE credentials {path}: {e}") from e
    if not raw:
        return None, None

    from google.oauth2 import service_account  # type: ignore[reportMissingImports]

    try:
        info = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"GCE credentials are not valid JSON: {e}") from e
    credentials = service_account.Credentials.from_service_account_info(info)
    return credentials, info.get("project_id")


def _resolve_project(explicit: str | None, from_key: str | None) -> str:
    """Resolve GCP project: explicit > key file > env > ADC."""
    if project := explicit or from_key or os.environ.get("GOOGLE_CLOUD_PROJECT"):
        return project

    import google.auth  # type: ignore[reportMissingImports]
    from google.auth.exceptions import DefaultCredentialsError  # type: ignore[reportMissingImports]

    try:
        _, project = google.auth.default()
    except DefaultCredentialsError as e:
        raise ConfigurationError(f"no GCE credentials found: {e}") from e
    if not project:
        raise ConfigurationError(
            "no GCP project found: set project, use a service-account key "
            "or set GOOGLE_CLOUD_PROJECT"
        )
    return project


class GCEProvider(BlockingClientMixin):
    """Stateless GCE adapter. Holds only immutable config and sync clients."""

    name = "gce"

    def __init__(
        self,
        config: GCE,
        instances_client: Any,
        firewalls_client: Any,
        project: str,
        thread_pool: ThreadPoolExecutor,
    ) -> None:
        self._config = config
        self._instances = instances_client
        self._firewalls = firewalls_client
        self._project = project
        self._pool = thread_pool

    @classmethod
    async def create(cls, config: GCE) -> GCEProvider:
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        credentials, key_project = _load_credentials(config)
        project = _resolve_project(config.project, key_project)
        log.info("Resolved GCP project: {project}", project=project)

        return cls(
            config=config,
            instances_client=compute_v1.InstancesClient(credentials=credentials),
            firewalls_client=compute_v1.FirewallsClient(credentials=credentials),
            project=project,
            thread_pool=make_pool("gce", config.thread_pool_size),
        )

    async def _call[T](self, fn: Callable[..., T], operation: str, resource: str, **kwargs: Any) -> T:
        try:
            return await self._run(fn, timeout=self._config.request_timeout, **kwargs)
        except Exception as e:
            raise _translate(e, operation, resource) from e

    async def _wait(self, op: Any, operation: str, resource: str) -> None:
        try:
            await self._run(op.result, timeout=self._config.operation_timeout)
        except Exception as e:
            raise _translate(e, operation, resource) from e

    # ─── Provision ──────────────────────────────────────────────────

    async def provision(self, host: HostDescriptor) -> ProvisionedHost:
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        project = host.tag("project_id", self._project)
        zone = host.zone or self._config.zone
        plan = host.plan
        if host.flag("pro") and host.flag("tmp"):
            plan = TEMPORARY_PRO_PLAN

        async with Rollback(log) as undo:
            rule = host.tag("firewall_name", "inlets")
            if await self._ensure_firewall(project, rule, host):
                undo.push(f"firewall rule {rule}", lambda: self._delete_firewall(project, rule))

            instance = compute_v1.Instance(
                name=host.name,
                description="Exit node created by exitnode",
                machine_type=f"zones/{zone}/machineTypes/{plan}",
                can_ip_forward=True,
                disks=[
                    compute_v1.AttachedDisk(
                        auto_delete=True,
                        boot=True,
                        device_name=host.name,
                        mode="READ_WRITE",
                        type_="PERSISTENT",
                        initialize_params=compute_v1.AttachedDiskInitializeParams(
                            disk_name=host.name,
                            disk_size_gb=self._config.disk_size_gb,
                            source_image=host.os_image,
                        ),
                    ),
                ],
                metadata=compute_v1.Metadata(
                    items=[compute_v1.Items(key="startup-script", value=host.boot_script)],
                ),
                labels={EXIT_NODE_LABEL_KEY: EXIT_NODE_LABEL_VALUE},
                tags=compute_v1.Tags(items=["http-server", "https-server", NETWORK_TAG]),
                scheduling=compute_v1.Scheduling(
                    automatic_restart=True,
                    on_host_maintenance="MIGRATE",
                    preemptible=False,
                ),
                network_interfaces=[
                    compute_v1.NetworkInterface(
                        network=f"global/networks/{self._config.network}",
                        access_configs=[
                            compute_v1.AccessConfig(type_="ONE_TO_ONE_NAT", name="External NAT"),
                        ],
                    ),
                ],
            )

            log.info("Inserting instance {name} ({plan}) in {zone}/{project}",
                     name=host.name, plan=plan, zone=zone, project=project)
            await self._call(
                self._instances.insert,
                "insert instance",
                host.name,
                request=compute_v1.InsertInstanceRequest(
                    project=project, zone=zone, instance_resource=instance,
                ),
            )

        return ProvisionedHost(
            id=GCE_ID.encode(instance=host.name, zone=zone, project=project),
            status="creating",
        )

    async def _ensure_firewall(self, project: str, rule_name: str, host: HostDescriptor) -> bool:
        """Create or update the ingress rule; True if it was created by this call."""
        from google.api_core import exceptions as gexc  # type: ignore[reportMissingImports]
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        if host.flag("pro"):
            allowed = [compute_v1.Allowed(I_p_protocol="tcp")]
        else:
            ports = [str(p) for p in control_ports(host.tags)]
            allowed = [compute_v1.Allowed(I_p_protocol="tcp", ports=ports)]

        firewall = compute_v1.Firewall(
            name=rule_name,
            description="Firewall rule created by exitnode",
            network=f"projects/{project}/global/networks/{self._config.network}",
            allowed=allowed,
            source_ranges=["0.0.0.0/0"],
            direction="INGRESS",
            target_tags=[NETWORK_TAG],
        )

        try:
            await self._run(
                self._firewalls.get,
                request=compute_v1.GetFirewallRequest(project=project, firewall=rule_name),
                timeout=self._config.request_timeout,
            )
            exists = True
        except gexc.NotFound:
            exists = False
        except Exception as e:
            raise _translate(e, "get firewall rule", rule_name) from e

        if exists:
            log.info("Firewall rule {name} exists, updating", name=rule_name)
            op = await self._call(
                self._firewalls.update,
                "update firewall rule",
                rule_name,
                request=compute_v1.UpdateFirewallRequest(
                    project=project, firewall=rule_name, firewall_resource=firewall,
                ),
            )
        else:
            log.info("Creating firewall rule {name}", name=rule_name)
            op = await self._call(
                self._firewalls.insert,
                "insert firewall rule",
                rule_name,
                request=compute_v1.InsertFirewallRequest(project=project, firewall_resource=firewall),
            )
        await self._wait(op, "apply firewall rule", rule_name)
        return not exists

    async def _delete_firewall(self, project: str, rule_name: str) -> None:
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        op = await self._call(
            self._firewalls.delete,
            "delete firewall rule",
            rule_name,
            request=compute_v1.DeleteFirewallRequest(project=project, firewall=rule_name),
        )
        await self._wait(op, "delete firewall rule", rule_name)

    # ─── Status ─────────────────────────────────────────────────────

    async def status(self, host_id: str) -> ProvisionedHost:
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        fields = GCE_ID.decode(host_id)
        instance = await self._call(
            self._instances.get,
            "get instance",
            host_id,
            request=compute_v1.GetInstanceRequest(
                project=fields["project"], zone=fields["zone"], instance=fields["instance"],
            ),
        )
        ip = _extract_external_ip(instance)
        status = map_status(STATUS_MAP, str(instance.status))
        if status == "active" and not ip:
            status = "initializing"
        return ProvisionedHost(id=host_id, status=status, ip=ip)

    # ─── Delete ─────────────────────────────────────────────────────

    async def delete(self, request: HostDeleteRequest) -> None:
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        if request.id:
            host_id = request.id
        else:
            scope = ListFilter(
                filter=LIST_FILTER,
                project_id=request.project_id or self._project,
                zone=request.zone or self._config.zone,
            )
            host_id = await resolve_id(self, request.ip, scope)

        fields = GCE_ID.decode(host_id)
        project = request.project_id or fields["project"]
        zone = request.zone or fields["zone"]

        log.info("Deleting instance {name} in {zone}/{project}",
                 name=fields["instance"], zone=zone, project=project)
        op = await self._call(
            self._instances.delete,
            "delete instance",
            host_id,
            request=compute_v1.DeleteInstanceRequest(
                project=project, zone=zone, instance=fields["instance"],
            ),
        )
        await self._wait(op, "delete instance", host_id)

    # ─── List ───────────────────────────────────────────────────────

    async def list(self, filter: ListFilter) -> list[ProvisionedHost]:
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        project = filter.project_id or self._project
        zone = filter.zone or self._config.zone
        expression = filter.filter or LIST_FILTER

        async def page(token: str) -> tuple[list[Any], str]:
            pager = await self._call(
                self._instances.list,
                "list instances",
                f"{zone}/{project}",
                request=compute_v1.ListInstancesRequest(
                    project=project, zone=zone, filter=expression, page_token=token,
                ),
            )
            try:
                return await self._run(_first_page, pager)
            except Exception as e:
                raise _translate(e, "list instances", f"{zone}/{project}") from e

        return [
            ProvisionedHost(
                id=GCE_ID.encode(instance=i.name, zone=zone, project=project),
                status=map_status(STATUS_MAP, str(i.status)),
                ip=_extract_external_ip(i),
            )
            for i in await collect(page)
        ]

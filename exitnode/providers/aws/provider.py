"""AWS EC2 adapter backed by boto3.

Provision creates a dedicated security group ``inlets-<uuid>`` opening
80, 443 and the tunnel control port (plus 1024-65535 for ``pro`` hosts),
then launches one instance with a public IP into it and tags it
``inlets=exit-node``. If the launch or tagging fails, the instance (if
any) and the security group are removed before the error propagates.

Delete terminates the instance, waits until it is gone, then removes the
security groups it was attached to.
"""

from __future__ import annotations

import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from botocore.exceptions import ClientError, WaiterError
from tenacity import retry, retry_if_exception, stop_after_delay, wait_fixed

from exitnode.api.model import HostDeleteRequest, HostDescriptor, ListFilter, ProvisionedHost
from exitnode.core.exceptions import ConfigurationError, NotFoundError, ProviderAPIError, ProviderError
from exitnode.credentials import resolve_secret
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
from exitnode.providers.lookup import collect, resolve_delete_target

from .config import EC2

log = logger.bind(provider="ec2")

STATE_MAP = {
    "pending": "creating",
    "running": "active",
    "shutting-down": "error",
    "terminated": "error",
    "stopping": "error",
    "stopped": "error",
}

PRO_PORT_RANGE = (1024, 65535)

_NOT_FOUND_CODES = frozenset({
    "InvalidInstanceID.NotFound",
    "InvalidInstanceID.Malformed",
    "InvalidGroup.NotFound",
})


def _error_code(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Code", "")


def _translate(e: Exception, operation: str, resource: str = "") -> ProviderError:
    if isinstance(e, ClientError):
        code = _error_code(e)
        if code in _NOT_FOUND_CODES:
            return NotFoundError("ec2", operation, resource, detail=code)
        return ProviderAPIError("ec2", operation, resource, detail=f"{code}: {e}")
    return ProviderAPIError("ec2", operation, resource, detail=str(e))


def _is_dependency_violation(e: BaseException) -> bool:
    return isinstance(e, ClientError) and _error_code(e) == "DependencyViolation"


def _instance_status(state: str, checks: str | None) -> str:
    """Combine the instance state with its reachability status check.

    A running instance is only active once its status check reports ``ok``;
    before the first check is recorded it is still creating.
    """
    if state != "running":
        return map_status(STATE_MAP, state)
    if checks is None:
        return "creating"
    return "active" if checks == "ok" else "initializing"


class EC2Provider(BlockingClientMixin):
    name = "ec2"

    def __init__(self, config: EC2, client: Any, thread_pool: ThreadPoolExecutor) -> None:
        self._config = config
        self._ec2 = client
        self._pool = thread_pool

    @classmethod
    async def create(cls, config: EC2) -> EC2Provider:
        import boto3  # type: ignore[reportMissingImports]
        from botocore.config import Config  # type: ignore[reportMissingImports]

        access_key = resolve_secret(
            config.access_key, config.access_key_file, "AWS_ACCESS_KEY_ID",
            required=False, what="access key",
        )
        secret_key = resolve_secret(
            config.secret_key, config.secret_key_file, "AWS_SECRET_ACCESS_KEY",
            required=bool(access_key), what="secret key",
        )
        session = boto3.Session(
            aws_access_key_id=access_key or None,
            aws_secret_access_key=secret_key or None,
            region_name=config.region,
        )
        client = session.client(
            "ec2",
            config=Config(
                connect_timeout=config.request_timeout,
                read_timeout=config.request_timeout,
            ),
        )
        log.debug("EC2 client ready in {region}", region=config.region)
        return cls(config, client, make_pool("ec2", config.thread_pool_size))

    # ─── Provision ──────────────────────────────────────────────────

    async def provision(self, host: HostDescriptor) -> ProvisionedHost:
        image_id = await self._lookup_ami(host.os_image)

        async with Rollback(log) as undo:
            group_id = await self._create_security_group(host)
            undo.push(f"security group {group_id}", lambda: self._delete_group(group_id))

            interface: dict[str, Any] = {
                "DeviceIndex": 0,
                "AssociatePublicIpAddress": True,
                "DeleteOnTermination": True,
                "Groups": [group_id],
            }
            if subnet := host.tag("subnet_id"):
                interface["SubnetId"] = subnet

            log.info("Launching {plan} instance {name} from {ami}",
                     plan=host.plan, name=host.name, ami=image_id)
            try:
                result = await self._run(
                    self._ec2.run_instances,
                    ImageId=image_id,
                    InstanceType=host.plan,
                    MinCount=1,
                    MaxCount=1,
                    UserData=host.boot_script,
                    NetworkInterfaces=[interface],
                    ClientToken=str(uuid.uuid4()),
                )
            except Exception as e:
                raise _translate(e, "run instance", host.name) from e

            instances = result.get("Instances", [])
            if not instances:
                raise ProviderAPIError("ec2", "run instance", host.name, detail="no instance returned")
            instance_id = instances[0]["InstanceId"]
            undo.push(f"instance {instance_id}", lambda: self._terminate(instance_id))

            try:
                await self._run(
                    self._ec2.create_tags,
                    Resources=[instance_id],
                    Tags=[
                        {"Key": "Name", "Value": host.name},
                        {"Key": EXIT_NODE_LABEL_KEY, "Value": EXIT_NODE_LABEL_VALUE},
                    ],
                )
            except Exception as e:
                raise _translate(e, "tag instance", instance_id) from e

        return ProvisionedHost(id=instance_id, status="creating")

    async def _lookup_ami(self, name: str) -> str:
        try:
            result = await self._run(
                self._ec2.describe_images,
                Filters=[{"Name": "name", "Values": [name]}],
            )
        except Exception as e:
            raise _translate(e, "describe images", name) from e
        images = result.get("Images", [])
        if not images:
            raise ConfigurationError(f"ec2: no AMI named {name!r} in {self._config.region}")
        return images[0]["ImageId"]

    async def _create_security_group(self, host: HostDescriptor) -> str:
        group_name = f"inlets-{uuid.uuid4()}"
        params: dict[str, Any] = {"Description": "inlets security group", "GroupName": group_name}
        if vpc := host.tag("vpc_id"):
            params["VpcId"] = vpc
        try:
            group = await self._run(self._ec2.create_security_group, **params)
        except Exception as e:
            raise _translate(e, "create security group", group_name) from e
        group_id = group["GroupId"]

        ranges = [(port, port) for port in control_ports(host.tags)]
        if host.flag("pro"):
            ranges.append(PRO_PORT_RANGE)
        try:
            await self._run(
                self._ec2.authorize_security_group_ingress,
                GroupId=group_id,
                IpPermissions=[
                    {
                        "IpProtocol": "tcp",
                        "FromPort": low,
                        "ToPort": high,
                        "IpRanges": [{"CidrIp": "0.0.0.0/0"}],
                    }
                    for low, high in ranges
                ],
            )
        except Exception as e:
            await self._delete_group(group_id)
            raise _translate(e, "authorize ingress", group_id) from e
        log.debug("Created security group {name} ({id})", name=group_name, id=group_id)
        return group_id

    # ─── Status ─────────────────────────────────────────────────────

    async def status(self, host_id: str) -> ProvisionedHost:
        instance = await self._describe(host_id)
        try:
            result = await self._run(
                self._ec2.describe_instance_status,
                InstanceIds=[host_id],
            )
        except Exception as e:
            raise _translate(e, "describe instance status", host_id) from e

        statuses = result.get("InstanceStatuses", [])
        checks = statuses[0]["InstanceStatus"]["Status"] if statuses else None
        state = instance.get("State", {}).get("Name", "")
        ip = instance.get("PublicIpAddress", "")
        status = _instance_status(state, checks)
        if status == "active" and not ip:
            status = "initializing"
        return ProvisionedHost(id=host_id, status=status, ip=ip)

    async def _describe(self, host_id: str) -> dict[str, Any]:
        try:
            result = await self._run(self._ec2.describe_instances, InstanceIds=[host_id])
        except Exception as e:
            raise _translate(e, "describe instance", host_id) from e
        for reservation in result.get("Reservations", []):
            for instance in reservation.get("Instances", []):
                return instance
        raise NotFoundError("ec2", "describe instance", host_id, detail="not found")

    # ─── Delete ─────────────────────────────────────────────────────

    async def delete(self, request: HostDeleteRequest) -> None:
        host_id = await resolve_delete_target(
            self, request, ListFilter(filter=f"tag:{EXIT_NODE_LABEL_KEY},{EXIT_NODE_LABEL_VALUE}"),
        )
        instance = await self._describe(host_id)
        groups = [g["GroupId"] for g in instance.get("SecurityGroups", [])]

        await self._terminate(host_id)
        for group_id in groups:
            await self._delete_group(group_id)

    async def _terminate(self, instance_id: str) -> None:
        log.info("Terminating instance {id}", id=instance_id)
        try:
            await self._run(self._ec2.terminate_instances, InstanceIds=[instance_id])
        except Exception as e:
            raise _translate(e, "terminate instance", instance_id) from e

        waiter = self._ec2.get_waiter("instance_terminated")
        delay = 5
        try:
            await self._run(
                waiter.wait,
                InstanceIds=[instance_id],
                WaiterConfig={
                    "Delay": delay,
                    "MaxAttempts": max(1, self._config.terminate_timeout // delay),
                },
            )
        except WaiterError as e:
            raise ProviderAPIError(
                "ec2", "wait for termination", instance_id, detail=str(e),
            ) from e

    async def _delete_group(self, group_id: str) -> None:
        # Network interfaces can hold on to the group for a short while after termination.
        @retry(
            stop=stop_after_delay(120),
            wait=wait_fixed(5),
            retry=retry_if_exception(_is_dependency_violation),
            reraise=True,
        )
        def _delete() -> None:
            self._ec2.delete_security_group(GroupId=group_id)

        log.debug("Deleting security group {id}", id=group_id)
        try:
            await self._run(_delete)
        except Exception as e:
            raise _translate(e, "delete security group", group_id) from e

    # ─── List ───────────────────────────────────────────────────────

    async def list(self, filter: ListFilter) -> list[ProvisionedHost]:
        expression = filter.filter or f"tag:{EXIT_NODE_LABEL_KEY},{EXIT_NODE_LABEL_VALUE}"
        name, _, value = expression.partition(",")
        if not value:
            raise ConfigurationError(f"ec2 list filter must be 'name,value', got {expression!r}")

        async def page(token: str) -> tuple[list[dict[str, Any]], str]:
            params: dict[str, Any] = {"Filters": [{"Name": name, "Values": [value]}]}
            if token:
                params["NextToken"] = token
            try:
                result = await self._run(self._ec2.describe_instances, **params)
            except Exception as e:
                raise _translate(e, "describe instances", expression) from e
            instances = [
                i for r in result.get("Reservations", []) for i in r.get("Instances", [])
            ]
            return instances, result.get("NextToken") or ""

        return [
            ProvisionedHost(
                id=i["InstanceId"],
                status=map_status(STATE_MAP, i.get("State", {}).get("Name", "")),
                ip=i.get("PublicIpAddress", ""),
            )
            for i in await collect(page)
            if i.get("State", {}).get("Name") != "terminated"
        ]

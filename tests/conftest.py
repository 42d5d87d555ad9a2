from __future__ import annotations

from collections.abc import Callable, Iterable

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from exitnode.api.model import HostDeleteRequest, HostDescriptor, ListFilter, ProvisionedHost


class FakeProvisioner:
    """In-memory provider that replays a scripted sequence of statuses.

    Each ``status`` call consumes the next entry; an Exception entry is
    raised instead of returned. The last entry repeats once the script
    runs out.
    """

    name = "fake"

    def __init__(
        self,
        statuses: Iterable[str | ProvisionedHost | Exception] = ("active",),
        *,
        host_id: str = "fake-1",
        ip: str = "203.0.113.5",
        hosts: Iterable[ProvisionedHost] = (),
    ) -> None:
        self.host_id = host_id
        self.ip = ip
        self.script = list(statuses)
        self.hosts = list(hosts)
        self.provisioned: list[HostDescriptor] = []
        self.status_calls = 0
        self.deleted: list[HostDeleteRequest] = []
        self.list_calls: list[ListFilter] = []
        self.delete_error: Exception | None = None
        self.closed = False

    async def provision(self, host: HostDescriptor) -> ProvisionedHost:
        self.provisioned.append(host)
        return ProvisionedHost(id=self.host_id, status="creating")

    async def status(self, host_id: str) -> ProvisionedHost:
        entry = self.script[min(self.status_calls, len(self.script) - 1)]
        self.status_calls += 1
        match entry:
            case Exception():
                raise entry
            case ProvisionedHost():
                return entry
            case "active":
                return ProvisionedHost(id=host_id, status="active", ip=self.ip)
            case _:
                return ProvisionedHost(id=host_id, status=entry)

    async def delete(self, request: HostDeleteRequest) -> None:
        self.deleted.append(request)
        if self.delete_error is not None:
            raise self.delete_error

    async def list(self, filter: ListFilter) -> list[ProvisionedHost]:
        self.list_calls.append(filter)
        return self.hosts

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_provider() -> Callable[..., FakeProvisioner]:
    return FakeProvisioner


@pytest.fixture
def host() -> HostDescriptor:
    return HostDescriptor(
        name="test-vm",
        region="lon1",
        plan="512mb",
        os_image="ubuntu-16-04-x64",
        boot_script="#!/bin/bash\necho hi\n",
    )


@pytest.fixture
async def serve():
    """Start an aiohttp test server for an app; returns its base URL."""
    servers: list[TestServer] = []

    async def start(app: web.Application) -> str:
        srv = TestServer(app)
        await srv.start_server()
        servers.append(srv)
        return f"http://{srv.host}:{srv.port}"

    yield start
    for srv in servers:
        await srv.close()

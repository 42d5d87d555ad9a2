from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any

import pytest
from ovh.exceptions import ResourceNotFoundError

from exitnode.api.model import HostDeleteRequest, HostDescriptor, ListFilter
from exitnode.core.exceptions import ConfigurationError, NotFoundError
from exitnode.providers.ovh.config import OVH
from exitnode.providers.ovh.provider import OVHProvider

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]

BASE = "/cloud/project/proj"


class FakeOVH:
    """Stands in for ``ovh.Client``: get/post/delete on API paths."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, dict[str, Any]]] = []
        self.instances: dict[str, dict[str, Any]] = {}

    def get(self, path: str, **params: Any) -> Any:
        self.calls.append(("get", path, params))
        if path == f"{BASE}/flavor":
            return [{"id": "f-1", "name": "d2-2", "region": params["region"]}]
        if path == f"{BASE}/image":
            return [{"id": "img-1", "name": "Ubuntu 22.04", "region": params["region"]}]
        instance_id = path.rsplit("/", 1)[-1]
        if instance_id not in self.instances:
            raise ResourceNotFoundError("This service does not exist")
        return self.instances[instance_id]

    def post(self, path: str, **body: Any) -> Any:
        self.calls.append(("post", path, body))
        self.instances["inst-1"] = {"id": "inst-1", "status": "BUILD", "ipAddresses": []}
        return self.instances["inst-1"]

    def delete(self, path: str, **params: Any) -> None:
        self.calls.append(("delete", path, params))


@pytest.fixture
async def ovh():
    client = FakeOVH()
    provider = OVHProvider(OVH(project_id="proj"), client, ThreadPoolExecutor(max_workers=2))
    yield client, provider
    await provider.close()


def _host(**overrides: str) -> HostDescriptor:
    fields = {"name": "vm", "region": "GRA11", "plan": "d2-2", "os_image": "Ubuntu 22.04", "boot_script": "#!/bin/sh\n"}
    fields.update(overrides)
    return HostDescriptor(**fields)


class TestProvision:
    @pytest.mark.asyncio
    async def test_resolves_flavor_and_image(self, ovh):
        client, provider = ovh
        result = await provider.provision(_host())

        assert (result.id, result.status) == ("inst-1|proj", "creating")
        method, path, body = client.calls[-1]
        assert (method, path) == ("post", f"{BASE}/instance")
        assert body == {
            "name": "vm",
            "flavorId": "f-1",
            "imageId": "img-1",
            "region": "GRA11",
            "userData": "#!/bin/sh\n",
        }

    @pytest.mark.asyncio
    async def test_unknown_flavor(self, ovh):
        client, provider = ovh
        with pytest.raises(ConfigurationError, match="b2-120"):
            await provider.provision(_host(plan="b2-120"))
        assert all(method == "get" for method, _, _ in client.calls)

    @pytest.mark.asyncio
    async def test_project_required(self):
        provider = OVHProvider(OVH(), FakeOVH(), ThreadPoolExecutor(max_workers=1))
        try:
            with pytest.raises(ConfigurationError, match="project_id"):
                await provider.provision(_host())
        finally:
            await provider.close()


class TestStatusAndDelete:
    @pytest.mark.asyncio
    async def test_public_ipv4(self, ovh):
        client, provider = ovh
        client.instances["inst-1"] = {
            "id": "inst-1",
            "status": "ACTIVE",
            "ipAddresses": [
                {"ip": "2001:41d0::1", "type": "public", "version": 6},
                {"ip": "51.68.0.1", "type": "public", "version": 4},
            ],
        }
        result = await provider.status("inst-1|proj")
        assert (result.status, result.ip) == ("active", "51.68.0.1")

    @pytest.mark.asyncio
    async def test_not_found(self, ovh):
        _, provider = ovh
        with pytest.raises(NotFoundError):
            await provider.status("gone|proj")

    @pytest.mark.asyncio
    async def test_delete_uses_request_project(self, ovh):
        client, provider = ovh
        await provider.delete(HostDeleteRequest(id="inst-1|proj", project_id="other"))
        assert client.calls == [("delete", "/cloud/project/other/instance/inst-1", {})]

    @pytest.mark.asyncio
    async def test_no_delete_by_ip(self, ovh):
        _, provider = ovh
        with pytest.raises(ConfigurationError, match="not supported"):
            await provider.delete(HostDeleteRequest(ip="51.68.0.1"))

    @pytest.mark.asyncio
    async def test_list_unsupported(self, ovh):
        _, provider = ovh
        with pytest.raises(ConfigurationError):
            await provider.list(ListFilter())

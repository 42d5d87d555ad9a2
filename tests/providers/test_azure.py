from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from types import SimpleNamespace
from typing import Any

import pytest
from azure.core.exceptions import HttpResponseError, ResourceNotFoundError

from exitnode.api.model import HostDeleteRequest, HostDescriptor, ListFilter
from exitnode.core.exceptions import ConfigurationError, NotFoundError, ProviderAPIError
from exitnode.providers.azure.config import Azure
from exitnode.providers.azure.provider import AzureProvider
from exitnode.providers.azure.template import build_parameters, build_template, security_rules

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]


class Poller:
    def __init__(self, log: list[str], name: str) -> None:
        self._log = log
        self._name = name

    def result(self, timeout: float | None = None) -> None:
        self._log.append(f"done:{self._name}")


class Pages:
    """Mimics ItemPaged.by_page(): an iterator of pages with a continuation token."""

    def __init__(self, pages: list[list[Any]], start: int) -> None:
        self._pages = pages
        self._index = start
        self.continuation_token: str | None = None

    def __iter__(self) -> Pages:
        return self

    def __next__(self) -> list[Any]:
        if self._index >= len(self._pages):
            raise StopIteration
        page = self._pages[self._index]
        self._index += 1
        self.continuation_token = str(self._index) if self._index < len(self._pages) else None
        return page


class FakeResourceGroups:
    def __init__(self, log: list[str]) -> None:
        self.log = log
        self.groups: dict[str, Any] = {}
        self.filters: list[str] = []

    def check_existence(self, name: str) -> bool:
        return name in self.groups

    def create_or_update(self, name: str, group: Any) -> Any:
        self.log.append(f"group:{name}")
        self.groups[name] = SimpleNamespace(name=name, tags=dict(group.tags), location=group.location)
        return self.groups[name]

    def begin_delete(self, name: str) -> Poller:
        if name not in self.groups:
            raise ResourceNotFoundError(f"Resource group '{name}' could not be found.")
        self.log.append(f"delete:{name}")
        del self.groups[name]
        return Poller(self.log, name)

    def list(self, filter: str) -> Any:
        self.filters.append(filter)
        groups = list(self.groups.values())
        pages = [groups[i : i + 1] for i in range(len(groups))] or [[]]
        return SimpleNamespace(by_page=lambda continuation_token=None: Pages(pages, int(continuation_token or 0)))


class FakeDeployments:
    def __init__(self, log: list[str]) -> None:
        self.log = log
        self.submitted: dict[str, Any] = {}
        self.states: dict[tuple[str, str], tuple[str, str]] = {}
        self.error: Exception | None = None

    def begin_create_or_update(self, group: str, name: str, deployment: Any) -> Poller:
        if self.error:
            raise self.error
        self.log.append(f"deploy:{group}")
        self.submitted[name] = deployment
        self.states[(group, name)] = ("Accepted", "")
        return Poller(self.log, name)

    def get(self, group: str, name: str) -> Any:
        if (group, name) not in self.states:
            raise ResourceNotFoundError(f"Deployment '{name}' could not be found.")
        state, ip = self.states[(group, name)]
        outputs = {"publicIP": {"type": "String", "value": ip}} if ip else None
        return SimpleNamespace(properties=SimpleNamespace(provisioning_state=state, outputs=outputs))


@pytest.fixture
async def azure():
    log: list[str] = []
    client = SimpleNamespace(resource_groups=FakeResourceGroups(log), deployments=FakeDeployments(log))
    provider = AzureProvider(Azure(subscription_id="sub"), client, ThreadPoolExecutor(max_workers=2))
    yield SimpleNamespace(log=log, client=client, provider=provider)
    await provider.close()


def _host(name: str = "vm", region: str = "eastus") -> HostDescriptor:
    return HostDescriptor(
        name=name, region=region, plan="Standard_B1ls", os_image="0001-com-ubuntu-server-jammy",
        boot_script="#!/bin/bash\n", tags={"image_sku": "22_04-lts", "control_port": "8080"},
    )


def _deployment_name(host_id: str) -> str:
    return host_id.split("|")[1]


class TestProvision:
    @pytest.mark.asyncio
    async def test_group_then_deployment(self, azure):
        result = await azure.provider.provision(_host())

        group, deployment = result.id.split("|")
        assert group == "inlets-vm"
        assert deployment.startswith("inlets-deploy-")
        assert result.status == "creating"
        assert azure.log == ["group:inlets-vm", "deploy:inlets-vm"]

        tags = azure.client.resource_groups.groups["inlets-vm"].tags
        assert tags == {"inlets": "exit-node", "inlets-deployment": deployment}
        submitted = azure.client.deployments.submitted[deployment]
        assert submitted.properties.mode == "Complete"

    @pytest.mark.asyncio
    async def test_region_required(self, azure):
        with pytest.raises(ConfigurationError, match="region"):
            await azure.provider.provision(_host(region=""))
        assert azure.log == []

    @pytest.mark.asyncio
    async def test_rejected_deployment_removes_group(self, azure):
        azure.client.deployments.error = HttpResponseError("InvalidTemplateDeployment")

        with pytest.raises(ProviderAPIError, match="create deployment"):
            await azure.provider.provision(_host())

        assert azure.log == ["group:inlets-vm", "delete:inlets-vm", "done:inlets-vm"]
        assert azure.client.resource_groups.groups == {}

    @pytest.mark.asyncio
    async def test_existing_group_is_left_alone(self, azure):
        existing = SimpleNamespace(
            name="inlets-vm", tags={"inlets": "exit-node", "inlets-deployment": "inlets-deploy-old"},
            location="eastus",
        )
        azure.client.resource_groups.groups["inlets-vm"] = existing
        azure.client.deployments.error = HttpResponseError("quota")

        with pytest.raises(ConfigurationError, match="already exists"):
            await azure.provider.provision(_host())

        assert azure.log == []
        assert azure.client.resource_groups.groups["inlets-vm"] is existing
        assert existing.tags["inlets-deployment"] == "inlets-deploy-old"


class TestStatus:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("state", "ip", "expected"),
        [
            ("Accepted", "", ("creating", "")),
            ("Running", "", ("creating", "")),
            ("Succeeded", "20.1.1.1", ("active", "20.1.1.1")),
            ("Succeeded", "", ("initializing", "")),
            ("Failed", "", ("error", "")),
        ],
    )
    async def test_deployment_state(self, azure, state, ip, expected):
        result = await azure.provider.provision(_host())
        azure.client.deployments.states[("inlets-vm", _deployment_name(result.id))] = (state, ip)

        host = await azure.provider.status(result.id)
        assert (host.status, host.ip) == expected

    @pytest.mark.asyncio
    async def test_missing_deployment(self, azure):
        with pytest.raises(NotFoundError):
            await azure.provider.status("inlets-vm|inlets-deploy-x")


class TestListAndDelete:
    @pytest.mark.asyncio
    async def test_list_reads_deployment_tag(self, azure):
        a = await azure.provider.provision(_host("a"))
        b = await azure.provider.provision(_host("b"))
        azure.client.deployments.states[("inlets-a", _deployment_name(a.id))] = ("Succeeded", "20.1.1.1")
        azure.client.resource_groups.groups["stray"] = SimpleNamespace(name="stray", tags={"inlets": "exit-node"})

        hosts = await azure.provider.list(ListFilter())

        assert [(h.id, h.status) for h in hosts] == [(a.id, "active"), (b.id, "creating")]
        assert azure.client.resource_groups.filters == ["tagName eq 'inlets' and tagValue eq 'exit-node'"]

    @pytest.mark.asyncio
    async def test_delete_by_ip_removes_group(self, azure):
        a = await azure.provider.provision(_host("a"))
        azure.client.deployments.states[("inlets-a", _deployment_name(a.id))] = ("Succeeded", "20.1.1.1")
        azure.log.clear()

        await azure.provider.delete(HostDeleteRequest(ip="20.1.1.1"))
        assert azure.log == ["delete:inlets-a", "done:inlets-a"]

    @pytest.mark.asyncio
    async def test_delete_missing_group(self, azure):
        with pytest.raises(NotFoundError):
            await azure.provider.delete(HostDeleteRequest(id="inlets-gone|inlets-deploy-x"))


class TestTemplate:
    def test_security_rules(self):
        rules = security_rules(_host())
        assert [(r["name"], r["properties"]["destinationPortRange"], r["properties"]["priority"]) for r in rules] == [
            ("SSH", "22", 300),
            ("HTTP", "80", 320),
            ("HTTPS", "443", 340),
            ("TCP8080", "8080", 360),
        ]

    def test_image_reference_from_tags(self):
        template = build_template(_host())
        (vm,) = [r for r in template["resources"] if r["type"] == "Microsoft.Compute/virtualMachines"]
        image = vm["properties"]["storageProfile"]["imageReference"]
        assert image == {
            "publisher": "Canonical",
            "offer": "0001-com-ubuntu-server-jammy",
            "sku": "22_04-lts",
            "version": "latest",
        }
        assert "publicIP" in template["outputs"]

    def test_parameters(self):
        params = build_parameters(_host(), "s3cret")
        assert params["customData"] == {"value": "#!/bin/bash\n"}
        assert params["adminPassword"] == {"value": "s3cret"}
        assert params["virtualMachineSize"] == {"value": "Standard_B1ls"}

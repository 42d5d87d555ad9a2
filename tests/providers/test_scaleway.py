from __future__ import annotations

from typing import Any

import pytest
from aiohttp import web

from exitnode.api.model import HostDeleteRequest, HostDescriptor, ListFilter
from exitnode.core.exceptions import ConfigurationError, NotFoundError, ProviderAPIError
from exitnode.providers.scaleway.config import Scaleway
from exitnode.providers.scaleway.provider import ScalewayProvider

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]

IMAGE_ID = "9c41e95b-add2-4ef8-b1b1-af8899748eda"
ZONES = "/instance/v1/zones/{zone}"


class FakeScaleway:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.created: dict[str, Any] = {}
        self.user_data = ""
        self.fail_user_data = False
        self.servers: dict[str, dict[str, Any]] = {}
        self.settles = {"stopping": "stopped"}

    def app(self) -> web.Application:
        app = web.Application(middlewares=[self._auth])
        app.router.add_get("/marketplace/v2/local-images", self.images)
        app.router.add_post(ZONES + "/servers", self.create)
        app.router.add_get(ZONES + "/servers", self.list)
        app.router.add_get(ZONES + "/servers/{id}", self.get)
        app.router.add_delete(ZONES + "/servers/{id}", self.delete)
        app.router.add_patch(ZONES + "/servers/{id}/user_data/{key}", self.set_user_data)
        app.router.add_post(ZONES + "/servers/{id}/action", self.action)
        app.router.add_delete(ZONES + "/volumes/{id}", self.delete_volume)
        return app

    @web.middleware
    async def _auth(self, request: web.Request, handler):
        if request.headers.get("X-Auth-Token") != "scw-secret":
            return web.json_response({"message": "denied"}, status=401)
        self.calls.append((request.method, request.path))
        return await handler(request)

    async def images(self, request: web.Request) -> web.Response:
        if request.query.get("image_label") != "ubuntu_bionic":
            return web.json_response({"local_images": []})
        return web.json_response({"local_images": [
            {"id": "arm-image", "arch": "arm64"},
            {"id": IMAGE_ID, "arch": "x86_64"},
        ]})

    async def create(self, request: web.Request) -> web.Response:
        self.created = await request.json()
        server = {
            "id": "srv-1",
            "name": self.created["name"],
            "state": "stopped",
            "public_ip": None,
            "volumes": {"0": {"id": "vol-1"}},
            "tags": self.created["tags"],
        }
        self.servers["srv-1"] = server
        return web.json_response({"server": server}, status=201)

    async def list(self, request: web.Request) -> web.Response:
        tag = request.query.get("tags")
        page, per_page = int(request.query["page"]), int(request.query["per_page"])
        matching = [s for s in self.servers.values() if tag in s["tags"]]
        return web.json_response({"servers": matching[(page - 1) * per_page : page * per_page]})

    async def get(self, request: web.Request) -> web.Response:
        server = self.servers.get(request.match_info["id"])
        if server is None:
            return web.json_response({"type": "unknown_resource"}, status=404)
        response = web.json_response({"server": server})
        server["state"] = self.settles.get(server["state"], server["state"])
        return response

    async def delete(self, request: web.Request) -> web.Response:
        self.servers.pop(request.match_info["id"], None)
        return web.Response(status=204)

    async def set_user_data(self, request: web.Request) -> web.Response:
        if self.fail_user_data:
            return web.json_response({"message": "boom"}, status=500)
        self.user_data = await request.text()
        return web.Response(status=204)

    async def action(self, request: web.Request) -> web.Response:
        server = self.servers[request.match_info["id"]]
        action = (await request.json())["action"]
        allowed = {"poweron": ("stopped", "stopped in place"), "poweroff": ("running", "stopped in place")}
        if server["state"] not in allowed[action]:
            return web.json_response(
                {"type": "invalid_request_error", "message": f"{action} not allowed in state {server['state']}"},
                status=400,
            )
        server["state"] = {"poweron": "starting", "poweroff": "stopping"}[action]
        return web.json_response({"task": {"id": "t1", "description": action}}, status=202)

    async def delete_volume(self, request: web.Request) -> web.Response:
        return web.Response(status=204)


@pytest.fixture
def api() -> FakeScaleway:
    return FakeScaleway()


@pytest.fixture
async def provider(api: FakeScaleway, serve):
    base = await serve(api.app())
    config = Scaleway(secret_key="scw-secret", organization_id="proj-1", api_url=base, poll_interval=0)
    p = await ScalewayProvider.create(config)
    yield p
    await p.close()


@pytest.fixture
def host() -> HostDescriptor:
    return HostDescriptor(
        name="test-vm", region="fr-par-1", plan="DEV1-S", os_image="ubuntu-bionic",
        boot_script="#!/bin/bash\necho hi\n",
    )


class TestProvision:
    @pytest.mark.asyncio
    async def test_creates_sets_user_data_and_powers_on(self, provider, api, host):
        result = await provider.provision(host)

        assert result.id == "srv-1|fr-par-1"
        assert result.status == "creating"
        assert api.created == {
            "name": "test-vm",
            "commercial_type": "DEV1-S",
            "image": IMAGE_ID,
            "dynamic_ip_required": True,
            "tags": ["inlets-exit-node"],
            "project": "proj-1",
        }
        assert api.user_data == host.boot_script
        assert ("POST", "/instance/v1/zones/fr-par-1/servers/srv-1/action") in api.calls
        assert api.servers["srv-1"]["state"] == "starting"

    @pytest.mark.asyncio
    async def test_uuid_image_skips_marketplace(self, provider, api):
        host = HostDescriptor(name="x", region="nl-ams-1", plan="DEV1-S", os_image=IMAGE_ID)
        result = await provider.provision(host)
        assert result.id == "srv-1|nl-ams-1"
        assert not any(path.startswith("/marketplace") for _, path in api.calls)

    @pytest.mark.asyncio
    async def test_unknown_image(self, provider):
        host = HostDescriptor(name="x", region="fr-par-1", plan="DEV1-S", os_image="plan9")
        with pytest.raises(ConfigurationError, match="plan9"):
            await provider.provision(host)

    @pytest.mark.asyncio
    async def test_user_data_failure_removes_server_and_volumes(self, provider, api, host):
        api.fail_user_data = True

        with pytest.raises(ProviderAPIError, match="set user data"):
            await provider.provision(host)

        assert api.servers == {}
        assert ("DELETE", "/instance/v1/zones/fr-par-1/volumes/vol-1") in api.calls


class TestStatus:
    @pytest.mark.asyncio
    async def test_running_with_ip_is_active(self, provider, api, host):
        await provider.provision(host)
        api.servers["srv-1"].update(state="running", public_ip={"address": "51.15.0.10"})

        result = await provider.status("srv-1|fr-par-1")
        assert (result.status, result.ip) == ("active", "51.15.0.10")

    @pytest.mark.asyncio
    async def test_starting(self, provider, api, host):
        await provider.provision(host)
        assert (await provider.status("srv-1|fr-par-1")).status == "initializing"

    @pytest.mark.asyncio
    async def test_missing_server(self, provider):
        with pytest.raises(NotFoundError):
            await provider.status("gone|fr-par-1")

    @pytest.mark.asyncio
    async def test_malformed_id(self, provider):
        with pytest.raises(ConfigurationError):
            await provider.status("srv-1")


class TestDelete:
    @pytest.mark.asyncio
    async def test_powers_off_then_deletes_server_and_volumes(self, provider, api, host):
        await provider.provision(host)
        api.servers["srv-1"]["state"] = "running"
        api.calls.clear()

        await provider.delete(HostDeleteRequest(id="srv-1|fr-par-1"))

        mutations = [c for c in api.calls if c[0] != "GET"]
        assert mutations == [
            ("POST", "/instance/v1/zones/fr-par-1/servers/srv-1/action"),
            ("DELETE", "/instance/v1/zones/fr-par-1/servers/srv-1"),
            ("DELETE", "/instance/v1/zones/fr-par-1/volumes/vol-1"),
        ]

    @pytest.mark.asyncio
    async def test_stopped_server_is_not_powered_off(self, provider, api, host):
        await provider.provision(host)
        api.servers["srv-1"]["state"] = "stopped"
        api.calls.clear()

        await provider.delete(HostDeleteRequest(id="srv-1|fr-par-1"))
        assert not any(path.endswith("/action") for _, path in api.calls)

    @pytest.mark.asyncio
    async def test_booting_server_is_left_to_settle_before_poweroff(self, provider, api, host):
        await provider.provision(host)
        assert api.servers["srv-1"]["state"] == "starting"
        api.settles["starting"] = "running"
        api.calls.clear()

        await provider.delete(HostDeleteRequest(id="srv-1|fr-par-1"))

        assert api.servers == {}
        mutations = [c for c in api.calls if c[0] != "GET"]
        assert mutations == [
            ("POST", "/instance/v1/zones/fr-par-1/servers/srv-1/action"),
            ("DELETE", "/instance/v1/zones/fr-par-1/servers/srv-1"),
            ("DELETE", "/instance/v1/zones/fr-par-1/volumes/vol-1"),
        ]

    @pytest.mark.asyncio
    async def test_stopping_server_is_not_powered_off_again(self, provider, api, host):
        await provider.provision(host)
        api.servers["srv-1"]["state"] = "stopping"
        api.calls.clear()

        await provider.delete(HostDeleteRequest(id="srv-1|fr-par-1"))

        assert api.servers == {}
        assert not any(path.endswith("/action") for _, path in api.calls)

    @pytest.mark.asyncio
    async def test_delete_by_ip(self, provider, api, host):
        await provider.provision(host)
        api.servers["srv-1"].update(state="stopped", public_ip={"address": "51.15.0.10"})

        await provider.delete(HostDeleteRequest(ip="51.15.0.10", zone="fr-par-1"))
        assert api.servers == {}

    @pytest.mark.asyncio
    async def test_delete_by_unknown_ip(self, provider):
        with pytest.raises(NotFoundError, match="no host with ip"):
            await provider.delete(HostDeleteRequest(ip="192.0.2.1"))


class TestList:
    @pytest.mark.asyncio
    async def test_follows_pages(self, provider, api, monkeypatch):
        monkeypatch.setattr("exitnode.providers.scaleway.provider.PAGE_SIZE", 1)
        for n, state in ((1, "running"), (2, "stopped")):
            api.servers[f"srv-{n}"] = {
                "id": f"srv-{n}", "state": state, "volumes": {},
                "public_ip": {"address": f"51.15.0.{n}"}, "tags": ["inlets-exit-node"],
            }

        hosts = await provider.list(ListFilter(zone="fr-par-1"))

        assert [(h.id, h.status) for h in hosts] == [("srv-1|fr-par-1", "active"), ("srv-2|fr-par-1", "creating")]
        pages = [p for m, p in api.calls if m == "GET" and p.endswith("/servers")]
        assert len(pages) == 3

from __future__ import annotations

import pytest

from exitnode.api.model import HostDeleteRequest, ListFilter, ProvisionedHost
from exitnode.core.exceptions import NotFoundError
from exitnode.providers.lookup import collect, paginate, resolve_delete_target, resolve_id

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]

HOSTS = [
    ProvisionedHost(id="1", status="active", ip="198.51.100.1"),
    ProvisionedHost(id="2", status="active", ip="203.0.113.5"),
]


class TestPaginate:
    @pytest.mark.asyncio
    async def test_follows_tokens_until_empty(self):
        pages = {"": ([1, 2], "p2"), "p2": ([3], "p3"), "p3": ([4, 5], "")}
        seen: list[str] = []

        async def fetch(token: str):
            seen.append(token)
            return pages[token]

        assert [i async for i in paginate(fetch)] == [1, 2, 3, 4, 5]
        assert seen == ["", "p2", "p3"]

    @pytest.mark.asyncio
    async def test_single_empty_page(self):
        async def fetch(token: str):
            return [], ""

        assert await collect(fetch) == []


class TestResolveId:
    @pytest.mark.asyncio
    async def test_hit(self, fake_provider):
        provider = fake_provider(hosts=HOSTS)
        assert await resolve_id(provider, "203.0.113.5", ListFilter(filter="tag")) == "2"
        assert provider.list_calls == [ListFilter(filter="tag")]

    @pytest.mark.asyncio
    async def test_miss(self, fake_provider):
        provider = fake_provider(hosts=HOSTS)
        with pytest.raises(NotFoundError, match="no host with ip: 192.0.2.9"):
            await resolve_id(provider, "192.0.2.9", ListFilter())

    @pytest.mark.asyncio
    async def test_exact_match_only(self, fake_provider):
        provider = fake_provider(hosts=[ProvisionedHost(id="1", status="active", ip="10.0.0.10")])
        with pytest.raises(NotFoundError):
            await resolve_id(provider, "10.0.0.1", ListFilter())


class TestResolveDeleteTarget:
    @pytest.mark.asyncio
    async def test_id_wins_without_listing(self, fake_provider):
        provider = fake_provider(hosts=HOSTS)
        request = HostDeleteRequest(id="7", ip="203.0.113.5")
        assert await resolve_delete_target(provider, request) == "7"
        assert provider.list_calls == []

    @pytest.mark.asyncio
    async def test_ip_falls_back_to_list_with_scope(self, fake_provider):
        provider = fake_provider(hosts=HOSTS)
        request = HostDeleteRequest(ip="198.51.100.1", project_id="p", zone="z")
        assert await resolve_delete_target(provider, request) == "1"
        assert provider.list_calls == [ListFilter(project_id="p", zone="z")]

"""Thin client for the Civo v2 instances API."""

from __future__ import annotations

from typing import Any

from exitnode.providers.rest import RestClient


class CivoClient(RestClient):
    provider = "civo"

    async def create_instance(self, body: dict[str, Any]) -> dict[str, Any]:
        return await self._write("POST", "/v2/instances", "create instance", body["hostname"], json=body)

    async def get_instance(self, instance_id: str) -> dict[str, Any]:
        return await self._read(f"/v2/instances/{instance_id}", "get instance", instance_id)

    async def list_instances(self, tags: str, page: int, per_page: int) -> dict[str, Any]:
        return await self._read(
            "/v2/instances",
            "list instances",
            tags,
            params={"tags": tags, "page": page, "per_page": per_page},
        )

    async def delete_instance(self, instance_id: str) -> None:
        await self._write("DELETE", f"/v2/instances/{instance_id}", "delete instance", instance_id)

"""Thin client for the Equinix Metal devices API."""

from __future__ import annotations

from typing import Any

from exitnode.providers.rest import RestClient


class EquinixClient(RestClient):
    provider = "equinix"

    async def create_device(self, project_id: str, body: dict[str, Any]) -> dict[str, Any]:
        return await self._write(
            "POST", f"/projects/{project_id}/devices", "create device", body["hostname"], json=body,
        )

    async def get_device(self, device_id: str) -> dict[str, Any]:
        return await self._read(f"/devices/{device_id}", "get device", device_id)

    async def list_devices(self, project_id: str, tag: str, page: int, per_page: int) -> dict[str, Any]:
        return await self._read(
            f"/projects/{project_id}/devices",
            "list devices",
            project_id,
            params={"tag": tag, "page": page, "per_page": per_page},
        )

    async def delete_device(self, device_id: str) -> None:
        await self._write("DELETE", f"/devices/{device_id}", "delete device", device_id)

"""Thin client for the Scaleway Instance and Marketplace APIs."""

from __future__ import annotations

from typing import Any

from exitnode.providers.rest import RestClient


class ScalewayClient(RestClient):
    provider = "scaleway"

    async def create_server(self, zone: str, body: dict[str, Any]) -> dict[str, Any]:
        data = await self._write(
            "POST", f"/instance/v1/zones/{zone}/servers", "create server", body["name"], json=body,
        )
        return data["server"]

    async def set_user_data(self, zone: str, server_id: str, key: str, content: str) -> None:
        await self._write(
            "PATCH",
            f"/instance/v1/zones/{zone}/servers/{server_id}/user_data/{key}",
            "set user data",
            server_id,
            text=content,
        )

    async def server_action(self, zone: str, server_id: str, action: str) -> None:
        await self._write(
            "POST",
            f"/instance/v1/zones/{zone}/servers/{server_id}/action",
            action,
            server_id,
            json={"action": action},
        )

    async def get_server(self, zone: str, server_id: str) -> dict[str, Any]:
        data = await self._read(f"/instance/v1/zones/{zone}/servers/{server_id}", "get server", server_id)
        return data["server"]

    async def list_servers(self, zone: str, tag: str, page: int, per_page: int) -> list[dict[str, Any]]:
        data = await self._read(
            f"/instance/v1/zones/{zone}/servers",
            "list servers",
            tag,
            params={"tags": tag, "page": page, "per_page": per_page},
        )
        return data.get("servers", [])

    async def delete_server(self, zone: str, server_id: str) -> None:
        await self._write("DELETE", f"/instance/v1/zones/{zone}/servers/{server_id}", "delete server", server_id)

    async def delete_volume(self, zone: str, volume_id: str) -> None:
        await self._write("DELETE", f"/instance/v1/zones/{zone}/volumes/{volume_id}", "delete volume", volume_id)

    async def find_image(self, zone: str, label: str, arch: str = "x86_64") -> str:
        """Resolve a marketplace label such as ``ubuntu_jammy`` to a local image ID."""
        data = await self._read(
            "/marketplace/v2/local-images",
            "find image",
            label,
            params={"image_label": label, "zone": zone, "type": "instance_local"},
        )
        for image in data.get("local_images", []):
            if image.get("arch", arch) == arch:
                return image["id"]
        return ""

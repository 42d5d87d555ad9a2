"""Thin client for the Vultr v2 API.

List endpoints page with a cursor found in ``meta.links.next``.
"""

from __future__ import annotations

import base64
from typing import Any

from exitnode.providers.rest import RestClient

PAGE_SIZE = 100


def _next_cursor(data: dict[str, Any]) -> str:
    return ((data.get("meta") or {}).get("links") or {}).get("next") or ""


class VultrClient(RestClient):
    provider = "vultr"

    async def _page(self, path: str, key: str, operation: str, cursor: str, **params: Any) -> tuple[list[dict[str, Any]], str]:
        params["per_page"] = PAGE_SIZE
        if cursor:
            params["cursor"] = cursor
        data = await self._read(path, operation, params=params)
        return data.get(key, []), _next_cursor(data)

    # ─── Startup scripts ────────────────────────────────────────────

    async def create_startup_script(self, name: str, script: str) -> dict[str, Any]:
        body = {"name": name, "type": "boot", "script": base64.b64encode(script.encode()).decode()}
        data = await self._write("POST", "/startup-scripts", "create startup script", name, json=body)
        return data["startup_script"]

    async def startup_scripts(self, cursor: str) -> tuple[list[dict[str, Any]], str]:
        return await self._page("/startup-scripts", "startup_scripts", "list startup scripts", cursor)

    async def delete_startup_script(self, script_id: str) -> None:
        await self._write("DELETE", f"/startup-scripts/{script_id}", "delete startup script", script_id)

    # ─── Regions ────────────────────────────────────────────────────

    async def regions(self, cursor: str) -> tuple[list[dict[str, Any]], str]:
        return await self._page("/regions", "regions", "list regions", cursor)

    # ─── Instances ──────────────────────────────────────────────────

    async def create_instance(self, body: dict[str, Any]) -> dict[str, Any]:
        data = await self._write("POST", "/instances", "create instance", body["label"], json=body)
        return data["instance"]

    async def get_instance(self, instance_id: str) -> dict[str, Any]:
        data = await self._read(f"/instances/{instance_id}", "get instance", instance_id)
        return data["instance"]

    async def instances(self, tag: str, cursor: str) -> tuple[list[dict[str, Any]], str]:
        return await self._page("/instances", "instances", "list instances", cursor, tag=tag)

    async def delete_instance(self, instance_id: str) -> None:
        await self._write("DELETE", f"/instances/{instance_id}", "delete instance", instance_id)

"""Thin client for the Linode v4 API.

List endpoints are numbered pages: ``{"data": [...], "page": n, "pages": m}``.
"""

from __future__ import annotations

from typing import Any

from exitnode.providers.rest import RestClient

PAGE_SIZE = 100


class LinodeClient(RestClient):
    provider = "linode"

    async def _page(self, path: str, operation: str, token: str) -> tuple[list[dict[str, Any]], str]:
        page = int(token or 1)
        data = await self._read(path, operation, params={"page": page, "page_size": PAGE_SIZE})
        more = page < int(data.get("pages") or 1)
        return data.get("data", []), str(page + 1) if more else ""

    # ─── StackScripts ───────────────────────────────────────────────

    async def create_stackscript(self, label: str, image: str, script: str) -> dict[str, Any]:
        body = {"label": label, "images": [image], "script": script, "is_public": False}
        return await self._write("POST", "/linode/stackscripts", "create stackscript", label, json=body)

    async def stackscripts(self, token: str) -> tuple[list[dict[str, Any]], str]:
        return await self._page("/linode/stackscripts", "list stackscripts", token)

    async def delete_stackscript(self, script_id: int) -> None:
        await self._write("DELETE", f"/linode/stackscripts/{script_id}", "delete stackscript", str(script_id))

    # ─── Instances ──────────────────────────────────────────────────

    async def create_instance(self, body: dict[str, Any]) -> dict[str, Any]:
        return await self._write("POST", "/linode/instances", "create instance", body["label"], json=body)

    async def get_instance(self, instance_id: str) -> dict[str, Any]:
        return await self._read(f"/linode/instances/{instance_id}", "get instance", instance_id)

    async def instances(self, token: str) -> tuple[list[dict[str, Any]], str]:
        return await self._page("/linode/instances", "list instances", token)

    async def delete_instance(self, instance_id: str) -> None:
        await self._write("DELETE", f"/linode/instances/{instance_id}", "delete instance", instance_id)

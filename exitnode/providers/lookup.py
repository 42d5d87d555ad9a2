"""Locating hosts by public IP.

Delete-by-IP goes through the provider's own ``list``: every page of
tagged hosts is fetched and scanned for an exact IP match.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable, Iterable

from exitnode.api.model import HostDeleteRequest, ListFilter
from exitnode.core.exceptions import NotFoundError
from exitnode.observability.logger import logger
from exitnode.providers.provider import Provisioner

log = logger.bind(component="lookup")

type PageFetcher[T] = Callable[[str], Awaitable[tuple[Iterable[T], str]]]


async def paginate[T](fetch_page: PageFetcher[T]) -> AsyncIterator[T]:
    """Yield items from every page.

    ``fetch_page`` receives the continuation token ("" for the first page)
    and returns ``(items, next_token)``; an empty token ends the iteration.
    """
    token = ""
    while True:
        items, token = await fetch_page(token)
        for item in items:
            yield item
        if not token:
            return


async def collect[T](fetch_page: PageFetcher[T]) -> list[T]:
    return [item async for item in paginate(fetch_page)]


async def resolve_id(provider: Provisioner, ip: str, filter: ListFilter) -> str:
    hosts = await provider.list(filter)
    for host in hosts:
        if host.ip == ip:
            log.debug("Resolved {ip} to host {id}", ip=ip, id=host.id)
            return host.id
    raise NotFoundError(
        getattr(provider, "name", type(provider).__name__),
        "lookup",
        ip,
        detail=f"no host with ip: {ip}",
    )


async def resolve_delete_target(
    provider: Provisioner,
    request: HostDeleteRequest,
    filter: ListFilter | None = None,
) -> str:
    if request.id:
        return request.id
    scope = filter or ListFilter(project_id=request.project_id, zone=request.zone)
    return await resolve_id(provider, request.ip, scope)

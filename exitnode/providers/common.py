"""Helpers shared between provider adapters."""

from __future__ import annotations

import asyncio
import secrets
import string
from collections.abc import Awaitable, Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from types import TracebackType

from exitnode.api.model import CANONICAL_STATUSES
from exitnode.observability.logger import BoundLogger

EXIT_NODE_TAG = "inlets-exit-node"
EXIT_NODE_LABEL_KEY = "inlets"
EXIT_NODE_LABEL_VALUE = "exit-node"

DEFAULT_CONTROL_PORT = 8080


# =============================================================================
# Status mapping
# =============================================================================


def map_status(mapping: Mapping[str, str], raw: str) -> str:
    """Translate a provider status into the shared vocabulary.

    Values missing from ``mapping`` pass through unchanged, and canonical
    values map to themselves, so applying this twice changes nothing.
    """
    if raw in CANONICAL_STATUSES:
        return raw
    return mapping.get(raw, raw)


# =============================================================================
# Blocking SDKs
# =============================================================================


class BlockingClientMixin:
    """Runs calls of a synchronous SDK on a dedicated thread pool."""

    _pool: ThreadPoolExecutor

    async def _run[T](self, fn: Callable[..., T], *args: object, **kwargs: object) -> T:
        loop = asyncio.get_running_loop()
        if kwargs:
            return await loop.run_in_executor(self._pool, lambda: fn(*args, **kwargs))
        return await loop.run_in_executor(self._pool, fn, *args)

    async def close(self) -> None:
        self._pool.shutdown(wait=False, cancel_futures=True)


def make_pool(provider: str, size: int) -> ThreadPoolExecutor:
    return ThreadPoolExecutor(max_workers=size, thread_name_prefix=f"{provider}-io")


# =============================================================================
# Rollback on partial failure
# =============================================================================


class Rollback:
    """Undo stack for resources created during a provision call.

    Usage::

        async with Rollback(log) as undo:
            group = await create_group()
            undo.push("security group", lambda: delete_group(group))
            return await run_instance(group)

    If the block raises, registered undo steps run in reverse order, each
    failure is logged, and the original exception propagates.
    """

    def __init__(self, log: BoundLogger) -> None:
        self._log = log
        self._steps: list[tuple[str, Callable[[], Awaitable[object]]]] = []

    def push(self, what: str, undo: Callable[[], Awaitable[object]]) -> None:
        self._steps.append((what, undo))

    async def __aenter__(self) -> Rollback:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc is None:
            return
        for what, undo in reversed(self._steps):
            self._log.warning("Provisioning failed, removing {what}", what=what)
            try:
                await undo()
            except Exception as cleanup_error:
                self._log.error(
                    "Failed to remove {what}: {err}", what=what, err=cleanup_error,
                )


# =============================================================================
# Misc
# =============================================================================


def random_password(length: int = 24) -> str:
    """Password satisfying the usual cloud complexity rules."""
    alphabet = string.ascii_letters + string.digits
    body = "".join(secrets.choice(alphabet) for _ in range(length - 4))
    return (
        secrets.choice(string.ascii_uppercase)
        + secrets.choice(string.ascii_lowercase)
        + secrets.choice(string.digits)
        + secrets.choice("!@#%^*-_")
        + body
    )


def control_ports(tags: Mapping[str, str]) -> list[int]:
    """Ports a tunnel server needs reachable: its control port plus HTTP(S)."""
    control = int(tags.get("control_port") or DEFAULT_CONTROL_PORT)
    return sorted({control, 80, 443})

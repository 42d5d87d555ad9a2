"""Lifecycle driver: provision one host, poll it to active, tear it down.

The driver owns everything time-related (poll interval, attempt budget,
cancellation). Adapters only ever see single API calls.

A run is a small state machine::

    requested -> creating -> (initializing) -> active
                                             -> error
                                             -> deleted   (cancel + delete_on_cancel)

Cancellation arrives as an ``asyncio.Event``; how it gets set (signals,
a UI, a test) is the caller's business. ``install_signal_handlers`` wires
SIGINT/SIGTERM to such an event for command-line use.
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
from dataclasses import dataclass

from exitnode.api.model import HostDeleteRequest, HostDescriptor, ProvisionedHost
from exitnode.core.exceptions import (
    HostFailedError,
    NotFoundError,
    ProvisioningCancelled,
    TimeoutExceeded,
)
from exitnode.observability.logger import logger
from exitnode.providers.provider import Provisioner

log = logger.bind(component="lifecycle")

DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_MAX_ATTEMPTS = 500


@dataclass(frozen=True, slots=True)
class LifecycleOptions:
    """Knobs for one provisioning run.

    Args:
        poll_interval: Seconds to wait before each status call.
        max_attempts: Status calls allowed before giving up.
        delete_on_cancel: Delete the host when the run is cancelled.
        delete_timeout: Upper bound in seconds for the delete issued on cancel.
    """

    poll_interval: float = DEFAULT_POLL_INTERVAL
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    delete_on_cancel: bool = False
    delete_timeout: float = 600.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.poll_interval < 0:
            raise ValueError("poll_interval must not be negative")


class _Cancelled(Exception):
    pass


class LifecycleDriver:
    def __init__(self, provider: Provisioner, options: LifecycleOptions | None = None) -> None:
        self._provider = provider
        self._options = options or LifecycleOptions()

    @property
    def options(self) -> LifecycleOptions:
        return self._options

    async def provision(
        self,
        host: HostDescriptor,
        cancel: asyncio.Event | None = None,
    ) -> ProvisionedHost:
        """Create ``host`` and wait until it is active.

        Raises:
            HostFailedError: the provider reported the host in error state.
            TimeoutExceeded: the attempt budget ran out first.
            ProvisioningCancelled: ``cancel`` fired before the host was active.
            ProviderError: any provider call failed; status errors are not retried.
        """
        log.info(
            "Provisioning {name} ({plan}) in {region}",
            name=host.name, plan=host.plan, region=host.zone or host.region,
        )
        created = await self._provider.provision(host)
        log.info("Host {id} accepted, status={status}", id=created.id, status=created.status)

        try:
            if cancel is not None and cancel.is_set():
                raise _Cancelled
            return await self._wait(created.id, cancel)
        except _Cancelled:
            deleted = await self._delete_on_cancel(created)
            raise ProvisioningCancelled(created.id, deleted) from None
        except asyncio.CancelledError:
            await self._delete_on_cancel(created)
            raise

    async def wait_until_active(
        self,
        host_id: str,
        cancel: asyncio.Event | None = None,
    ) -> ProvisionedHost:
        try:
            return await self._wait(host_id, cancel)
        except _Cancelled:
            raise ProvisioningCancelled(host_id, deleted=False) from None

    async def _wait(self, host_id: str, cancel: asyncio.Event | None) -> ProvisionedHost:
        opts = self._options
        last_status = ""
        for attempt in range(1, opts.max_attempts + 1):
            if await _sleep_or_cancel(opts.poll_interval, cancel):
                raise _Cancelled

            current = await self._provider.status(host_id)
            if current.status != last_status:
                log.info(
                    "Host {id} is {status} (attempt {n}/{max})",
                    id=host_id, status=current.status, n=attempt, max=opts.max_attempts,
                )
            last_status = current.status

            match current.status:
                case "active":
                    return current
                case "error":
                    raise HostFailedError(host_id, current.status)
                case _:
                    log.trace("Host {id} not ready: {status}", id=host_id, status=current.status)

        raise TimeoutExceeded(host_id, opts.max_attempts, last_status)

    async def hold(self, host: ProvisionedHost, cancel: asyncio.Event) -> bool:
        """Keep the host until ``cancel`` fires, then delete it if configured.

        Returns True when the host was deleted.
        """
        await cancel.wait()
        if not self._options.delete_on_cancel:
            return False
        return await self._delete_on_cancel(host)

    async def delete(self, request: HostDeleteRequest) -> None:
        log.info("Deleting host {target}", target=request.id or request.ip)
        await self._provider.delete(request)
        log.info("Deleted host {target}", target=request.id or request.ip)

    async def _delete_on_cancel(self, host: ProvisionedHost) -> bool:
        if not self._options.delete_on_cancel:
            log.warning("Cancelled; host {id} left running", id=host.id)
            return False
        log.warning("Cancelled; deleting host {id}", id=host.id)
        # The timeout cancels the delete in place, so nothing outlives this call.
        try:
            async with asyncio.timeout(self._options.delete_timeout):
                await self._provider.delete(HostDeleteRequest(id=host.id))
        except NotFoundError:
            log.info("Host {id} already gone", id=host.id)
            return True
        except TimeoutError:
            log.error(
                "Gave up deleting host {id} after {t}s, delete abandoned",
                id=host.id, t=self._options.delete_timeout,
            )
            return False
        except Exception as e:
            log.error("Failed to delete host {id}: {err}", id=host.id, err=e)
            return False
        log.info("Deleted host {id}", id=host.id)
        return True


async def _sleep_or_cancel(interval: float, cancel: asyncio.Event | None) -> bool:
    """Sleep ``interval`` seconds; True if ``cancel`` fired meanwhile."""
    if cancel is None:
        await asyncio.sleep(interval)
        return False
    if cancel.is_set():
        return True
    with contextlib.suppress(TimeoutError):
        await asyncio.wait_for(cancel.wait(), timeout=interval)
    return cancel.is_set()


def install_signal_handlers(cancel: asyncio.Event) -> None:
    """Set ``cancel`` on SIGINT/SIGTERM in the running loop."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, cancel.set)

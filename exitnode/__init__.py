"""exitnode - provision tunnel exit-node VMs on public clouds.

Example:

    import asyncio

    from exitnode import LifecycleDriver, LifecycleOptions, describe, make_user_data
    from exitnode.providers import DigitalOcean

    async def main():
        provider = await DigitalOcean(token_file="~/do-token").create_provider()
        host = describe("digitalocean", boot_script=make_user_data("s3cret"))
        driver = LifecycleDriver(provider, LifecycleOptions(poll_interval=2))
        try:
            active = await driver.provision(host)
            print(active.ip)
        finally:
            await provider.close()

    asyncio.run(main())
"""

from exitnode.api.model import (
    HostDeleteRequest,
    HostDescriptor,
    HostStatus,
    ListFilter,
    ProvisionedHost,
)
from exitnode.bootstrap import generate_auth_token, make_user_data
from exitnode.core.exceptions import (
    CompositeIDError,
    ConfigurationError,
    ExitNodeError,
    HostFailedError,
    NotFoundError,
    ProviderAPIError,
    ProviderError,
    ProvisioningCancelled,
    ProvisioningError,
    TimeoutExceeded,
)
from exitnode.lifecycle import LifecycleDriver, LifecycleOptions, install_signal_handlers
from exitnode.providers.defaults import describe
from exitnode.providers.provider import Provisioner
from exitnode.providers.registry import create_provider

__all__ = [
    "CompositeIDError",
    "ConfigurationError",
    "ExitNodeError",
    "HostDeleteRequest",
    "HostDescriptor",
    "HostFailedError",
    "HostStatus",
    "LifecycleDriver",
    "LifecycleOptions",
    "ListFilter",
    "NotFoundError",
    "ProviderAPIError",
    "ProviderError",
    "ProvisionedHost",
    "ProvisioningCancelled",
    "ProvisioningError",
    "Provisioner",
    "TimeoutExceeded",
    "create_provider",
    "describe",
    "generate_auth_token",
    "install_signal_handlers",
    "make_user_data",
]

from exitnode.core.exceptions import (
    CompositeIDError,
    ConfigurationError,
    ExitNodeError,
    HostFailedError,
    NotFoundError,
    ProviderAPIError,
    ProvisioningCancelled,
    ProvisioningError,
    TimeoutExceeded,
)

__all__ = [
    "CompositeIDError",
    "ConfigurationError",
    "ExitNodeError",
    "HostFailedError",
    "NotFoundError",
    "ProviderAPIError",
    "ProvisioningCancelled",
    "ProvisioningError",
    "TimeoutExceeded",
]

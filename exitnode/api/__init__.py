from exitnode.api.model import (
    CANONICAL_STATUSES,
    HostDeleteRequest,
    HostDescriptor,
    HostStatus,
    ListFilter,
    ProvisionedHost,
)

__all__ = [
    "CANONICAL_STATUSES",
    "HostDeleteRequest",
    "HostDescriptor",
    "HostStatus",
    "ListFilter",
    "ProvisionedHost",
]

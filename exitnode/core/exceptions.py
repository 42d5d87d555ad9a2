"""Exception hierarchy for exitnode.

Every error raised by the library inherits from ExitNodeError, so callers
can catch all of them with a single except clause.
"""

from __future__ import annotations


class ExitNodeError(Exception):
    """Base exception for all exitnode errors."""


class ConfigurationError(ExitNodeError):
    """Raised for invalid configuration, missing credentials or bad input."""


class CompositeIDError(ConfigurationError):
    """Raised when a composite host ID does not have the expected shape."""

    def __init__(self, value: str, expected: int, actual: int) -> None:
        self.value = value
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"malformed host id {value!r}: expected {expected} fields, got {actual}"
        )


class ProviderError(ExitNodeError):
    """Base for failures reported by a cloud API.

    Carries the provider key, the operation that was attempted and the
    resource it targeted. The underlying SDK or HTTP error is chained as
    ``__cause__``.
    """

    def __init__(
        self,
        provider: str,
        operation: str,
        resource: str = "",
        detail: str = "",
    ) -> None:
        self.provider = provider
        self.operation = operation
        self.resource = resource
        self.detail = detail
        target = f" {resource}" if resource else ""
        suffix = f": {detail}" if detail else ""
        super().__init__(f"{provider}: {operation}{target} failed{suffix}")


class ProviderAPIError(ProviderError):
    """Raised when a cloud API call fails."""


class NotFoundError(ProviderError):
    """Raised when a host (or a host with a given IP) does not exist.

    Not a ProviderAPIError: teardown code treats it as "already gone".
    """


class ProvisioningError(ExitNodeError):
    """Raised when a host never reaches the active state."""


class TimeoutExceeded(ProvisioningError):
    """Raised when the poll budget is exhausted before the host is active."""

    def __init__(self, host_id: str, attempts: int, last_status: str) -> None:
        self.host_id = host_id
        self.attempts = attempts
        self.last_status = last_status
        super().__init__(
            f"host {host_id} not active after {attempts} attempts "
            f"(last status: {last_status or 'unknown'})"
        )


class HostFailedError(ProvisioningError):
    """Raised when the provider reports the host in its error state."""

    def __init__(self, host_id: str, status: str) -> None:
        self.host_id = host_id
        self.status = status
        super().__init__(f"host {host_id} entered error state: {status}")


class ProvisioningCancelled(ProvisioningError):
    """Raised when provisioning was interrupted by a cancellation signal."""

    def __init__(self, host_id: str, deleted: bool) -> None:
        self.host_id = host_id
        self.deleted = deleted
        action = "deleted" if deleted else "left running"
        super().__init__(f"provisioning of {host_id} cancelled, host {action}")

"""Internal machinery: HTTP client and retry."""

from .http import (
    Auth,
    BearerAuth,
    HeaderTokenAuth,
    HttpClient,
    HttpError,
)
from .retry import on_status_code, retry

__all__ = [
    "Auth",
    "BearerAuth",
    "HeaderTokenAuth",
    "HttpClient",
    "HttpError",
    "on_status_code",
    "retry",
]

"""Google Compute Engine exit nodes."""

from exitnode.providers.gcp.config import GCE

__all__ = ["GCE"]

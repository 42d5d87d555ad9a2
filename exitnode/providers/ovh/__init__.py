"""OVHcloud Public Cloud exit nodes."""

from exitnode.providers.ovh.config import OVH

__all__ = ["OVH"]

"""Azure Resource Manager exit nodes."""

from exitnode.providers.azure.config import Azure

__all__ = ["Azure"]

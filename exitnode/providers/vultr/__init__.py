"""Vultr exit nodes."""

from exitnode.providers.vultr.config import Vultr

__all__ = ["Vultr"]

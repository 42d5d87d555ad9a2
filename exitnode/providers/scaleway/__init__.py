"""Scaleway exit nodes."""

from exitnode.providers.scaleway.config import Scaleway

__all__ = ["Scaleway"]

"""Equinix Metal exit nodes."""

from exitnode.providers.equinix.config import EquinixMetal

__all__ = ["EquinixMetal"]

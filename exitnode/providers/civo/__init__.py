"""Civo exit nodes."""

from exitnode.providers.civo.config import Civo

__all__ = ["Civo"]

"""Linode exit nodes."""

from exitnode.providers.linode.config import Linode

__all__ = ["Linode"]

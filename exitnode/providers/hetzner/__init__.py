"""Hetzner Cloud exit nodes."""

from exitnode.providers.hetzner.config import Hetzner

__all__ = ["Hetzner"]

"""Cloud providers for exit nodes."""

from exitnode.providers.aws import EC2
from exitnode.providers.azure import Azure
from exitnode.providers.civo import Civo
from exitnode.providers.digitalocean import DigitalOcean
from exitnode.providers.equinix import EquinixMetal
from exitnode.providers.gcp import GCE
from exitnode.providers.hetzner import Hetzner
from exitnode.providers.linode import Linode
from exitnode.providers.ovh import OVH
from exitnode.providers.provider import ProviderConfig, Provisioner
from exitnode.providers.scaleway import Scaleway
from exitnode.providers.vultr import Vultr

__all__ = [
    "EC2",
    "GCE",
    "OVH",
    "Azure",
    "Civo",
    "DigitalOcean",
    "EquinixMetal",
    "Hetzner",
    "Linode",
    "ProviderConfig",
    "Provisioner",
    "Scaleway",
    "Vultr",
]

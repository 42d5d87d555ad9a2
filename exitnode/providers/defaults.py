"""Per-provider default image, plan and placement for an exit node.

Everything here can be overridden on the command line or in the
``[run]`` table of the TOML config.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from exitnode.api.model import HostDescriptor
from exitnode.core.exceptions import ConfigurationError
from exitnode.names import random_name


@dataclass(frozen=True, slots=True)
class ProviderDefaults:
    os_image: str
    plan: str
    region: str = ""
    zone: str = ""
    tags: Mapping[str, str] = field(default_factory=dict)


DEFAULTS: dict[str, ProviderDefaults] = {
    "digitalocean": ProviderDefaults(os_image="ubuntu-16-04-x64", plan="512mb", region="lon1"),
    "equinix": ProviderDefaults(os_image="ubuntu_16_04", plan="t1.small.x86", region="ams1"),
    "scaleway": ProviderDefaults(os_image="ubuntu-bionic", plan="DEV1-S", region="fr-par-1"),
    "civo": ProviderDefaults(
        os_image="811a8dfb-8202-49ad-b1ef-1e6320b20497", plan="g2.small", region="lon1",
    ),
    "gce": ProviderDefaults(
        os_image="projects/debian-cloud/global/images/family/debian-12",
        plan="f1-micro",
        zone="us-central1-a",
        tags={"firewall_name": "inlets"},
    ),
    "ec2": ProviderDefaults(
        os_image="ubuntu/images/hvm-ssd/ubuntu-xenial-16.04-amd64-server-20191114",
        plan="t3.nano",
        region="eu-west-1",
    ),
    "azure": ProviderDefaults(
        os_image="UbuntuServer",
        plan="Standard_B1ls",
        region="eastus",
        tags={
            "image_publisher": "Canonical",
            "image_offer": "UbuntuServer",
            "image_sku": "16.04-LTS",
            "image_version": "latest",
        },
    ),
    "hetzner": ProviderDefaults(os_image="ubuntu-22.04", plan="cx22", region="nbg1"),
    "vultr": ProviderDefaults(os_image="387", plan="vc2-1c-1gb", region="lhr"),
    "linode": ProviderDefaults(os_image="linode/ubuntu22.04", plan="g6-nanode-1", region="eu-west"),
    "ovh": ProviderDefaults(os_image="Ubuntu 22.04", plan="d2-2", region="GRA11"),
}


def describe(
    provider: str,
    *,
    name: str = "",
    region: str = "",
    zone: str = "",
    plan: str = "",
    os_image: str = "",
    boot_script: str = "",
    tags: Mapping[str, str] | None = None,
) -> HostDescriptor:
    """Build a HostDescriptor, filling blanks from the provider's defaults.

    Explicit tags win over default tags. A random name is generated when
    none is given.
    """
    try:
        base = DEFAULTS[provider]
    except KeyError:
        raise ConfigurationError(
            f"no defaults for provider {provider!r}. Valid: {', '.join(DEFAULTS)}"
        ) from None

    return HostDescriptor(
        name=name or random_name(),
        region=region or base.region,
        zone=zone or base.zone,
        plan=plan or base.plan,
        os_image=os_image or base.os_image,
        boot_script=boot_script,
        tags={**base.tags, **(tags or {})},
    )

"""Provider registry: maps provider keys to their config classes.

Config modules are cheap to import; each adapter's SDK is only imported
when its config's ``create_provider()`` runs.
"""

from __future__ import annotations

from exitnode.core.exceptions import ConfigurationError
from exitnode.observability.logger import logger

from .aws.config import EC2
from .azure.config import Azure
from .civo.config import Civo
from .digitalocean.config import DigitalOcean
from .equinix.config import EquinixMetal
from .gcp.config import GCE
from .hetzner.config import Hetzner
from .linode.config import Linode
from .ovh.config import OVH
from .provider import Provisioner
from .scaleway.config import Scaleway
from .vultr.config import Vultr

log = logger.bind(component="registry")

type AnyProviderConfig = (
    DigitalOcean | EC2 | GCE | Azure | Scaleway | Civo | EquinixMetal | Hetzner | Vultr | Linode | OVH
)

PROVIDER_CONFIGS: dict[str, type[AnyProviderConfig]] = {
    "digitalocean": DigitalOcean,
    "ec2": EC2,
    "gce": GCE,
    "azure": Azure,
    "scaleway": Scaleway,
    "civo": Civo,
    "equinix": EquinixMetal,
    "hetzner": Hetzner,
    "vultr": Vultr,
    "linode": Linode,
    "ovh": OVH,
}

# Short and legacy names accepted for the same providers.
ALIASES = {
    "packet": "equinix",
    "do": "digitalocean",
    "aws": "ec2",
    "gcp": "gce",
}


def canonical_name(name: str) -> str:
    key = name.strip().lower()
    key = ALIASES.get(key, key)
    if key not in PROVIDER_CONFIGS:
        raise ConfigurationError(
            f"unknown provider type '{name}'. Valid: {', '.join(PROVIDER_CONFIGS)}"
        )
    return key


async def create_provider(config: AnyProviderConfig) -> Provisioner:
    """Build the adapter for a provider config.

    Raises:
        ConfigurationError: If the config's class is not a registered provider.
    """
    registered = PROVIDER_CONFIGS.get(config.type)
    if registered is None or not isinstance(config, registered):
        raise ConfigurationError(
            f"No provider registered for {type(config).__name__}. "
            f"Available providers: {', '.join(PROVIDER_CONFIGS)}"
        )
    log.debug("Creating provider for config={config_type}", config_type=type(config).__name__)
    return await config.create_provider()

"""DigitalOcean exit nodes.

Example:
    from exitnode.providers.digitalocean import DigitalOcean

    provider = await DigitalOcean(token_file="~/do-token").create_provider()
"""

from exitnode.providers.digitalocean.config import DigitalOcean

__all__ = ["DigitalOcean"]

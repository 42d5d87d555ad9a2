"""AWS EC2 provider configuration."""

from __future__ import annotations

import typing
from dataclasses import dataclass

from exitnode.providers.provider import ProviderConfig

if typing.TYPE_CHECKING:
    from exitnode.providers.aws.provider import EC2Provider


@dataclass(frozen=True, slots=True)
class EC2(ProviderConfig):
    """AWS EC2 provider configuration.

    Credentials are optional: when neither key is given (directly, via file
    or via $AWS_ACCESS_KEY_ID / $AWS_SECRET_ACCESS_KEY) boto3's default
    credential chain is used.

    Example:
        >>> from exitnode.providers.aws import EC2
        >>> config = EC2(region="eu-west-1")

    Args:
        region: AWS region. Default: eu-west-1.
        access_key: Access key ID.
        access_key_file: File holding the access key ID.
        secret_key: Secret access key.
        secret_key_file: File holding the secret access key.
        request_timeout: Connect/read timeout in seconds for each API call.
        terminate_timeout: Seconds to wait for an instance to terminate on delete.
        thread_pool_size: Threads used to drive boto3.
    """

    region: str = "eu-west-1"
    access_key: str | None = None
    access_key_file: str | None = None
    secret_key: str | None = None
    secret_key_file: str | None = None
    request_timeout: float = 30.0
    terminate_timeout: int = 600
    thread_pool_size: int = 4

    @property
    def type(self) -> str: return "ec2"

    async def create_provider(self) -> EC2Provider:
        from exitnode.providers.aws.provider import EC2Provider
        return await EC2Provider.create(self)

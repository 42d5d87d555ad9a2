"""AWS EC2 exit nodes."""

from exitnode.providers.aws.config import EC2

__all__ = ["EC2"]

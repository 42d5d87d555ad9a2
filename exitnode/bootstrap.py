"""User-data scripts that install a tunnel server on first boot.

Adapters never look inside these scripts; they pass them to the provider
as cloud-init user data (encoding them only where the API demands it).
"""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass

DEFAULT_OSS_VERSION = "2.7.4"
DEFAULT_PRO_VERSION = "0.4.3"

_OSS_TEMPLATE = """\
#!/bin/bash
export AUTHTOKEN="{token}"
export CONTROLPORT="{control_port}"

curl -SLsf https://github.com/inlets/inlets/releases/download/{version}/inlets > /tmp/inlets && \\
chmod +x /tmp/inlets  && \\
mv /tmp/inlets /usr/local/bin/inlets

curl -sLO https://raw.githubusercontent.com/inlets/inlets/master/hack/inlets-operator.service && \\
mv inlets-operator.service /etc/systemd/system/inlets.service && \\
echo "AUTHTOKEN=$AUTHTOKEN" > /etc/default/inlets && \\
echo "CONTROLPORT=$CONTROLPORT" >> /etc/default/inlets && \\
systemctl start inlets && \\
systemctl enable inlets
"""

_PRO_TEMPLATE = """\
#!/bin/bash
export AUTHTOKEN="{token}"
export IP=$(curl -sfSL https://checkip.amazonaws.com)

curl -SLsf https://github.com/inlets/inlets-pro/releases/download/{version}/inlets-pro > /tmp/inlets-pro && \\
  chmod +x /tmp/inlets-pro  && \\
  mv /tmp/inlets-pro /usr/local/bin/inlets-pro

curl -sLO https://raw.githubusercontent.com/inlets/inlets-pro/master/artifacts/inlets-pro.service  && \\
  mv inlets-pro.service /etc/systemd/system/inlets-pro.service && \\
  echo "AUTHTOKEN=$AUTHTOKEN" >> /etc/default/inlets-pro && \\
  echo "IP=$IP" >> /etc/default/inlets-pro && \\
  systemctl start inlets-pro && \\
  systemctl enable inlets-pro
"""


@dataclass(frozen=True, slots=True)
class TunnelServer:
    auth_token: str
    control_port: int = 8080
    pro: bool = False
    oss_version: str = DEFAULT_OSS_VERSION
    pro_version: str = DEFAULT_PRO_VERSION

    def user_data(self) -> str:
        if self.pro:
            return _PRO_TEMPLATE.format(token=self.auth_token, version=self.pro_version)
        return _OSS_TEMPLATE.format(
            token=self.auth_token,
            control_port=self.control_port,
            version=self.oss_version,
        )


def make_user_data(
    auth_token: str,
    control_port: int = 8080,
    *,
    pro: bool = False,
    oss_version: str = DEFAULT_OSS_VERSION,
    pro_version: str = DEFAULT_PRO_VERSION,
) -> str:
    return TunnelServer(auth_token, control_port, pro, oss_version, pro_version).user_data()


def generate_auth_token(length: int = 64) -> str:
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))

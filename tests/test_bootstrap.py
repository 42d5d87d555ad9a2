from __future__ import annotations

import string

import pytest

from exitnode.bootstrap import (
    DEFAULT_OSS_VERSION,
    DEFAULT_PRO_VERSION,
    TunnelServer,
    generate_auth_token,
    make_user_data,
)

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]


class TestUserData:
    def test_oss_script(self):
        script = make_user_data("s3cret", 8080)
        assert script.startswith("#!/bin/bash\n")
        assert 'export AUTHTOKEN="s3cret"' in script
        assert 'export CONTROLPORT="8080"' in script
        assert f"releases/download/{DEFAULT_OSS_VERSION}/inlets " in script
        assert "systemctl enable inlets" in script

    def test_custom_control_port(self):
        assert 'export CONTROLPORT="9000"' in make_user_data("t", 9000)

    def test_pro_script(self):
        script = make_user_data("s3cret", pro=True)
        assert 'export AUTHTOKEN="s3cret"' in script
        assert f"inlets-pro/releases/download/{DEFAULT_PRO_VERSION}/inlets-pro" in script
        assert "CONTROLPORT" not in script

    def test_version_override(self):
        assert "/download/9.9.9/" in TunnelServer("t", oss_version="9.9.9").user_data()


class TestAuthToken:
    def test_length_and_alphabet(self):
        token = generate_auth_token()
        assert len(token) == 64
        assert set(token) <= set(string.ascii_letters + string.digits)

    def test_tokens_differ(self):
        assert generate_auth_token(32) != generate_auth_token(32)

from __future__ import annotations

import random
import re

import pytest

from exitnode.api.model import HostDeleteRequest, HostDescriptor, ProvisionedHost
from exitnode.core.exceptions import ConfigurationError
from exitnode.names import random_name
from exitnode.providers.defaults import DEFAULTS, describe

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]


class TestHostDescriptor:
    def test_tags_are_read_only_copy(self):
        tags = {"project_id": "p"}
        host = HostDescriptor(name="a", region="r", plan="p", os_image="o", tags=tags)
        tags["project_id"] = "changed"
        assert host.tag("project_id") == "p"
        with pytest.raises(TypeError):
            host.tags["x"] = "y"  # type: ignore[index]

    def test_empty_name_rejected(self):
        with pytest.raises(ConfigurationError):
            HostDescriptor(name="", region="r", plan="p", os_image="o")

    def test_tag_default(self):
        host = HostDescriptor(name="a", region="r", plan="p", os_image="o", tags={"empty": ""})
        assert host.tag("missing", "d") == "d"
        assert host.tag("empty", "d") == "d"

    @pytest.mark.parametrize(("value", "expected"), [("true", True), ("True", True), ("1", True), ("false", False), ("", False)])
    def test_flag(self, value, expected):
        host = HostDescriptor(name="a", region="r", plan="p", os_image="o", tags={"pro": value})
        assert host.flag("pro") is expected


class TestProvisionedHost:
    def test_is_active(self):
        assert ProvisionedHost(id="1", status="active", ip="1.2.3.4").is_active
        assert not ProvisionedHost(id="1", status="creating").is_active


class TestHostDeleteRequest:
    def test_needs_id_or_ip(self):
        with pytest.raises(ConfigurationError):
            HostDeleteRequest(project_id="p")

    def test_ip_only(self):
        assert HostDeleteRequest(ip="203.0.113.5").ip == "203.0.113.5"


class TestDescribe:
    def test_fills_digitalocean_defaults(self):
        host = describe("digitalocean", name="test-vm")
        assert (host.region, host.plan, host.os_image) == ("lon1", "512mb", "ubuntu-16-04-x64")

    def test_explicit_values_win(self):
        host = describe("digitalocean", name="x", region="nyc3", plan="s-1vcpu-1gb")
        assert host.region == "nyc3"
        assert host.plan == "s-1vcpu-1gb"

    def test_default_tags_merge_under_explicit(self):
        host = describe("gce", name="x", tags={"firewall_name": "custom", "pro": "true"})
        assert host.tag("firewall_name") == "custom"
        assert host.flag("pro")
        assert host.zone == "us-central1-a"

    def test_random_name_when_absent(self):
        assert describe("hetzner").name

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError, match="no defaults"):
            describe("nimbus")

    def test_every_provider_has_plan_and_image(self):
        for name, defaults in DEFAULTS.items():
            assert defaults.plan, name
            assert defaults.os_image, name


class TestRandomName:
    def test_shape(self):
        name = random_name(random.Random(7))
        assert re.fullmatch(r"[a-z]+-[a-z]+[0-9]", name)

    def test_seeded_is_deterministic(self):
        assert random_name(random.Random(1)) == random_name(random.Random(1))

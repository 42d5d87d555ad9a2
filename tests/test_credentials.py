from __future__ import annotations

import pytest

from exitnode.core.exceptions import ConfigurationError
from exitnode.credentials import resolve_secret

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]

ENV = "EXITNODE_TEST_TOKEN"


class TestResolveSecret:
    def test_value_wins(self, tmp_path, monkeypatch):
        token_file = tmp_path / "token"
        token_file.write_text("from-file")
        monkeypatch.setenv(ENV, "from-env")
        assert resolve_secret("from-flag", token_file, ENV) == "from-flag"

    def test_file_before_env(self, tmp_path, monkeypatch):
        token_file = tmp_path / "token"
        token_file.write_text("  from-file\n")
        monkeypatch.setenv(ENV, "from-env")
        assert resolve_secret(None, token_file, ENV) == "from-file"

    def test_env_fallback(self, monkeypatch):
        monkeypatch.setenv(ENV, " from-env ")
        assert resolve_secret(None, None, ENV) == "from-env"

    def test_empty_file_falls_through(self, tmp_path, monkeypatch):
        token_file = tmp_path / "token"
        token_file.write_text("\n")
        monkeypatch.setenv(ENV, "from-env")
        assert resolve_secret(None, token_file, ENV) == "from-env"

    def test_unreadable_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="cannot read"):
            resolve_secret(None, tmp_path / "missing")

    def test_missing_required(self, monkeypatch):
        monkeypatch.delenv(ENV, raising=False)
        with pytest.raises(ConfigurationError, match=f"\\${ENV}"):
            resolve_secret(None, None, ENV)

    def test_optional_returns_empty(self, monkeypatch):
        monkeypatch.delenv(ENV, raising=False)
        assert resolve_secret(None, None, ENV, required=False) == ""

    def test_names_what_is_missing(self):
        with pytest.raises(ConfigurationError, match="no Civo API key"):
            resolve_secret(what="Civo API key")

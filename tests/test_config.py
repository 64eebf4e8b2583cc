"""
Unit tests for configuration loading.

Run with: pytest tests/test_config.py -v
"""

import pytest
import yaml

from mono_firefly_sync.config import (
    CONFIG_ENV_VAR,
    generate_default_config,
    load_config,
)
from mono_firefly_sync.utils.exceptions import ConfigurationError

MINIMAL = """
monobank:
  token: mono-token
firefly:
  api_url: https://firefly.example.com/api
  token: ff-token
"""


@pytest.fixture(autouse=True)
def no_env_config(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)


class TestLoadConfig:
    def test_defaults_fill_missing_sections(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(MINIMAL)

        config = load_config(path)

        assert config.server.port == 80
        assert config.monobank.statement_page_size == 500
        assert config.monobank.retry_delay == 60
        assert config.monobank.client_info_ttl == 300
        assert config.sync.tag == "monosync"
        assert config.sync.external_url == "https://api.monobank.ua"
        assert config.currencies == {}
        assert config.config_file_path == str(path)

    def test_user_values_override_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(MINIMAL + "server:\n  port: 3000\ncurrencies:\n  980: XUA\n  4: XTS\n")

        config = load_config(path)

        assert config.server.port == 3000
        assert config.server.host == "0.0.0.0"
        assert config.currencies == {980: "XUA", 4: "XTS"}

    def test_environment_json_takes_precedence(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text(MINIMAL)
        monkeypatch.setenv(
            CONFIG_ENV_VAR,
            '{"monobank": {"token": "env"}, "firefly": {"api_url": "http://ff", "token": "t"}}',
        )

        config = load_config(path)

        assert config.monobank.token == "env"
        assert config.firefly.api_url == "http://ff"

    def test_missing_token_is_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("firefly:\n  api_url: http://ff\n  token: t\n")

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_invalid_port_is_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(MINIMAL + "server:\n  port: -1\n")

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_unparseable_document(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("monobank: [unclosed\n")

        with pytest.raises(ConfigurationError):
            load_config(path)


def test_generate_default_config(tmp_path):
    output = tmp_path / "out" / "config.yaml"

    generate_default_config(output)

    data = yaml.safe_load(output.read_text())
    assert data["sync"]["tag"] == "monosync"
    assert data["monobank"]["statement_page_size"] == 500

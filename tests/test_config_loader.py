"""Tests for configuration loading."""

import pytest
import yaml
from chainstage.config import ChainstageConfig, Settings, get_config_path, load_config, save_config
from chainstage.core.errors import ConfigurationError


class TestLoadConfig:
    def test_loads_networks(self, tmp_path):
        path = tmp_path / "chainstage.yaml"
        path.write_text(
            """
networks:
  local:
    endpoints: ["http://127.0.0.1:8545"]
    tags: [local, test]
  mainnet:
    endpoints:
      - https://rpc-a.example.com
      - https://rpc-b.example.com
    accounts:
      deployer: 0
      multisig: "0x0000000000000000000000000000000000000abc"
    addresses:
      DAI: "0x6b175474e89094c44da98b954eedeac495271d0f"
    tags: [prod]
"""
        )

        config = load_config(path)

        assert sorted(config.networks) == ["local", "mainnet"]
        mainnet = config.networks["mainnet"]
        assert mainnet.id == "mainnet"
        assert mainnet.endpoints == ["https://rpc-a.example.com", "https://rpc-b.example.com"]
        assert mainnet.accounts == {
            "deployer": 0,
            "multisig": "0x0000000000000000000000000000000000000abc",
        }
        assert mainnet.tags == ["prod"]
        assert config.networks["local"].tags == ["local", "test"]

    def test_endpoint_list_shorthand(self, tmp_path):
        path = tmp_path / "chainstage.yaml"
        path.write_text("networks:\n  local: [http://127.0.0.1:8545]\n")

        config = load_config(path)

        assert config.networks["local"].endpoints == ["http://127.0.0.1:8545"]
        assert config.networks["local"].tags == []

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "chainstage.yaml"
        path.write_text("networks: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(path)

    def test_invalid_network(self, tmp_path):
        path = tmp_path / "chainstage.yaml"
        path.write_text("networks:\n  local:\n    endpoints: []\n")

        with pytest.raises(ConfigurationError, match="Invalid network configuration"):
            load_config(path)

    def test_no_config_anywhere(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))

        assert get_config_path() is None
        assert load_config().networks == {}


class TestConfigPath:
    def test_explicit_path_wins(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "chainstage.yaml").write_text("networks: {}\n")

        assert get_config_path("other.yaml").name == "other.yaml"

    def test_project_file_before_dot_dir(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path / "home"))
        (tmp_path / ".chainstage").mkdir()
        (tmp_path / ".chainstage" / "config.yaml").write_text("networks: {}\n")

        assert get_config_path() == tmp_path / ".chainstage" / "config.yaml"

        (tmp_path / "chainstage.yaml").write_text("networks: {}\n")
        assert get_config_path() == tmp_path / "chainstage.yaml"


class TestSaveConfig:
    def test_save_then_load(self, tmp_path):
        config = ChainstageConfig.from_dict(
            {"networks": {"local": {"endpoints": ["http://127.0.0.1:8545"], "tags": ["local"]}}}
        )
        path = tmp_path / "nested" / "chainstage.yaml"

        save_config(config, path)

        raw = yaml.safe_load(path.read_text())
        assert "id" not in raw["networks"]["local"]
        assert load_config(path) == config


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("CHAINSTAGE_LEDGER_BACKEND", raising=False)
        settings = Settings(_env_file=None)

        assert settings.ledger_backend == "json"
        assert settings.ledger_dir == "deployments"
        assert settings.rpc_max_retries == 3

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("CHAINSTAGE_LEDGER_BACKEND", "sql")
        monkeypatch.setenv("CHAINSTAGE_DEFAULT_NETWORK", "local")
        monkeypatch.setenv("CHAINSTAGE_RPC_TIMEOUT", "5")

        settings = Settings(_env_file=None)

        assert settings.ledger_backend == "sql"
        assert settings.default_network == "local"
        assert settings.rpc_timeout == 5.0

#!/usr/bin/env python3
"""
Test explicit configuration requirements.
"""

import pytest
import yaml

from compliance_ops.config import Configuration

VALID_CONFIG = {
    "explorers": {
        "etherscan": {
            "base_url": "https://api.etherscan.io/v2/api",
            "chain_id": "1",
            "rate_per_second": 5,
            "timeout": 10.0,
        },
        "tron": {
            "base_url": "https://portal.example",
            "rate_per_second": 2,
            "timeout": 10.0,
        },
    },
    "http_client": {
        "max_connections": 10,
        "connect_timeout": 5.0,
        "read_timeout": 10.0,
    },
    "logging": {"level": "DEBUG"},
}


@pytest.fixture
def write_config(tmp_path, monkeypatch):
    monkeypatch.delenv("ETHERSCAN_API_KEY", raising=False)
    monkeypatch.delenv("ETHERSCAN_CHAIN_ID", raising=False)
    monkeypatch.delenv("BACKEND_URL", raising=False)
    monkeypatch.setattr(Configuration, "load_env", staticmethod(lambda: None))

    def _write(data) -> str:
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump(data))
        return str(path)

    return _write


def test_bundled_config_loads():
    config = Configuration()
    etherscan = config.get_etherscan_config()
    assert etherscan["rate_per_second"] > 0
    assert config.get_http_client_config()["max_connections"] >= 1


def test_etherscan_config(write_config):
    config = Configuration(write_config(VALID_CONFIG))
    assert config.get_etherscan_config() == {
        "base_url": "https://api.etherscan.io/v2/api",
        "chain_id": "1",
        "rate_per_second": 5,
        "timeout": 10.0,
    }


def test_chain_id_env_override(write_config, monkeypatch):
    monkeypatch.setenv("ETHERSCAN_CHAIN_ID", "137")
    config = Configuration(write_config(VALID_CONFIG))
    assert config.get_etherscan_config()["chain_id"] == "137"


def test_missing_etherscan_key_is_reported(write_config):
    data = yaml.safe_load(yaml.dump(VALID_CONFIG))
    del data["explorers"]["etherscan"]["rate_per_second"]
    config = Configuration(write_config(data))

    with pytest.raises(
        ValueError,
        match="explorers.etherscan.rate_per_second must be explicitly configured",
    ):
        config.get_etherscan_config()


def test_non_positive_rate_rejected(write_config):
    data = yaml.safe_load(yaml.dump(VALID_CONFIG))
    data["explorers"]["etherscan"]["rate_per_second"] = 0
    config = Configuration(write_config(data))

    with pytest.raises(ValueError, match="rate_per_second must be positive"):
        config.get_etherscan_config()


def test_api_key_placeholder_when_unset(write_config):
    config = Configuration(write_config(VALID_CONFIG))
    assert config.etherscan_api_key == "YourApiKeyToken"


def test_api_key_from_env(write_config, monkeypatch):
    monkeypatch.setenv("ETHERSCAN_API_KEY", "REALKEY1234567")
    config = Configuration(write_config(VALID_CONFIG))
    assert config.etherscan_api_key == "REALKEY1234567"


def test_tron_config(write_config, monkeypatch):
    config = Configuration(write_config(VALID_CONFIG))
    assert config.get_tron_config()["base_url"] == "https://portal.example"

    monkeypatch.setenv("BACKEND_URL", "https://other.example/hub")
    assert config.get_tron_config()["base_url"] == "https://other.example/hub"


def test_http_client_requires_max_connections(write_config):
    data = yaml.safe_load(yaml.dump(VALID_CONFIG))
    data["http_client"]["max_connections"] = 0
    config = Configuration(write_config(data))

    with pytest.raises(ValueError, match="max_connections must be at least 1"):
        config.get_http_client_config()


def test_non_mapping_yaml_rejected(write_config):
    with pytest.raises(ValueError, match="Config file must be YAML dict"):
        Configuration(write_config(["not", "a", "dict"]))


def test_logging_config(write_config):
    config = Configuration(write_config(VALID_CONFIG))
    assert config.get_logging_config() == {"level": "DEBUG"}

"""Configuration management for the compliance portal services."""

import os
from typing import Any

import yaml
from dotenv import load_dotenv

from .explorer.models import PLACEHOLDER_API_KEY


class Configuration:
    """Manages configuration and environment variables for explorer clients."""

    def __init__(self, config_path: str | None = None) -> None:
        """Initialize configuration from YAML and environment variables."""
        self.load_env()  # Load .env for API keys
        self.config_path = config_path or os.path.join(
            os.path.dirname(__file__), "config.yaml"
        )
        self._config = self._load_yaml_config()

    @staticmethod
    def load_env() -> None:
        """Load environment variables from .env file."""
        load_dotenv()

    def _load_yaml_config(self) -> dict[str, Any]:
        """Load configuration from YAML file."""
        with open(self.config_path) as file:
            config = yaml.safe_load(file)
            if not isinstance(config, dict):
                raise ValueError(
                    f"Config file must be YAML dict, got {type(config)}"
                )
            return config

    @property
    def etherscan_api_key(self) -> str:
        """Get the Etherscan API key.

        Returns:
            The key from ETHERSCAN_API_KEY, or the public placeholder token
            when unset so callers can report the key as unconfigured.
        """
        return os.getenv("ETHERSCAN_API_KEY") or PLACEHOLDER_API_KEY

    @staticmethod
    def _require_keys(section: dict[str, Any], keys: list[str], where: str) -> None:
        for key in keys:
            if key not in section:
                raise ValueError(
                    f"{where}.{key} must be explicitly configured in config.yaml"
                )

    def get_etherscan_config(self) -> dict[str, Any]:
        """Get Etherscan configuration from YAML.

        ETHERSCAN_CHAIN_ID in the environment overrides ``chain_id``.

        Returns:
            Dictionary with base_url, chain_id, rate_per_second and timeout.

        Raises:
            ValueError: If required parameters are missing or invalid.
        """
        etherscan_config = self._config.get("explorers", {}).get("etherscan", {})
        self._require_keys(
            etherscan_config,
            ["base_url", "chain_id", "rate_per_second", "timeout"],
            "explorers.etherscan",
        )

        rate = etherscan_config["rate_per_second"]
        timeout = etherscan_config["timeout"]
        if rate <= 0:
            raise ValueError("explorers.etherscan.rate_per_second must be positive")
        if timeout <= 0:
            raise ValueError("explorers.etherscan.timeout must be positive")

        chain_id = os.getenv("ETHERSCAN_CHAIN_ID") or etherscan_config["chain_id"]

        return {
            "base_url": etherscan_config["base_url"],
            "chain_id": str(chain_id),
            "rate_per_second": rate,
            "timeout": timeout,
        }

    def get_tron_config(self) -> dict[str, Any]:
        """Get TRON events endpoint configuration from YAML.

        Raises:
            ValueError: If required parameters are missing or invalid.
        """
        tron_config = self._config.get("explorers", {}).get("tron", {})
        self._require_keys(
            tron_config,
            ["base_url", "rate_per_second", "timeout"],
            "explorers.tron",
        )
        if tron_config["rate_per_second"] <= 0:
            raise ValueError("explorers.tron.rate_per_second must be positive")

        return {
            "base_url": os.getenv("BACKEND_URL") or tron_config["base_url"],
            "rate_per_second": tron_config["rate_per_second"],
            "timeout": tron_config["timeout"],
        }

    def get_http_client_config(self) -> dict[str, Any]:
        """Get shared HTTP client configuration.

        Raises:
            ValueError: If required HTTP client parameters are missing or invalid.
        """
        http_config = self._config.get("http_client", {})
        self._require_keys(
            http_config,
            ["max_connections", "connect_timeout", "read_timeout"],
            "http_client",
        )
        if http_config["max_connections"] < 1:
            raise ValueError("http_client.max_connections must be at least 1")
        return http_config

    def get_logging_config(self) -> dict[str, Any]:
        """Get logging configuration from YAML."""
        return self._config.get("logging", {})

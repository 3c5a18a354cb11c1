"""Configuration loader that reads from JSON file and environment variables."""

import json
import os
import re
from pathlib import Path
from typing import Optional, Dict, Any

from dotenv import load_dotenv

from config.models import HarnessConfig, CoinConfig


_PLACEHOLDER = re.compile(r"^\$\{([A-Za-z_][A-Za-z0-9_]*)\}$")


def coin_env_prefix(coin: str) -> str:
    """Return the environment variable prefix of a coin ('bitcoin-testnet' -> 'BITCOIN_TESTNET')."""
    return re.sub(r"[^A-Za-z0-9]", "_", coin).upper()


class ConfigurationManager:
    """Manages loading and validation of configuration from multiple sources."""

    def __init__(
        self,
        config_path: Optional[str] = None,
        env_file: Optional[str] = None
    ):
        """Initialize configuration manager.

        Args:
            config_path: Path to JSON configuration file (default: ./config.json)
            env_file: Path to .env file (default: ./.env)
        """
        self.config_path = config_path or "./config.json"
        self.env_file = env_file or "./.env"
        self._config: Optional[HarnessConfig] = None

    def load_config(self) -> HarnessConfig:
        """Load configuration from JSON file and environment variables.

        Environment variables take precedence over JSON file values.

        Returns:
            Validated HarnessConfig object

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValidationError: If configuration is invalid
            json.JSONDecodeError: If JSON is malformed
            ValueError: If a referenced environment variable is missing or invalid
        """
        if Path(self.env_file).exists():
            load_dotenv(self.env_file)

        config_data = self._load_json_config()
        config_data = self._override_with_env(config_data)
        self._config = HarnessConfig(**config_data)
        return self._config

    def _load_json_config(self) -> Dict[str, Any]:
        """Load configuration from JSON file."""
        config_path = Path(self.config_path)

        if not config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {self.config_path}"
            )

        with open(config_path, "r") as f:
            try:
                return json.load(f)
            except json.JSONDecodeError as e:
                raise json.JSONDecodeError(
                    f"Invalid JSON in configuration file: {e.msg}",
                    e.doc,
                    e.pos
                )

    def _override_with_env(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Override configuration values with environment variables."""
        fixtures_dir = os.getenv("FIXTURES_DIR")
        if fixtures_dir:
            config_data["fixtures_dir"] = fixtures_dir

        # Node connections, one set of variables per coin
        for coin, coin_data in (config_data.get("coins") or {}).items():
            if not isinstance(coin_data, dict):
                continue
            rpc = coin_data.setdefault("rpc", {})
            prefix = coin_env_prefix(coin)
            rpc_mapping = {
                f"{prefix}_RPC_URL": "url",
                f"{prefix}_RPC_USER": "user",
                f"{prefix}_RPC_PASSWORD": "password",
            }
            for env_var, key in rpc_mapping.items():
                env_value = os.getenv(env_var)
                config_value = rpc.get(key, "")

                match = _PLACEHOLDER.match(config_value) if isinstance(config_value, str) else None
                if match:
                    placeholder_value = os.getenv(match.group(1))
                    if not placeholder_value:
                        raise ValueError(
                            f"{match.group(1)} environment variable is required "
                            f"by coins.{coin}.rpc.{key}. "
                            f"Set it in your .env file or environment."
                        )
                    rpc[key] = placeholder_value
                if env_value:
                    rpc[key] = env_value

        # Logging configuration
        if "logging" not in config_data:
            config_data["logging"] = {}

        log_level = os.getenv("LOG_LEVEL")
        if log_level:
            config_data["logging"]["level"] = log_level.upper()

        log_format = os.getenv("LOG_FORMAT")
        if log_format:
            config_data["logging"]["format"] = log_format.lower()

        # Retry configuration
        if "retry" not in config_data:
            config_data["retry"] = {}

        retry_mapping = {
            "MEMPOOL_ATTEMPTS": "mempool_attempts",
            "BEST_BLOCK_ATTEMPTS": "best_block_attempts",
            "RPC_MAX_ATTEMPTS": "rpc_max_attempts",
        }

        for env_var, key in retry_mapping.items():
            value = os.getenv(env_var)
            if value:
                try:
                    config_data["retry"][key] = int(value)
                except ValueError:
                    raise ValueError(f"Invalid {env_var}: must be an integer")

        return config_data

    def validate_config(self, config: HarnessConfig) -> bool:
        """Validate configuration object against the filesystem.

        Args:
            config: HarnessConfig object to validate

        Returns:
            bool: True if configuration is valid
        """
        fixtures_dir = Path(config.fixtures_dir)
        if not fixtures_dir.is_dir():
            raise ValueError(f"Fixtures directory does not exist: {fixtures_dir}")

        if not os.access(fixtures_dir, os.R_OK):
            raise ValueError(f"Fixtures directory is not readable: {fixtures_dir}")

        return True

    @property
    def config(self) -> HarnessConfig:
        """Get the loaded configuration."""
        if not self._config:
            raise RuntimeError("Configuration not loaded. Call load_config() first.")
        return self._config

    def get_coin_config(self, coin: str) -> Optional[CoinConfig]:
        """Get configuration of a coin by name."""
        return self.config.coin(coin)

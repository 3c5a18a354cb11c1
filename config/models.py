"""Pydantic models for configuration schema validation."""

import logging
from typing import Dict, List, Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

# Use standard logging here since this module is loaded before our logging is configured
logger = logging.getLogger(__name__)


class RPCConfig(BaseModel):
    """Connection settings of a node's JSON-RPC endpoint."""

    url: str = Field(..., description="JSON-RPC endpoint (e.g. 'http://127.0.0.1:8332')")
    user: str = Field(default="", description="RPC user name")
    password: str = Field(default="", description="RPC password")
    timeout_seconds: float = Field(default=25.0, gt=0, le=300, description="Request timeout")
    network: Literal["mainnet", "testnet", "regtest"] = Field(
        default="mainnet",
        description="Network whose address prefixes the parser uses"
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate the endpoint is an http(s) URL."""
        url = v.strip() if v else ""
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"RPC url must be an http(s) URL, got '{v}'")
        if parsed.scheme == "http" and parsed.hostname not in ("localhost", "127.0.0.1", "::1"):
            logger.warning(
                f"RPC url '{parsed.hostname}' uses plain http. "
                f"Credentials will be sent unencrypted."
            )
        return url


class CoinConfig(BaseModel):
    """Per-coin harness settings."""

    rpc: RPCConfig = Field(..., description="Node connection")
    tests: List[str] = Field(
        default_factory=list,
        description="Names of the checks to run for this coin"
    )


class RetryConfig(BaseModel):
    """Configuration for retry behavior."""

    mempool_attempts: int = Field(
        default=3, ge=1, le=10,
        description="Snapshot attempts of the mempool reconciliation"
    )
    best_block_attempts: int = Field(
        default=3, ge=1, le=10,
        description="Attempts of the best block checks"
    )
    best_block_backoff_ms: int = Field(
        default=100, ge=0, le=10000,
        description="Pause after a best block race"
    )
    rpc_max_attempts: int = Field(
        default=3, ge=1, le=10,
        description="Attempts of a JSON-RPC call on connection errors"
    )
    rpc_backoff_seconds: float = Field(
        default=1.0, ge=0, le=60,
        description="Base of the exponential RPC backoff"
    )


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Log level"
    )
    format: Literal["json", "text"] = Field(default="json", description="Log format")


class HarnessConfig(BaseModel):
    """Root configuration model."""

    fixtures_dir: str = Field(default="testdata", description="Directory of <coin>.json fixtures")
    coins: Dict[str, CoinConfig] = Field(..., description="Coins under test by name")
    retry: RetryConfig = Field(default_factory=RetryConfig, description="Retry configuration")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging configuration")

    @field_validator("fixtures_dir")
    @classmethod
    def validate_fixtures_dir(cls, v: str) -> str:
        """Validate directory path."""
        if not v or not v.strip():
            raise ValueError("Fixtures directory cannot be empty")
        return v.strip()

    @field_validator("coins")
    @classmethod
    def validate_coins(cls, v: Dict[str, CoinConfig]) -> Dict[str, CoinConfig]:
        """Validate at least one coin is configured and names are usable."""
        if not v:
            raise ValueError("At least one coin must be configured")
        for name in v:
            if not name or not name.strip() or "/" in name or name.startswith("."):
                raise ValueError(f"Invalid coin name '{name}'")
        return v

    def coin(self, name: str) -> Optional[CoinConfig]:
        """Return the configuration of a coin, or None if not configured."""
        return self.coins.get(name)

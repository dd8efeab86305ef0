"""Application settings and configuration management."""

from pathlib import Path
from typing import Literal

import structlog
import yaml
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

logger = structlog.get_logger(__name__)

PROFILES = ("mainnet", "devnet")


class AppSettings(BaseSettings):
    """Application settings with environment variable support."""

    # Network
    profile: Literal["mainnet", "devnet"] = Field(
        default="mainnet", description="Configuration profile"
    )
    is_devnet: bool = Field(
        default=False, description="Default network before any persisted toggle"
    )
    rpc_url_mainnet: str = Field(
        default="https://api.mainnet-beta.solana.com",
        description="Solana mainnet RPC URL",
    )
    rpc_url_devnet: str = Field(
        default="https://api.devnet.solana.com", description="Solana devnet RPC URL"
    )

    # Aggregator and metadata endpoints
    jupiter_base: str = Field(
        default="https://quote-api.jup.ag/v6", description="Jupiter API base URL"
    )
    token_search_url: str = Field(
        default="https://lite-api.jup.ag/ultra/v1/search",
        description="Token metadata search endpoint",
    )

    # Quoting
    slippage_bps: int = Field(
        default=50, ge=0, le=10_000, description="Slippage tolerance in basis points"
    )
    quote_debounce_ms: int = Field(
        default=600, ge=0, description="Quiet period before a quote request"
    )
    lookup_batch_limit: int = Field(
        default=100, gt=0, description="Maximum mints per batch lookup"
    )
    search_history_limit: int = Field(
        default=20, gt=0, description="Maximum remembered searched addresses"
    )
    http_timeout_seconds: float = Field(
        default=30.0, gt=0, description="HTTP request timeout in seconds"
    )

    # Transaction build
    wrap_and_unwrap_sol: bool = Field(
        default=True, description="Wrap and unwrap native SOL automatically"
    )
    dynamic_compute_unit_limit: bool = Field(
        default=True, description="Let the aggregator size the compute unit limit"
    )
    prioritization_fee_lamports: int | Literal["auto"] = Field(
        default="auto", description="Priority fee in lamports or 'auto'"
    )

    # Storage, logging and signing
    database_path: str = Field(
        default="./solswap.sqlite", description="SQLite database file for local state"
    )
    log_level: str = Field(default="INFO", description="Logging level")
    signer_command: str | None = Field(
        default=None, description="External wallet signer executable"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    def rpc_url_for(self, is_devnet: bool) -> str:
        return self.rpc_url_devnet if is_devnet else self.rpc_url_mainnet

    @property
    def quote_debounce_seconds(self) -> float:
        return self.quote_debounce_ms / 1000


def load_settings(profile: str, yaml_path: str) -> AppSettings:
    """Load settings from YAML file and environment variables.

    Args:
        profile: Configuration profile name (mainnet, devnet)
        yaml_path: Path to YAML configuration file

    Returns:
        AppSettings instance with loaded configuration

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ValidationError: If configuration is invalid
        ValueError: If profile is invalid or the YAML cannot be parsed
    """
    if profile not in PROFILES:
        raise ValueError(
            f"Invalid profile: {profile}. Must be one of: {', '.join(PROFILES)}"
        )

    yaml_file = Path(yaml_path)
    if not yaml_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

    try:
        with open(yaml_file, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}

        if not isinstance(yaml_config, dict):
            raise ValueError("Invalid YAML configuration: expected a mapping")

        yaml_config["profile"] = profile
        yaml_config["is_devnet"] = profile == "devnet"

        logger.info("Loading configuration", profile=profile, yaml_path=yaml_path)

        settings = AppSettings(**yaml_config)

        logger.info(
            "Configuration loaded successfully",
            profile=profile,
            rpc_url=settings.rpc_url_for(settings.is_devnet),
            slippage_bps=settings.slippage_bps,
        )

        return settings

    except yaml.YAMLError as e:
        logger.error("Failed to parse YAML configuration", error=str(e))
        raise ValueError(f"Invalid YAML configuration: {e}") from e
    except ValidationError as e:
        logger.error("Configuration validation failed", error=str(e))
        raise

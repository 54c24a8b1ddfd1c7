"""
Application settings with environment-based configuration.

Priority (highest to lowest):
1. Environment variables (from .env or system)
2. Environment-specific YAML config file (development.yaml, production.yaml)
3. Default YAML config file (default.yaml)
4. Pydantic defaults
"""

import os
import re
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

EVM_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
BURN_ADDRESS = "0x000000000000000000000000000000000000dead"


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    Secrets (database password, Redis password) should come from
    environment variables, not from YAML files.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="allow",
    )

    # Application
    APP_NAME: str = "Passerelle"
    APP_VERSION: str = "0.1.0"
    ENV: str = Field(default="development", description="Environment name")
    DEBUG: bool = Field(default=False, description="Debug mode")

    # API Server
    API_HOST: str = Field(default="0.0.0.0")
    API_PORT: int = Field(default=8000, ge=1024, le=65535)
    API_RELOAD: bool = Field(default=False)

    # CORS Configuration
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins",
    )

    # Database (optional - in-memory store is used when absent or unreachable)
    DATABASE_URL: Optional[str] = Field(
        default=None,
        description="Database connection URL",
    )
    DATABASE_ECHO: bool = Field(default=False)

    # Redis
    REDIS_ENABLED: bool = Field(default=False)
    REDIS_HOST: str = Field(default="localhost")
    REDIS_PORT: int = Field(default=6379, ge=1024, le=65535)
    REDIS_DB: int = Field(default=0, ge=0, le=15)
    REDIS_PASSWORD: Optional[str] = Field(default=None)

    # Destination chain
    CHAIN_RPC_URL: str = Field(
        default="https://api.hyperliquid-testnet.xyz/evm",
        description="Destination chain JSON-RPC URL",
    )
    CHAIN_ID: int = Field(default=998, description="Destination chain ID")
    USDC_ADDRESS: str = Field(
        default=ZERO_ADDRESS,
        description="USDC token contract on the destination chain",
    )
    USDC_DECIMALS: int = Field(default=6, ge=0, le=36)
    ASSET_BRIDGE_ADDRESS: str = Field(
        default="0x2df1c51e09aecf9cacb7bc98cb1742757f163df7",
        description="Trading venue asset bridge contract",
    )

    # Deposit thresholds (USD)
    MINIMUM_DEPOSIT_USD: Decimal = Field(
        default=Decimal("5.10"),
        description="Minimum net amount that is safe to deposit",
    )
    BURN_THRESHOLD_USD: Decimal = Field(
        default=Decimal("5"),
        description="Destination protocol burns deposits below this amount",
    )
    MAXIMUM_DEPOSIT_USD: Decimal = Field(default=Decimal("100000"))
    GAS_REFUEL_AMOUNT: Decimal = Field(
        default=Decimal("1.0"),
        description="Gas token amount suggested for refuel",
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO")

    # Resilience - Circuit Breaker
    CB_FAILURE_THRESHOLD: int = Field(
        default=5,
        description="Circuit breaker failure threshold",
    )
    CB_TIMEOUT_SECONDS: float = Field(
        default=30.0,
        description="Circuit breaker open state timeout",
    )

    # Resilience - Retry
    RETRY_MAX_ATTEMPTS: int = Field(
        default=3,
        description="Maximum retry attempts for transient RPC failures",
    )
    CHAIN_QUERY_TIMEOUT: float = Field(
        default=15.0,
        description="Chain RPC request timeout in seconds",
    )

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = Field(default=True)
    RATE_LIMIT_WINDOW_MS: int = Field(default=60_000, ge=1000)
    RATE_LIMIT_GENERAL: int = Field(
        default=100,
        description="General requests per window per caller",
    )
    RATE_LIMIT_TRANSFER_PER_IP: int = Field(
        default=10,
        description="Transfer creations per window per IP",
    )
    RATE_LIMIT_TRANSFER_PER_WALLET: int = Field(
        default=3,
        description="Transfer creations per window per wallet",
    )
    RATE_LIMIT_STRICT: int = Field(
        default=5,
        description="Sensitive operations per window per IP",
    )
    RATE_LIMIT_CLEANUP_INTERVAL_SECONDS: float = Field(default=60.0, gt=0)

    # Reconciliation
    CHAIN_WATCHER_ENABLED: bool = Field(default=True)
    CHAIN_POLL_INTERVAL_SECONDS: float = Field(default=2.0, gt=0)
    CHAIN_CONFIRMATIONS: int = Field(default=1, ge=0)
    CHAIN_LOG_BATCH_BLOCKS: int = Field(default=500, ge=1)
    STALE_TRANSFER_MAX_AGE_MINUTES: int = Field(default=30, ge=1)
    STALE_SWEEP_INTERVAL_SECONDS: float = Field(default=300.0, gt=0)

    # Balance re-validation after bridging
    BALANCE_POLL_INITIAL_DELAY: float = Field(default=1.0, gt=0)
    BALANCE_POLL_MAX_DELAY: float = Field(default=8.0, gt=0)
    BALANCE_POLL_MAX_WAIT: float = Field(default=60.0, gt=0)

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"Invalid LOG_LEVEL. Must be one of: {allowed}")
        return v_upper

    @field_validator("CHAIN_RPC_URL")
    @classmethod
    def validate_rpc_url(cls, v: str) -> str:
        """RPC endpoint must be http(s)."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("CHAIN_RPC_URL must start with http:// or https://")
        return v

    @field_validator("USDC_ADDRESS", "ASSET_BRIDGE_ADDRESS")
    @classmethod
    def validate_contract_address(cls, v: str) -> str:
        """Contract addresses must be EVM addresses."""
        if not EVM_ADDRESS_PATTERN.fullmatch(v):
            raise ValueError(f"Invalid EVM address: {v}")
        return v.lower()

    @model_validator(mode="after")
    def validate_thresholds(self) -> "Settings":
        """Minimum deposit must leave a buffer above the burn threshold."""
        if self.MINIMUM_DEPOSIT_USD <= self.BURN_THRESHOLD_USD:
            raise ValueError(
                "MINIMUM_DEPOSIT_USD must be greater than BURN_THRESHOLD_USD"
            )
        return self


def validate_configuration(settings: Settings) -> List[str]:
    """
    Check settings that are only fatal outside development.

    Args:
        settings: Settings to check

    Returns:
        List of human-readable problems (empty when configuration is usable)
    """
    problems = []

    for name in ("USDC_ADDRESS", "ASSET_BRIDGE_ADDRESS"):
        address = getattr(settings, name)
        if address in (ZERO_ADDRESS, BURN_ADDRESS):
            problems.append(f"{name} is not configured ({address})")

    if not settings.CHAIN_RPC_URL.startswith(("http://", "https://")):
        problems.append("CHAIN_RPC_URL must be an http(s) URL")

    return problems


def load_config(
    config_file: Optional[str] = None,
    env_file: Optional[str] = None,
    env: Optional[str] = None,
) -> Settings:
    """
    Load configuration from YAML files and environment variables.

    Priority: ENV vars > environment-specific YAML > default YAML > defaults

    Args:
        config_file: Optional YAML config filename override
        env_file: Optional .env filename (e.g., ".env.development")
        env: Optional environment name override (e.g., "development", "test")

    Returns:
        Settings instance

    Raises:
        ValidationError: If a value fails validation
    """
    current_file = Path(__file__).resolve()
    project_root = current_file.parent.parent.parent.parent
    config_dir = project_root / "config"

    environment = env or os.getenv("ENV", "development")

    env_map = {
        "production": (".env.production", "production.yaml"),
        "development": (".env.development", "development.yaml"),
        "test": (".env.test", "test.yaml"),
    }

    if env_file is None:
        default_env_file, default_config_file = env_map.get(
            environment, (".env.development", "development.yaml")
        )
        env_file = default_env_file
        if config_file is None:
            config_file = default_config_file

    env_file_path = project_root / env_file
    if env_file_path.exists():
        load_dotenv(env_file_path, override=True)

    default_config_path = config_dir / "default.yaml"
    merged_config = {}

    if default_config_path.exists():
        with open(default_config_path, "r") as f:
            loaded = yaml.safe_load(f)
            if loaded:
                merged_config = loaded

    if config_file:
        env_config_path = config_dir / config_file
        if env_config_path.exists():
            with open(env_config_path, "r") as f:
                loaded = yaml.safe_load(f)
                if loaded:
                    merged_config.update(loaded)

    # Environment variables win over YAML values
    for key in list(merged_config):
        if key in os.environ:
            merged_config.pop(key)

    return Settings(**merged_config)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or initialize global settings."""
    global _settings
    if _settings is None:
        _settings = load_config()
    return _settings


def override_settings(new_settings: Settings) -> None:
    """Override global settings (for testing)."""
    global _settings
    _settings = new_settings


def reset_settings() -> None:
    """Reset settings to force re-initialization (for testing)."""
    global _settings
    _settings = None

"""Application configuration using Pydantic BaseSettings."""

import logging

import structlog
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file="../.env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = Field(alias="DATABASE_URL")
    db_pool_size: int = Field(default=20, alias="DB_POOL_SIZE")

    # Application Environment
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # CORS Configuration
    cors_origins: str = Field(default="http://localhost:3000", alias="CORS_ORIGINS")

    # Alchemy Integration
    alchemy_api_key: str = Field(default="", alias="ALCHEMY_API_KEY")
    alchemy_auth_token: str = Field(default="", alias="ALCHEMY_AUTH_TOKEN")
    alchemy_webhook_secret: str = Field(default="", alias="ALCHEMY_WEBHOOK_SECRET")
    # Public base URL that Alchemy should deliver webhooks to (e.g. https://api.vibe.xyz)
    alchemy_domain: str = Field(default="", alias="ALCHEMY_DOMAIN")

    # Factory contracts watched with ADDRESS_ACTIVITY webhooks, one per network
    alchemy_factory_contract_address_eth_mainnet: str = Field(
        default="", alias="ALCHEMY_FACTORY_CONTRACT_ADDRESS_ETH_MAINNET"
    )
    alchemy_factory_contract_address_eth_sepolia: str = Field(
        default="", alias="ALCHEMY_FACTORY_CONTRACT_ADDRESS_ETH_SEPOLIA"
    )
    alchemy_factory_contract_address_arb_mainnet: str = Field(
        default="", alias="ALCHEMY_FACTORY_CONTRACT_ADDRESS_ARB_MAINNET"
    )
    alchemy_factory_contract_address_arb_sepolia: str = Field(
        default="", alias="ALCHEMY_FACTORY_CONTRACT_ADDRESS_ARB_SEPOLIA"
    )

    # Webhook processing
    webhook_timeout_seconds: float = Field(default=25.0, alias="WEBHOOK_TIMEOUT_SECONDS")
    persistence_timeout_seconds: float = Field(default=5.0, alias="PERSISTENCE_TIMEOUT_SECONDS")
    referral_code_length: int = Field(default=10, alias="REFERRAL_CODE_LENGTH")

    # Collection sync CLI (~20 requests per second against the NFT API)
    nft_sync_delay_seconds: float = Field(default=0.05, alias="NFT_SYNC_DELAY_SECONDS")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def factory_contracts(self) -> dict[str, str]:
        """Configured factory contract addresses keyed by Alchemy network name."""
        configured = {
            "ETH_MAINNET": self.alchemy_factory_contract_address_eth_mainnet,
            "ETH_SEPOLIA": self.alchemy_factory_contract_address_eth_sepolia,
            "ARB_MAINNET": self.alchemy_factory_contract_address_arb_mainnet,
            "ARB_SEPOLIA": self.alchemy_factory_contract_address_arb_sepolia,
        }
        return {network: address for network, address in configured.items() if address}

    @model_validator(mode="after")
    def validate_required_config(self) -> "Settings":
        """Validate required configuration on startup.

        Validation is skipped in test environments so tests can build settings
        without a webhook secret.
        """
        if self.app_env in ("test", "testing"):
            return self

        if not self.alchemy_webhook_secret:
            raise ValueError(
                "CRITICAL: Missing required environment variable:\n\n"
                "  - ALCHEMY_WEBHOOK_SECRET: Copy the signing key from the Alchemy dashboard\n\n"
                "Webhook deliveries cannot be authenticated without it."
            )

        return self


def configure_logging(settings: Settings) -> None:
    """Configure structlog based on application environment.

    - Production: JSON output for log aggregation
    - Development: Console output for human readability
    """
    if settings.app_env == "production":
        processors = [
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

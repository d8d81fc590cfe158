"""
Settings Module
===============

Pydantic-based configuration with environment variable loading.

Version: 0.1.0
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class BlockchainMode(str, Enum):
    """Blockchain operation mode."""

    MOCK = "mock"
    TESTNET = "testnet"
    MAINNET = "mainnet"


class StoreBackend(str, Enum):
    """Local warranty record store backend."""

    SQL = "sql"
    MEMORY = "memory"


class PostgresSettings(BaseSettings):
    """PostgreSQL database configuration."""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = "localhost"
    port: int = 5432
    user: str = "warranty"
    password: SecretStr = SecretStr("warranty_dev_password")
    db: str = "warranty"

    @property
    def async_url(self) -> str:
        """Generate async SQLAlchemy connection URL."""
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.db}"


class DatabaseSettings(BaseSettings):
    """SQLAlchemy engine configuration."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    # Overrides the PostgreSQL URL, e.g. sqlite+aiosqlite:///./warranty.db
    url: str = ""
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 20


class BlockchainSettings(BaseSettings):
    """Blockchain integration configuration."""

    model_config = SettingsConfigDict(env_prefix="BLOCKCHAIN_")

    mode: BlockchainMode = BlockchainMode.MOCK

    # JSON-RPC endpoint and signer (for testnet/mainnet)
    rpc_url: str = ""
    private_key: SecretStr = SecretStr("")
    contract_address: str = ""
    abi_path: Path | None = None
    chain_id: int | None = None

    # Upper bound for every ledger interaction, in seconds
    timeout_seconds: float = Field(default=60.0, gt=0)

    # First block of the contract; event replays start here. Nodes that cap
    # eth_getLogs ranges need this set close to the deployment block.
    deployment_block: int = Field(default=0, ge=0)


class WarrantySettings(BaseSettings):
    """Warranty issuance and lookup configuration."""

    model_config = SettingsConfigDict(env_prefix="WARRANTY_")

    default_period_days: int = Field(default=365, gt=0, le=36500)
    store_backend: StoreBackend = StoreBackend.SQL
    # Replays the WarrantyIssued log on every issuance (see BLOCKCHAIN_DEPLOYMENT_BLOCK)
    ledger_duplicate_check: bool = True
    public_base_url: str = "http://localhost:8010"
    metadata_image_url: str = (
        "https://via.placeholder.com/400x400/4F46E5/FFFFFF?text=Digital+Warranty"
    )


class CORSSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into list."""
        return [o.strip() for o in self.origins.split(",") if o.strip()]


class ServicePorts(BaseSettings):
    """Service port configuration."""

    warranty: int = Field(default=8010, alias="WARRANTY_PORT")


class Settings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables with sensible defaults.
    Use the global `settings` singleton or call `get_settings()`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # General
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True
    log_level: LogLevel = LogLevel.INFO

    # Project paths
    project_root: Path = Field(default_factory=lambda: Path(__file__).parent.parent.parent)

    # Service ports
    ports: ServicePorts = Field(default_factory=ServicePorts)

    # Storage
    postgres: PostgresSettings = Field(default_factory=PostgresSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)

    # Blockchain configuration
    blockchain: BlockchainSettings = Field(default_factory=BlockchainSettings)

    # Warranty domain
    warranty: WarrantySettings = Field(default_factory=WarrantySettings)

    # Security
    cors: CORSSettings = Field(default_factory=CORSSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Ensure log level is uppercase."""
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @property
    def database_url(self) -> str:
        """Resolved SQLAlchemy URL, explicit override first."""
        return self.database.url or self.postgres.async_url

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        """Check if running in test mode."""
        return self.environment == Environment.TESTING


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings singleton.
    """
    return Settings()

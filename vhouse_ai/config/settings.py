from decimal import Decimal
from typing import Optional
from urllib.parse import quote_plus

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """Database configuration"""

    host: str = "localhost"
    port: int = 5432
    username: str = "postgres"
    password: SecretStr = Field(default=SecretStr("postgres"))
    database: str = "vhouse"
    serverless: bool = Field(
        default=True,
        description="If true, disable connection pooling so serverless DBs can pause.",
    )

    @property
    def url(self) -> str:
        """Get database URL"""
        username = quote_plus(self.username)
        password = quote_plus(self.password.get_secret_value())
        return (
            "postgresql+asyncpg://"
            f"{username}:{password}"
            f"@{self.host}:{self.port}/{self.database}"
        )

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class AwsConfig(BaseSettings):
    """Shared AWS credentials used when a service has none of its own."""

    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    region: str = "us-east-1"

    model_config = SettingsConfigDict(
        env_prefix="AWS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class BedrockConfig(BaseSettings):
    """Amazon Bedrock configuration for the Claude provider."""

    enabled: bool = Field(default=True, validation_alias="BEDROCK_ENABLED")
    region: str = Field(
        default="us-east-1",
        validation_alias="BEDROCK_REGION",
    )
    model_id: str = Field(
        default="anthropic.claude-3-5-sonnet-20240620-v1:0",
        validation_alias="BEDROCK_MODEL_ID",
    )
    max_tokens: int = Field(
        default=4096,
        validation_alias="BEDROCK_MAX_TOKENS",
        ge=1,
        le=8192,
    )
    top_p: float = Field(
        default=0.9,
        validation_alias="BEDROCK_TOP_P",
        ge=0.0,
        le=1.0,
    )
    api_key: SecretStr | None = Field(
        default=None,
        validation_alias="BEDROCK_API_KEY",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class OpenAIConfig(BaseSettings):
    """OpenAI chat completions configuration (fallback provider)."""

    api_key: SecretStr | None = None
    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o-mini"

    model_config = SettingsConfigDict(
        env_prefix="OPENAI_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class GenerationConfig(BaseSettings):
    """Text generation gateway policy."""

    timeout_seconds: float = Field(default=30.0, gt=0)
    health_cooldown_seconds: float = Field(default=60.0, ge=0)
    default_provider: str = "claude"

    model_config = SettingsConfigDict(
        env_prefix="GENERATION_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class OrderingConfig(BaseSettings):
    """Commercial constants used when pricing and reviewing orders."""

    tax_rate: Decimal = Field(default=Decimal("0.16"), ge=0)
    currency: str = "MXN"
    recent_order_limit: int = Field(default=5, ge=0)
    large_order_multiplier: Decimal = Field(default=Decimal("2"), gt=0)
    price_tolerance: Decimal = Field(default=Decimal("0.10"), ge=0)
    recommendation_limit: int = Field(default=3, ge=0)
    catalog_excerpt_limit: int = Field(default=200, ge=1)
    keyword_fallback_enabled: bool = True

    model_config = SettingsConfigDict(
        env_prefix="ORDERING_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "VHouse AI Conversation Service"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    log_file: str = "logs/app.log"
    pipeline_log_file: str = "logs/conversation_pipeline.log"
    create_tables_on_startup: bool = True

    # Database
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    # AWS
    aws: AwsConfig = Field(default_factory=AwsConfig)

    # Providers
    bedrock: BedrockConfig = Field(default_factory=BedrockConfig)
    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)

    # Ordering
    ordering: OrderingConfig = Field(default_factory=OrderingConfig)

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()

"""Configuration management for the Bucketwise service."""

import os
from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BUCKETWISE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server configuration
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Runtime environment (development, staging, production)",
    )
    server_host: str = Field(default="localhost", description="Server bind host")
    server_port: int = Field(default=3340, description="Server bind port")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"],
        description="Origins allowed to call the API from a browser",
    )

    # Auth configuration
    disable_auth: bool = Field(
        default=False,
        description="Disable auth enforcement (dev mode only)",
    )

    @model_validator(mode="after")
    def validate_security_settings(self) -> "Settings":
        """Prevent insecure settings in production."""
        if self.environment == "production" and self.disable_auth:
            raise ValueError(
                "CRITICAL: disable_auth=True is forbidden in production environment. "
                "Set BUCKETWISE_ENVIRONMENT=development to use disable_auth for testing."
            )
        return self

    jwt_secret: SecretStr = Field(
        default=SecretStr(""),
        description="Secret used to verify access tokens issued by the identity provider",
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    jwt_audience: str | None = Field(
        default=None,
        description="Expected `aud` claim (e.g. 'authenticated' for Supabase tokens)",
    )

    # PostgreSQL configuration
    postgres_host: str = Field(default="localhost", description="PostgreSQL host")
    postgres_port: int = Field(default=5432, description="PostgreSQL port")
    postgres_user: str = Field(default="bucketwise", description="PostgreSQL user")
    postgres_password: SecretStr = Field(
        default=SecretStr("bucketwise_dev"), description="PostgreSQL password"
    )
    postgres_db: str = Field(default="bucketwise", description="PostgreSQL database name")
    postgres_pool_size: int = Field(default=10, description="Connection pool size")
    postgres_max_overflow: int = Field(default=20, description="Max overflow connections")

    # LLM provider configuration. Validated against the provider registry at
    # startup so an unknown name is reported as a configuration error.
    ai_provider: str = Field(
        default="anthropic",
        description="Chat backend (anthropic or openai)",
    )
    anthropic_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Anthropic model used for chat replies",
    )
    openai_model: str = Field(default="gpt-4o", description="OpenAI model used for chat replies")
    ai_max_tokens: int = Field(
        default=4096, ge=1, le=64_000, description="Max tokens per chat reply"
    )
    chat_shutdown_grace_seconds: float = Field(
        default=30.0,
        ge=0,
        description="How long shutdown waits for replies still streaming to disconnected clients",
    )

    # Anthropic configuration (BUCKETWISE_ANTHROPIC_API_KEY or ANTHROPIC_API_KEY)
    anthropic_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Anthropic API key",
    )

    # OpenAI configuration (BUCKETWISE_OPENAI_API_KEY or OPENAI_API_KEY)
    openai_api_key: SecretStr = Field(default=SecretStr(""), description="OpenAI API key")

    @model_validator(mode="after")
    def check_api_key_fallbacks(self) -> "Settings":
        """Fall back to non-prefixed env vars for API keys and secrets."""
        if not self.anthropic_api_key.get_secret_value():
            fallback = os.environ.get("ANTHROPIC_API_KEY", "")
            if fallback:
                object.__setattr__(self, "anthropic_api_key", SecretStr(fallback))

        if not self.openai_api_key.get_secret_value():
            fallback = os.environ.get("OPENAI_API_KEY", "")
            if fallback:
                object.__setattr__(self, "openai_api_key", SecretStr(fallback))

        # JWT: Supabase-style deployments export SUPABASE_JWT_SECRET
        if not self.jwt_secret.get_secret_value():
            fallback = os.environ.get("SUPABASE_JWT_SECRET", "") or os.environ.get(
                "JWT_SECRET", ""
            )
            if fallback:
                object.__setattr__(self, "jwt_secret", SecretStr(fallback))

        return self

    @property
    def postgres_url(self) -> str:
        """Construct PostgreSQL connection URL for asyncpg."""
        password = self.postgres_password.get_secret_value()
        return f"postgresql+asyncpg://{self.postgres_user}:{password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"


# Global settings instance
settings = Settings()

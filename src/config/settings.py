"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Mock mode enables local development without a Snowflake account.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like cors_origins), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "Swim Operations Insights API"
    api_version: str = "v1"

    # Snowflake Configuration
    snowflake_account: str = Field(
        default="",
        description="Snowflake account identifier"
    )
    snowflake_user: str = Field(
        default="",
        description="Snowflake service account username (read-only role is enough)"
    )
    snowflake_password: str = Field(
        default="",
        description="Snowflake service account password"
    )
    snowflake_private_key_path: Optional[str] = Field(
        default=None,
        description="Path to RSA private key file for key-pair authentication"
    )
    snowflake_private_key_base64: Optional[str] = Field(
        default=None,
        description="Base64-encoded private key (for deployment, alternative to file path)"
    )
    snowflake_database: str = Field(
        default="SWIM_OPERATIONS",
        description="Snowflake database holding the exported booking records"
    )
    snowflake_schema: str = Field(
        default="RECORDS",
        description="Snowflake schema with one table per collection"
    )
    snowflake_warehouse: str = Field(
        default="COMPUTE_WH",
        description="Snowflake warehouse for query execution"
    )
    snowflake_role: Optional[str] = Field(
        default=None,
        description="Snowflake role to use (optional)"
    )

    # Mock store
    store_mock_mode: bool = Field(
        default=False,
        description="Use an in-memory document store instead of Snowflake. Enables local dev without a DB."
    )
    store_seed_path: Optional[str] = Field(
        default=None,
        description="JSON export ({collection: {id: document}}) loaded into the in-memory store"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins (the dashboard). Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def has_private_key(self) -> bool:
        return bool(self.snowflake_private_key_path or self.snowflake_private_key_base64)

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mock mode settings.

        Returns list of missing required fields.
        This is separate from Pydantic validation because requirements
        depend on whether we're in mock mode.
        """
        missing = []

        # Snowflake only required if not in mock mode
        if not self.store_mock_mode:
            if not self.snowflake_account:
                missing.append("SNOWFLAKE_ACCOUNT")
            if not self.snowflake_user:
                missing.append("SNOWFLAKE_USER")
            # Need either password or private key
            if not self.snowflake_password and not self.has_private_key:
                missing.append("SNOWFLAKE_PASSWORD or SNOWFLAKE_PRIVATE_KEY_PATH")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    This is safe because settings don't change during runtime.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()

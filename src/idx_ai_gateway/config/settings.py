"""Settings configuration"""
import json
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", case_sensitive=False,
        validate_assignment=True
    )

    # Application
    app_name: str = Field(default="IDX AI Gateway", validation_alias="APP_NAME")
    version: str = "1.0.0"
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    debug: bool = Field(default=False, validation_alias="DEBUG")

    # Server
    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    port: int = Field(default=8000, validation_alias="PORT", ge=1, le=65535)
    workers: int = Field(default=1, validation_alias="WORKERS", ge=1)
    reload: bool = Field(default=False, validation_alias="RELOAD")

    # System store (clients and usage records)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./idx_ai_gateway.db", validation_alias="DATABASE_URL"
    )

    # Upstream completion endpoint. Azure is used when AZURE_ENDPOINT is set.
    azure_endpoint: Optional[str] = Field(default=None, validation_alias="AZURE_ENDPOINT")
    azure_api_key: Optional[SecretStr] = Field(default=None, validation_alias="AZURE_API_KEY")
    azure_deployment_id: str = Field(default="gpt-4o-mini", validation_alias="AZURE_DEPLOYMENT_ID")
    azure_api_version: str = Field(default="2023-05-15", validation_alias="AZURE_API_VERSION")
    openai_api_key: Optional[SecretStr] = Field(default=None, validation_alias="OPENAI_API_KEY")
    completion_model: str = Field(default="gpt-4o-mini", validation_alias="COMPLETION_MODEL")
    upstream_timeout_seconds: float = Field(
        default=30.0, validation_alias="UPSTREAM_TIMEOUT_SECONDS", gt=0
    )

    # Basic translation (Azure Translator)
    azure_translator_endpoint: Optional[str] = Field(
        default=None, validation_alias="AZURE_TRANSLATOR_ENDPOINT"
    )
    azure_translator_api_key: Optional[SecretStr] = Field(
        default=None, validation_alias="AZURE_TRANSLATOR_API_KEY"
    )
    azure_translator_region: Optional[str] = Field(
        default=None, validation_alias="AZURE_TRANSLATOR_REGION"
    )

    # Metering
    tokenizer_model: str = Field(default="gpt-4o", validation_alias="TOKENIZER_MODEL")
    quota_warning_ratio: float = Field(default=0.8, validation_alias="QUOTA_WARNING_RATIO", gt=0, le=1)

    # Search AI target databases
    query_timeout_seconds: float = Field(default=10.0, validation_alias="QUERY_TIMEOUT_SECONDS", gt=0)
    default_find_limit: int = Field(default=100, validation_alias="DEFAULT_FIND_LIMIT", ge=1)
    target_pool_size: int = Field(default=5, validation_alias="TARGET_POOL_SIZE", ge=1)
    target_pool_idle_seconds: int = Field(default=10, validation_alias="TARGET_POOL_IDLE_SECONDS", ge=1)
    target_pool_cache_size: int = Field(default=32, validation_alias="TARGET_POOL_CACHE_SIZE", ge=1)
    mssql_odbc_driver: str = Field(
        default="ODBC Driver 18 for SQL Server", validation_alias="MSSQL_ODBC_DRIVER"
    )

    # Geolocation enrichment
    geolocation_enabled: bool = Field(default=True, validation_alias="GEOLOCATION_ENABLED")
    geolocation_timeout_seconds: float = Field(
        default=3.0, validation_alias="GEOLOCATION_TIMEOUT_SECONDS", gt=0
    )
    public_ip_lookup_url: str = Field(
        default="https://api.ipify.org?format=json", validation_alias="PUBLIC_IP_LOOKUP_URL"
    )
    geolocation_url: str = Field(
        default="http://ip-api.com/json/{ip}", validation_alias="GEOLOCATION_URL"
    )

    # Administrative API
    admin_api_token: Optional[SecretStr] = Field(default=None, validation_alias="ADMIN_API_TOKEN")

    # Security
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"], validation_alias="CORS_ORIGINS"
    )
    cors_allow_credentials: bool = Field(default=True, validation_alias="CORS_ALLOW_CREDENTIALS")

    # Logging
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Tracing
    tracing_enabled: bool = Field(default=False, validation_alias="TRACING_ENABLED")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            # Handle JSON array format
            if v.startswith("["):
                try:
                    return json.loads(v)
                except (json.JSONDecodeError, ValueError):
                    pass
            # Handle comma-separated format
            return [origin.strip() for origin in v.split(",")]
        return v

    # Properties
    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def uses_azure(self) -> bool:
        return bool(self.azure_endpoint)

    @property
    def has_completion_credentials(self) -> bool:
        return bool(self.azure_api_key) if self.uses_azure else bool(self.openai_api_key)

    @property
    def has_translator(self) -> bool:
        return bool(self.azure_translator_endpoint and self.azure_translator_api_key)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()

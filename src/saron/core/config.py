"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Stores (tenants) known to the chain, in sync order
STORE_IDS: tuple[str, ...] = ("saron1", "saron2", "saron3")

# Pseudo store id used by the API to request a fan-out over every store
ALL_STORES = "todas"


class StoreCredential(BaseModel):
    """Dapic credentials for one store."""

    store_id: str
    empresa: str
    token_integracao: str


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"

    # Dapic API
    dapic_api_url: str = "https://api.dapic.com.br"
    dapic_timeout: int = 30

    # One empresa/token pair per store; a store missing either is unavailable
    dapic_saron1_empresa: str = ""
    dapic_saron1_token_integracao: str = ""
    dapic_saron2_empresa: str = ""
    dapic_saron2_token_integracao: str = ""
    dapic_saron3_empresa: str = ""
    dapic_saron3_token_integracao: str = ""

    # Database
    database_url: str = "sqlite+aiosqlite:///./saron.db"
    database_connect_retries: int = 5

    # Scheduler
    scheduler_enabled: bool = True
    sync_timezone: str = "America/Sao_Paulo"
    startup_sync_delay_seconds: int = 5

    # API
    cors_allowed_origins: str = "http://localhost:3000,http://localhost:5173"

    @field_validator("cors_allowed_origins")
    @classmethod
    def parse_origin_list(cls, v: str) -> list[str]:
        """Parse comma-separated origin list."""
        if not v:
            return []
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    def store_credentials(self) -> dict[str, StoreCredential]:
        """
        Build the credential map for every store that has both values set.

        Returns:
            Mapping of store id to credentials, in STORE_IDS order
        """
        credentials: dict[str, StoreCredential] = {}
        for store_id in STORE_IDS:
            empresa = getattr(self, f"dapic_{store_id}_empresa", "").strip()
            token = getattr(self, f"dapic_{store_id}_token_integracao", "").strip()
            if empresa and token:
                credentials[store_id] = StoreCredential(
                    store_id=store_id,
                    empresa=empresa,
                    token_integracao=token,
                )
        return credentials


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

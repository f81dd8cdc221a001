"""Runtime settings, read from PILOTREPORTS_* env vars or a .env file."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PILOTREPORTS_",
        env_file=".env",
        extra="ignore",
    )

    # hosted backend
    supabase_url: str | None = None
    supabase_key: str | None = None
    request_timeout: float = 30.0

    # local backend, used when no supabase url is set
    duckdb_path: str | None = None

    mode: Literal["live", "sample"] = "live"
    query_strategy: Literal["sql", "rpc"] = "sql"
    # when on, live failures return sample data tagged with fallback_reason
    sample_fallback: bool = False

    rpc_limit: int = 1000
    raw_limit: int = 500

    cache_enabled: bool = True
    cache_ttl: float = 300.0

    log_level: str = "WARNING"

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def get_settings() -> Settings:
    return Settings()

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="SL_", extra="ignore")

    app_name: str = "Stockledger FIFO Inventory"
    env: str = "dev"

    database_url: str = "sqlite+pysqlite:///./stockledger.db"
    database_echo: bool = False

    # SQLite waits this long for the write lock before raising "database is locked".
    sqlite_busy_timeout_seconds: float = Field(default=30.0, gt=0)
    # PostgreSQL: SET LOCAL lock_timeout for every mutating transaction (0 disables).
    lock_timeout_ms: int = Field(default=5000, ge=0)

    conflict_max_retries: int = Field(default=3, ge=0)
    conflict_retry_backoff_seconds: float = Field(default=0.05, ge=0)

    log_level: str = "INFO"
    log_json: bool = False

    def model_post_init(self, __context) -> None:
        if self.env.lower() == "dev":
            return
        if self.database_url.startswith("sqlite") and ":memory:" in self.database_url:
            raise ValueError("in-memory sqlite is not allowed outside dev mode; set SL_DATABASE_URL")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()

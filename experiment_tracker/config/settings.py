from __future__ import annotations

from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_ENV: str = "production"
    APP_VERSION: str = "1.0.0"
    ALLOWED_ORIGINS: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    LOG_LEVEL: str = "INFO"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    STATE_DB_PATH: str = "./workspace/experiments.db"

    AUTH_ENABLED: bool = True
    OAUTH_PROVIDER: str = "github"
    AUTH_PROXY_SECRET: str = ""
    ADMIN_USERNAMES: str = ""
    JWT_SECRET_KEY: str = "dev-insecure-secret-key"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_TTL_MINUTES: int = 720

    UTILIZATION_LIMIT: int = 100
    DEFAULT_PAGE_LIMIT: int = 50
    MAX_PAGE_LIMIT: int = 200
    EXPERIMENT_LIST_LOG_PREVIEW: int = 5
    EXPERIMENT_DETAIL_LOG_PREVIEW: int = 50

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @property
    def state_db_path(self) -> Path:
        return Path(self.STATE_DB_PATH).expanduser().resolve()

    @property
    def oauth_provider_normalized(self) -> str:
        return str(self.OAUTH_PROVIDER or "github").strip().lower() or "github"

    @property
    def admin_usernames(self) -> set[str]:
        return {item.strip().lower() for item in str(self.ADMIN_USERNAMES or "").split(",") if item.strip()}

    @property
    def auth_proxy_secret(self) -> str:
        return str(self.AUTH_PROXY_SECRET or "").strip()


settings = Settings()

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
  model_config = SettingsConfigDict(env_file=".env", extra="ignore")

  storage_backend: Literal["relational", "document"] = "relational"
  database_url: str = "postgresql+asyncpg://retrograde:retrograde@db:5432/retrograde"

  firestore_base_url: str = "https://firestore.googleapis.com"
  firestore_project: str = "retrograde"
  firestore_database: str = "(default)"
  firestore_token: str | None = None

  store_timeout_seconds: float = 5.0

  app_secret: str = "dev-secret-change-me"
  app_version: str = "0.1.0"
  cookie_secure: bool = False
  cookie_domain: str | None = None

  log_level: str = "INFO"
  cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

  def cors_origin_list(self) -> list[str]:
    return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()

from __future__ import annotations

from pathlib import Path
from typing import Any, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DB_PATH = "./data/choirhub.sqlite"


class Settings(BaseSettings):
    """
    choirhub settings, read from the environment (or `.env`).

    Env var names are the aliases. Targeting/attendance policy lives here too
    so routes can pass it down to the services explicitly.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    env: str = Field(default="local", alias="APP_ENV")
    app_name: str = Field(default="choirhub", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # uvicorn
    host: str = Field(default="127.0.0.1", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Comma-separated in the environment
    cors_allow_origins: str = Field(default="*", alias="CORS_ALLOW_ORIGINS")

    # DATABASE_URL wins; otherwise a SQLite file at DB_PATH
    database_url: str = Field(default="", alias="DATABASE_URL")
    db_path: str = Field(default=DEFAULT_DB_PATH, alias="DB_PATH")

    # Reject target ids the choir doesn't know (default: they match nobody)
    strict_targeting: bool = Field(default=False, alias="STRICT_TARGETING")

    # Lock a member's response once a recorder has marked actual attendance
    freeze_responses_after_marking: bool = Field(default=True, alias="FREEZE_RESPONSES_AFTER_MARKING")

    @field_validator("log_level", mode="before")
    @classmethod
    def _norm_log_level(cls, v: Any) -> str:
        return ("" if v is None else str(v)).strip().upper() or "INFO"

    @field_validator("host", mode="before")
    @classmethod
    def _norm_host(cls, v: Any) -> str:
        return ("" if v is None else str(v)).strip() or "127.0.0.1"

    @field_validator("database_url", "db_path", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> str:
        return ("" if v is None else str(v)).strip()

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()] or ["*"]

    @property
    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url

        path = self.db_path or DEFAULT_DB_PATH
        if path.startswith("sqlite:"):
            return path

        p = Path(path)
        if p.is_absolute():
            return f"sqlite:///{p.as_posix()}"
        return f"sqlite:///./{p.as_posix()}"


settings = Settings()

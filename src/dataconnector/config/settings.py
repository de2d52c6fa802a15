from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from pathlib import Path
from typing import Literal
from functools import lru_cache

from sqlalchemy.engine import URL, make_url


class Settings(BaseSettings):
    """
    Connection and logging settings loaded from the environment.

    Instances are frozen: a Connector receives one Settings value at construction
    and nothing can mutate it afterwards.
    """

    # Environment
    ENV: Literal["development", "testing", "staging", "production"] = "development"

    # Database configuration
    # DB_URL wins over the individual parts when both are present.
    DB_URL: str | None = None
    DB_DRIVER: str = "mssql+pyodbc"
    DB_HOST: str | None = None
    DB_PORT: int | None = None
    DB_NAME: str | None = None
    DB_USERNAME: str | None = None
    DB_PASSWORD: str | None = None
    DB_QUERY: dict[str, str] = {}
    DB_CONNECT_TIMEOUT: int = 30
    DB_APPLICATION_NAME: str | None = None

    # SQLAlchemy
    SQLALCHEMY_ECHO: bool = False

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"
    LOG_TO_STDOUT: bool = True
    LOG_DIR: Path = Path("/var/log/dataconnector")
    LOG_MAX_BYTES: int = 10_000_000  # 10 MB
    LOG_BACKUP_COUNT: int = 5
    ENABLE_SQL_LOGGING: bool = False

    # --- Derived settings ---
    @property
    def DATABASE_URL(self) -> URL:
        """
        Return the SQLAlchemy URL for the configured database.

        An explicit DB_URL is parsed as-is. Otherwise the URL is assembled from
        DB_DRIVER, DB_USERNAME, DB_PASSWORD, DB_HOST, DB_PORT, DB_NAME and DB_QUERY.
        URL.create() escapes credentials, so passwords containing '@' or '/' are safe.
        """
        if self.DB_URL:
            return make_url(self.DB_URL)

        return URL.create(
            drivername=self.DB_DRIVER,
            username=self.DB_USERNAME,
            password=self.DB_PASSWORD,
            host=self.DB_HOST,
            port=self.DB_PORT,
            database=self.DB_NAME,
            query=self.DB_QUERY,
        )

    # --- Validators ---
    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str | None) -> str | None:
        """Upper-case LOG_LEVEL so `debug` and `DEBUG` are both accepted."""
        return v.upper() if isinstance(v, str) else v

    @field_validator("LOG_FORMAT", mode="before")
    @classmethod
    def normalize_log_format(cls, v: str | None) -> str | None:
        return v.lower() if isinstance(v, str) else v

    @field_validator("DB_CONNECT_TIMEOUT")
    @classmethod
    def check_connect_timeout(cls, v: int) -> int:
        # 0 disables the explicit timeout and leaves the driver default in place
        if v < 0:
            raise ValueError("DB_CONNECT_TIMEOUT must be zero or positive")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )


# Settings are read from the environment once per process.
@lru_cache()
def get_settings() -> Settings:
    return Settings()

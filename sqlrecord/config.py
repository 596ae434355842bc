"""
Configuration settings for sqlrecord.

Uses Pydantic Settings to load environment variables for the database
connection and logging. The connection itself only ever sees a frozen
``ConnectionConfig``; ``Settings`` is the env-backed source for one.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConnectionConfig(BaseModel):
    """
    Immutable description of one database connection.
    """

    driver: str = Field(..., description="Driver name (pgsql, postgresql, sqlite).")
    host: str = Field("localhost", description="Server host name.")
    port: Optional[int] = Field(None, description="Server port; driver default when unset.")
    database: str = Field(..., description="Database name, or file path for sqlite.")
    username: Optional[str] = Field(None, description="Login role.")
    password: Optional[str] = Field(None, repr=False, description="Login password.")
    charset: str = Field("utf8", description="Client encoding.")
    options: Dict[str, Any] = Field(default_factory=dict, description="Driver keyword options.")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "extra": "ignore",
    }

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "ConnectionConfig":
        """Build a config from a plain mapping, ignoring unknown keys."""
        data = {key: value for key, value in mapping.items() if value is not None}
        return cls.model_validate(data)

    @property
    def dsn(self) -> str:
        """
        Driver-style connection string, without credentials.

        ``pgsql:host=H;port=P;dbname=D;charset=C`` or ``sqlite:<path>``.
        """
        if self.driver == "sqlite":
            return f"sqlite:{self.database}"
        parts = [f"host={self.host}"]
        if self.port is not None:
            parts.append(f"port={self.port}")
        parts.append(f"dbname={self.database}")
        parts.append(f"charset={self.charset}")
        return f"{self.driver}:" + ";".join(parts)


class Settings(BaseSettings):
    # Database
    db_driver: str = Field("pgsql", alias="DB_DRIVER")
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: Optional[int] = Field(5432, alias="DB_PORT")
    db_database: str = Field("sqlrecord", alias="DB_DATABASE")
    db_username: str = Field("postgres", alias="DB_USERNAME")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_charset: str = Field("utf8", alias="DB_CHARSET")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def connection_config(self) -> ConnectionConfig:
        """
        Build the frozen connection config from the loaded settings.
        """
        return ConnectionConfig(
            driver=self.db_driver,
            host=self.db_host,
            port=self.db_port,
            database=self.db_database,
            username=self.db_username,
            password=self.db_password,
            charset=self.db_charset,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["ConnectionConfig", "Settings", "get_settings"]

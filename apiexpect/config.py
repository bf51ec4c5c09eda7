# apiexpect/config.py
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExpectSettings(BaseSettings):
    """
    Env-driven configuration for scenario runs.
    Override via APIEXPECT_* environment variables or a .env file at repo root.
    """
    log_level: str = Field(default="INFO")
    http_timeout_s: Optional[float] = Field(default=None)  # connection-level override
    grpc_timeout_s: Optional[float] = Field(default=None)  # per-call deadline, none by default
    verify_ssl: bool = Field(default=True)
    log_format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    model_config = SettingsConfigDict(
        env_prefix="APIEXPECT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

"""Runtime configuration loading via Pydantic settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from statscope.agent.keymap import RESERVED_CHARACTERS, validate_name


class Settings(BaseSettings):
    """Scope tree configuration sourced from environment variables."""

    report_interval: float = Field(default=10.0, ge=0, alias="REPORT_INTERVAL")
    metrics_prefix: str = Field(default="", alias="METRICS_PREFIX")
    metrics_separator: str = Field(default=".", alias="METRICS_SEPARATOR")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @field_validator("metrics_prefix")
    @classmethod
    def check_prefix(cls, value: str) -> str:
        return validate_name(value, kind="prefix", allow_empty=True)

    @field_validator("metrics_separator")
    @classmethod
    def check_separator(cls, value: str) -> str:
        if RESERVED_CHARACTERS.intersection(value):
            raise ValueError(f"separator {value!r} contains a reserved character")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()  # type: ignore[call-arg]

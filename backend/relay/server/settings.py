"""Relay server configuration via environment variables."""

import json
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode


def parse_cors_origins(value: str | list[str]) -> list[str]:
    """Accept a list, a JSON array string, or a comma-separated string.

    Raises ValueError if the result would be empty.
    """
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.startswith("["):
            try:
                value = json.loads(stripped)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON array: {e}") from e
            if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
                raise ValueError("JSON value must be an array of strings")
        else:
            value = [origin.strip() for origin in stripped.split(",") if origin.strip()]
    if not value:
        raise ValueError("cors_origins must not be empty")
    return value


class RelayServerSettings(BaseSettings):
    model_config = {"env_prefix": "RELAY_"}

    # NoDecode keeps pydantic-settings from JSON-decoding the env var itself,
    # so the validator can also accept "a.com,b.com".
    cors_origins: Annotated[list[str], NoDecode] = ["*"]
    log_dir: str | None = Field(default=None, min_length=1)
    room_code_length: int = Field(default=6, ge=4, le=12)
    health_message: str = Field(default="Bullet Hell Co-op Server Running", min_length=1)
    max_decode_errors: int = Field(default=5, ge=1)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_cors_origins(v)

from __future__ import annotations

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .rules import DEFAULT_META_COMMANDS, DEFAULT_SCHEMA, SCHEMA_NAME


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SQL_NORMALIZER_", env_file=".env")

    default_schema: str = DEFAULT_SCHEMA
    meta_commands: List[str] = Field(default_factory=lambda: sorted(DEFAULT_META_COMMANDS))
    fix_search_path: bool = True
    strip_schema_prefix: bool = True
    max_upload_bytes: int = 10 * 1024 * 1024
    log_level: str = "INFO"

    @field_validator("default_schema")
    @classmethod
    def _unquoted_identifier(cls, value: str) -> str:
        if not SCHEMA_NAME.fullmatch(value):
            raise ValueError(f"default_schema must be a plain identifier, got {value!r}")
        return value

    @field_validator("meta_commands")
    @classmethod
    def _strip_backslashes(cls, value: List[str]) -> List[str]:
        return [v.lstrip("\\").strip() for v in value if v.strip()]


settings = Settings()

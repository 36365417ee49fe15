"""
Application configuration using Pydantic Settings.

Supports environment variables and .env files for configuration.
"""

from functools import lru_cache
import json
from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    env: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 4

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Template source (GitHub)
    github_token: str | None = None
    github_repo: str = "admin-shell-io/submodel-templates"
    github_branch: str = "main"
    github_raw_base_url: str = "https://raw.githubusercontent.com"
    github_api_version: str = "2022-11-28"

    # Caching
    cache_dir: Path | None = Path("./cache/templates")
    cache_ttl_hours: int = 24

    # Persistence (BaSyx AAS Environment)
    basyx_environment_url: str = "http://localhost:4001"
    basyx_timeout_seconds: float = 30.0

    # Forms
    default_language: str = "en"
    supported_languages: list[str] = ["en", "de", "fr", "es", "it"]

    # File upload limits
    max_upload_size_mb: int = 50

    @field_validator("cors_origins", "supported_languages", mode="before")
    @classmethod
    def parse_string_list(cls, v):
        if isinstance(v, str):
            value = v.strip()
            if value.startswith("["):
                try:
                    parsed = json.loads(value)
                    if isinstance(parsed, list):
                        return [str(item).strip() for item in parsed if str(item).strip()]
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("cache_dir", mode="before")
    @classmethod
    def parse_cache_dir(cls, v):
        if isinstance(v, str):
            return Path(v) if v.strip() else None
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "FORMSTUDIO_",
        "case_sensitive": False,
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

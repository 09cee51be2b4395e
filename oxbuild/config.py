"""Configuration settings for oxbuild.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the OXBUILD_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="OXBUILD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    config_path: Path | None = Field(
        default=None,
        description="Explicit project config file (overrides discovery)",
    )
    build_dir_name: str = Field(
        default="build",
        description="Build directory name relative to the project root",
    )

    # Toolchain
    toolchain: str = Field(
        default="cargo",
        description="Build driver invoked to compile the application",
    )
    compiler: str = Field(
        default="rustc",
        description="Compiler queried for its version",
    )
    allocator_feature: str = Field(
        default="jemalloc",
        description="Toolchain feature enabled for the jemalloc allocator",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]

"""
Configuration management for the Socrates C++ sandbox.
Supports environment variables and .env files.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SandboxConfig(BaseSettings):
    """Execution limits and container settings shared by every request."""

    model_config = SettingsConfigDict(env_prefix="SANDBOX_", frozen=True)

    # Image
    image_name: str = Field(default="gcc:latest", description="Compiler image")
    docker_base_url: str | None = Field(
        default=None,
        description="Docker daemon URL (falls back to the environment)"
    )

    # Resource limits
    cpu_limit: float = Field(default=1.0, gt=0, description="CPU cores per container")
    cpu_period: int = Field(default=100_000, description="CFS period in microseconds")
    memory_limit: int = Field(
        default=128 * 1024 * 1024,
        description="Hard memory ceiling in bytes (swap ceiling is equal)"
    )

    # Timeouts (seconds)
    compile_timeout: float = Field(default=5.0, gt=0)
    run_timeout: float = Field(default=10.0, gt=0)

    # Submission limits
    max_code_size: int = Field(default=10 * 1024, description="Max source size in bytes")

    # Build
    compiler: str = Field(default="g++")
    cxx_standard: str = Field(default="c++17")
    warning_flags: tuple[str, ...] = Field(default=("-Wall", "-Wextra"))
    container_workdir: str = Field(default="/workspace")
    binary_path: str = Field(
        default="/tmp/main",
        description="Compiled binary location, outside the read-only mount"
    )

    # Host side
    workspace_root: Path = Field(
        default=Path("temp"),
        description="Directory under which per-request workspaces are created"
    )

    @property
    def cpu_quota(self) -> int:
        return int(self.cpu_limit * self.cpu_period)

    @property
    def memswap_limit(self) -> int:
        # equal to memory_limit: no extra swap
        return self.memory_limit

    @property
    def total_timeout(self) -> float:
        return self.compile_timeout + self.run_timeout


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__"
    )

    app_name: str = "Socrates Sandbox"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = Field(default=False, description="Debug mode")

    sandbox: SandboxConfig = Field(default_factory=SandboxConfig)

    @field_validator("debug", mode="before")
    @classmethod
    def validate_debug(cls, v: str | bool) -> bool:
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.lower() in ("true", "1", "yes", "on")
        return False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="GITRAF_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="gitraf", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production"] = Field(
        default="production", description="Environment mode"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log output format"
    )

    repository_base_path: Path = Field(
        default=Path("/opt/ogit/data/repos"),
        description="Store root holding the bare repositories",
    )
    pages_base_path: Path = Field(
        default=Path("/opt/ogit/pages"),
        description="Root of build workspaces and published sites",
    )
    lock_dir: Path = Field(
        default=Path("/tmp/gitraf-locks"),
        description="Directory for per-repository lock files",
    )

    git_binary_path: str = Field(default="git", description="Path to git binary")

    # Backend transport
    transport_command: list[str] = Field(
        default_factory=list,
        description="Command prefix for the pack transport, e.g. docker exec -i ogit",
    )
    transport_repository_root: Optional[str] = Field(
        default=None,
        description="Repository root as seen by the transport (host path if unset)",
    )
    transport_terminate_grace_seconds: float = Field(
        default=5.0, description="Grace period before a terminated transport is killed"
    )

    # Hooks
    hook_timeout_seconds: float = Field(
        default=900.0, description="Upper bound for a single hook invocation"
    )

    # Pages
    pages_enabled: bool = Field(
        default=True, description="Run the pages pipeline as a built-in post-receive hook"
    )
    pages_config_filename: str = Field(
        default="git-pages.json", description="Deployment config file inside the bare repo"
    )
    pages_build_timeout_seconds: float = Field(
        default=600.0, description="Timeout for dependency install and build commands"
    )
    pages_lock_timeout_seconds: float = Field(
        default=600.0, description="How long a deployment waits for the repository lock"
    )
    pages_keep_releases: int = Field(
        default=3, ge=1, description="Published releases retained per repository"
    )

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None

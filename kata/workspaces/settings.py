"""Service configuration loaded from KATA_* environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class KataSettings(BaseSettings):
    """Kata workspace service settings.

    All fields are read from environment variables with the ``KATA_`` prefix.
    For example, ``KATA_DATA_ROOT=~/.kata`` maps to ``data_root``.
    """

    model_config = SettingsConfigDict(
        env_prefix="KATA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    # -- Data storage ----------------------------------------------------------
    data_root: str = "./data"
    """Application data directory.  Holds the registry, worktrees and repo cache."""

    # -- External tools --------------------------------------------------------
    git_binary: str = "git"
    gh_binary: str = "gh"

    # -- Concurrency -----------------------------------------------------------
    worker_limit: int = Field(default=4, ge=1)
    """Maximum number of subprocess-bound operations running at once."""

    lock_timeout: float = Field(default=10.0, gt=0)
    """Seconds to wait for the registry lock before reporting the state unavailable."""

    # -- Server ----------------------------------------------------------------
    host: str = "127.0.0.1"
    port: int = 8765

    # -- Derived paths ---------------------------------------------------------

    @property
    def data_path(self) -> Path:
        return Path(self.data_root).expanduser().resolve()

    @property
    def worktrees_root(self) -> Path:
        """Destination root for new worktrees: ``{data_root}/workspaces``."""
        return self.data_path / "workspaces"

    @property
    def github_cache_root(self) -> Path:
        """Default cache root for GitHub clones: ``{data_root}/repo-cache/github``."""
        return self.data_path / "repo-cache" / "github"


@lru_cache(maxsize=1)
def get_settings() -> KataSettings:
    """Return a cached settings instance.

    Call ``get_settings.cache_clear()`` in tests to force a re-read after
    overriding env vars.
    """
    return KataSettings()

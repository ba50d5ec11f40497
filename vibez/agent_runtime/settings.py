"""Service configuration loaded from VIBEZ_* environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class VibezSettings(BaseSettings):
    """Vibez Agent Runtime settings.

    All fields are read from environment variables with the ``VIBEZ_`` prefix.
    For example, ``VIBEZ_LOG_LEVEL=DEBUG`` maps to ``log_level``.

    LLM provider keys (ANTHROPIC_API_KEY, OPENAI_API_KEY, ...) are **not**
    managed here -- they are read directly by pydantic-ai from the
    environment.  ``create_coding_agent`` only checks that the key for the
    configured provider is present.
    """

    model_config = SettingsConfigDict(
        env_prefix="VIBEZ_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        protected_namespaces=("settings_",),
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    # -- Server ----------------------------------------------------------------
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 3000
    graceful_shutdown_timeout: int = 600
    """Seconds to wait for in-flight turns to finish during shutdown.

    After this timeout, remaining turns are cancelled.
    """

    # -- Workspaces ------------------------------------------------------------
    workspaces_root: str = "./workspaces"
    """Directory holding one isolated workspace per user: ``{workspaces_root}/{user_id}/``."""

    # -- Conversation state ----------------------------------------------------
    session_store: Literal["memory", "local"] = "memory"
    data_root: str = "./data"
    """Root for the local session store (only when session_store = "local")."""

    # -- Model -----------------------------------------------------------------
    model: str = "anthropic:claude-sonnet-4-5"
    """pydantic-ai model identifier (``provider:model-name``)."""

    model_temperature: float = 0.2
    model_max_tokens: int = 4096
    system_prompt: str | None = None
    """Optional Jinja2 template overriding the built-in instructions."""

    turn_timeout: float = 600
    """Upper bound in seconds for a single chat turn, tool calls included."""

    # -- Approval service ------------------------------------------------------
    approval_api_url: str | None = None
    approval_api_key: SecretStr | None = None
    approval_timeout: float = 15

    # -- Tool execution --------------------------------------------------------
    node_executable: str = "node"
    python_executable: str = "python3"
    git_timeout: float = 120
    """Timeout in seconds for git subprocesses (clone, config, command)."""

    max_output_bytes: int = 1_000_000
    """Per-stream cap on captured subprocess output."""

    max_read_bytes: int = 5_000_000
    """Largest file ``read_file`` will return."""

    # -- Helpers ---------------------------------------------------------------

    @property
    def approval_configured(self) -> bool:
        return bool(self.approval_api_url and self.approval_api_key)


def get_settings() -> VibezSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``_get_settings_cached.cache_clear()`` in tests to
    force a re-read after overriding env vars.
    """
    return _get_settings_cached()


def _get_settings_cached() -> VibezSettings:
    """Inner function wrapped by lru_cache (allows type-safe cache_clear)."""
    return VibezSettings()


# Apply lru_cache at runtime so the function is only called once.
from functools import lru_cache  # noqa: E402

_get_settings_cached = lru_cache(maxsize=1)(_get_settings_cached)

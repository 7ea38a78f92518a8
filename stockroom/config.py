"""
Application Configuration.

Pydantic Settings model for the Stockroom settings core.
All configuration is loaded from environment variables and .env files.
Inject an AppConfig instance via dependency injection where needed.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- Supabase (authoritative remote store) ---
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: SecretStr = SecretStr("")

    # --- Local SQLite cache / offline store ---
    SQLITE_PATH: Path = Path("stockroom_local.db")

    # --- Logging ---
    LOG_FILE: str = "stockroom.log"
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    # --- Administrative PIN (stored PINs are 4 to 7 digits) ---
    PIN_MIN_LENGTH: int = Field(default=4, ge=4, le=7)
    PIN_MAX_LENGTH: int = Field(default=7, ge=4, le=7)

    # --- Destructive operations ---
    # Compared verbatim: no case folding, no trimming.
    RESET_ALL_CONFIRMATION_TOKEN: str = Field(default="YES", min_length=1)

    # --- Category form feedback ---
    CATEGORY_ADDED_DISPLAY_S: float = Field(default=3.0, ge=0)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _check_pin_bounds(self) -> "AppConfig":
        if self.PIN_MIN_LENGTH > self.PIN_MAX_LENGTH:
            raise ValueError(
                "PIN_MIN_LENGTH must not exceed PIN_MAX_LENGTH "
                f"({self.PIN_MIN_LENGTH} > {self.PIN_MAX_LENGTH})"
            )
        return self

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Emit a startup warning when the remote store is not configured.

        Pydantic silently falls back to defaults when ``.env`` is missing,
        so operators get a log line explaining that the local SQLite file
        is acting as the store.
        """
        _log = logging.getLogger("stockroom.config")

        if not self.is_remote_configured:
            _log.warning(
                "Supabase is not configured; settings are kept in the local "
                "SQLite database only (offline mode)."
            )

        return self

    @property
    def is_remote_configured(self) -> bool:
        """``True`` when both Supabase URL and key are present."""
        return bool(self.SUPABASE_URL and self.SUPABASE_ANON_KEY.get_secret_value())


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return a cached ``AppConfig`` singleton.

    Uses a check-lock-check pattern so the fast path never takes the
    lock.  Prefer constructor injection of ``AppConfig`` in new code.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance

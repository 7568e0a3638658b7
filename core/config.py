"""
core/config.py
--------------
Central configuration hub for the engine, the concepts and the backend.

- Reads database, engine and Supabase settings from environment variables.
- Provides global constants plus a frozen `Settings` snapshot that can be
  built from the environment or constructed directly in tests.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Optional

from core.errors import ConfigurationError

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DB_FILENAME = "storedirectory.db"
DB_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), "database", DB_FILENAME)
DEFAULT_DATABASE_URL = f"sqlite:///{DB_PATH}"

DEFAULT_MAX_CASCADE_DEPTH = 32
DEFAULT_DISPATCH_MEMORY = 4096
DEFAULT_AUDIT_TABLE = "sync_invocations"

# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

DATABASE_URL: str = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

SUPABASE_URL: str | None = os.getenv("SUPABASE_URL")
SUPABASE_ANON_KEY: str | None = os.getenv("SUPABASE_ANON_KEY")


def _int_env(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    """Immutable runtime settings."""

    database_url: str = DEFAULT_DATABASE_URL
    max_cascade_depth: int = DEFAULT_MAX_CASCADE_DEPTH
    dispatch_memory: int = DEFAULT_DISPATCH_MEMORY
    log_level: str = "INFO"
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    audit_table: str = DEFAULT_AUDIT_TABLE

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the current process environment."""
        return cls(
            database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
            max_cascade_depth=_int_env("SYNC_MAX_CASCADE_DEPTH", DEFAULT_MAX_CASCADE_DEPTH),
            dispatch_memory=_int_env("SYNC_DISPATCH_MEMORY", DEFAULT_DISPATCH_MEMORY),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_anon_key=os.getenv("SUPABASE_ANON_KEY"),
            audit_table=os.getenv("AUDIT_TABLE", DEFAULT_AUDIT_TABLE),
        )

    @property
    def audit_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    def with_overrides(self, **changes) -> "Settings":
        return replace(self, **changes)

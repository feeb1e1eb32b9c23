"""
Application configuration.

All settings come from environment variables, optionally loaded from a `.env`
file next to this module. Values are resolved once at import time.

Environment variables:
- SUPABASE_URL / SUPABASE_KEY: Supabase project URL and server-side API key
- ALERT_MAX_WORKERS: worker threads per alert pass (default 4)
- ALERT_PASS_DEADLINE_SECONDS: optional overall deadline for one pass
- SUPABASE_PAGE_SIZE: rows fetched per page when listing items (default 1000)
- LOG_LEVEL: logging level for the API and CLI entry points (default INFO)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise RuntimeError(f"Environment variable {name} must be >= 1, got {value}")
    return value


def _optional_float_env(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise RuntimeError(f"Environment variable {name} must be > 0, got {value}")
    return value


SUPABASE_URL: str | None = os.getenv("SUPABASE_URL")
SUPABASE_KEY: str | None = os.getenv("SUPABASE_KEY")

ALERT_MAX_WORKERS: int = _int_env("ALERT_MAX_WORKERS", 4)
ALERT_PASS_DEADLINE_SECONDS: Optional[float] = _optional_float_env("ALERT_PASS_DEADLINE_SECONDS")
SUPABASE_PAGE_SIZE: int = _int_env("SUPABASE_PAGE_SIZE", 1000)

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"

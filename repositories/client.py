"""
Supabase client initialization.

This module contains *only* the database connection setup and exposes
`get_supabase()` for other repository modules to use. The client is created on
first use so that modules importing the repositories (the API app, tests) do not
need credentials until they actually talk to the database.

Environment variables required (see config.py):
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase API key (use a server-side key only on the backend)
"""

from __future__ import annotations

from functools import lru_cache

# The dependency is `supabase` (supabase-py). If your editor can't resolve it,
# install it in your environment: `pip install supabase`.
from supabase import Client, create_client  # type: ignore[import-not-found]

import config


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """Return the shared Supabase client, creating it on first call."""

    if not config.SUPABASE_URL:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_URL. "
            "Set SUPABASE_URL to your Supabase project URL."
        )

    if not config.SUPABASE_KEY:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_KEY. "
            "Set SUPABASE_KEY to your Supabase API key."
        )

    return create_client(config.SUPABASE_URL, config.SUPABASE_KEY)


__all__ = ["get_supabase"]

"""
scratchdb configuration -- all environment variables in one place.

Read from environment at import time. Nothing here is required: the engine
runs embedded with an in-memory store and no configuration at all.
"""

from __future__ import annotations

import os


class Settings:
    """Engine settings from environment variables."""

    # Remote row store (HttpRowStore)
    API_URL: str = os.environ.get("SCRATCHDB_API_URL", "http://localhost:8000/api")
    API_TOKEN: str = os.environ.get("SCRATCHDB_API_TOKEN", "")
    HTTP_TIMEOUT: float = float(os.environ.get("SCRATCHDB_HTTP_TIMEOUT", "30") or 30)

    # Shown in rollup cells that cannot be computed
    ROLLUP_PLACEHOLDER: str = os.environ.get("SCRATCHDB_ROLLUP_PLACEHOLDER", "-")


# Singleton instance
settings = Settings()

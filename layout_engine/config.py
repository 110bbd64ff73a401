"""
Layout engine configuration, read from environment variables.

Read from environment at import time. The engine is a library, so nothing
here is required; hosts override what they need.
"""

from __future__ import annotations

import os


class Settings:
    """Engine settings from environment variables."""

    # Database (PostgresConfigurationStore, alembic)
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "")

    # Draft auto-save: wait this long after the last edit before writing
    DRAFT_SAVE_DEBOUNCE_SECONDS: float = float(os.environ.get("DRAFT_SAVE_DEBOUNCE_SECONDS", "0.5"))
    # Extra attempts after a failed draft write
    DRAFT_SAVE_RETRIES: int = int(os.environ.get("DRAFT_SAVE_RETRIES", "1"))

    # Command batches (AI turns) beyond this size are truncated with an error per extra command
    MAX_COMMANDS_PER_BATCH: int = int(os.environ.get("MAX_COMMANDS_PER_BATCH", "50"))

    # Published versions returned by history queries
    PUBLISHED_HISTORY_LIMIT: int = int(os.environ.get("PUBLISHED_HISTORY_LIMIT", "20"))


# Singleton instance
settings = Settings()

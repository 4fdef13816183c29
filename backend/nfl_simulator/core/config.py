"""
Environment configuration and season utilities.
"""

import logging
import os
from datetime import datetime
from typing import List, Optional


def get_database_url() -> str:
    """Database URL from the environment, rewritten for the async drivers."""
    database_url = os.getenv(
        "DATABASE_URL",
        "sqlite+aiosqlite:///./nfl_simulator.db"
    )

    # Handle Railway PostgreSQL URL format
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif database_url.startswith("postgresql://") and "+asyncpg" not in database_url:
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    return database_url


def get_sql_echo() -> bool:
    return os.getenv("SQL_ECHO", "false").lower() == "true"


def get_cors_origins() -> List[str]:
    return os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")


def get_simulation_workers() -> int:
    """Worker processes per simulation batch (at least 1)."""
    try:
        return max(1, int(os.getenv("SIMULATION_WORKERS", "1")))
    except ValueError:
        return 1


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging from ``LOG_LEVEL`` (default INFO)."""
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s"
    )


def get_current_season(now: Optional[datetime] = None) -> int:
    """
    Get the current NFL season year.

    Sept-Dec = current year, Jan-Feb = previous year (the playoffs of the
    season that started the autumn before), otherwise the current year.
    """
    now = now or datetime.now()
    if now.month >= 9:
        return now.year
    elif now.month <= 2:
        return now.year - 1
    return now.year

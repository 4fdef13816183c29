"""
Core configuration utilities.
"""

from .config import (
    get_database_url,
    get_sql_echo,
    get_cors_origins,
    get_simulation_workers,
    configure_logging,
    get_current_season,
)

__all__ = [
    "get_database_url",
    "get_sql_echo",
    "get_cors_origins",
    "get_simulation_workers",
    "configure_logging",
    "get_current_season",
]

"""
Database module.
"""

from .database import (
    engine,
    async_session_maker,
    build_engine,
    build_session_maker,
    get_db,
    create_tables,
    drop_tables
)
from .models import Base, LeagueTeam, ScheduledGame, SimulationRun, SimulationOutcome
from .repositories import (
    PersistenceError,
    TeamRepository,
    GameRepository,
    SimulationRunRepository,
    SimulationOutcomeRepository,
    load_season
)

__all__ = [
    # Database
    "engine",
    "async_session_maker",
    "build_engine",
    "build_session_maker",
    "get_db",
    "create_tables",
    "drop_tables",
    # Models
    "Base",
    "LeagueTeam",
    "ScheduledGame",
    "SimulationRun",
    "SimulationOutcome",
    # Repositories
    "PersistenceError",
    "TeamRepository",
    "GameRepository",
    "SimulationRunRepository",
    "SimulationOutcomeRepository",
    "load_season",
]

"""
NFL Season Simulator

Monte Carlo simulation to calculate division and wildcard probabilities.
"""

from .models import (
    Team,
    Game,
    GameResult,
    Record,
    TeamRecord,
    SimulationResultLookup,
    TeamSimulationResults,
    SeasonOutcome,
    PoolType,
    PoolEvaluation,
    TrialOutcome,
    SimulationOutcomeRow,
    Scenario,
    CURRENT_STATE,
    calculate_percent,
)
from .exceptions import (
    SimulatorError,
    PreconditionError,
    UnresolvedGameError,
    UnknownTeamError,
    UnknownGameError,
    EmptyPoolError,
    SimulationCancelled,
)
from .standings import build_standings
from .tiebreakers import TeamPool, resolve_division, resolve_wildcard
from .results import SimulationResults
from .engine import Season, run_trial, simulate_if_undecided, build_mappings, TIE_LIKELIHOOD

__all__ = [
    # Models
    "Team",
    "Game",
    "GameResult",
    "Record",
    "TeamRecord",
    "SimulationResultLookup",
    "TeamSimulationResults",
    "SeasonOutcome",
    "PoolType",
    "PoolEvaluation",
    "TrialOutcome",
    "SimulationOutcomeRow",
    "Scenario",
    "CURRENT_STATE",
    "calculate_percent",
    # Exceptions
    "SimulatorError",
    "PreconditionError",
    "UnresolvedGameError",
    "UnknownTeamError",
    "UnknownGameError",
    "EmptyPoolError",
    "SimulationCancelled",
    # Standings
    "build_standings",
    # Tiebreakers
    "TeamPool",
    "resolve_division",
    "resolve_wildcard",
    # Results
    "SimulationResults",
    # Engine
    "Season",
    "run_trial",
    "simulate_if_undecided",
    "build_mappings",
    "TIE_LIKELIHOOD",
]

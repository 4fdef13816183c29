"""
Pydantic schemas for API request/response validation.
"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field


# ============== Season Schemas ==============

class TeamResponse(BaseModel):
    """Team information response."""
    id: int
    abbreviation: str
    name: str
    conference: str
    division: str


class GameResponse(BaseModel):
    """Scheduled game response."""
    id: int
    season: int
    week: int
    home_team_id: int
    away_team_id: int
    division_game: bool
    conference_game: bool
    game_result: Optional[str] = None


# ============== Simulation Schemas ==============

class SimulationRunRequest(BaseModel):
    """Start a simulation request."""
    season: Optional[int] = None  # Defaults to current season
    n_simulations: int = Field(default=10000, ge=1, le=1000000)
    include_decided: bool = False
    quick_mode: bool = False  # If true, use 1000 simulations for faster results


class SimulationRunResponse(BaseModel):
    """Simulation run status response."""
    run_id: int
    status: str  # pending, running, completed, failed
    progress: int  # 0-100
    error: Optional[str] = None


class TeamOutcome(BaseModel):
    """Outcome counts for a single team under one scenario."""
    team_id: int
    division_winner: int
    wildcard_team: int
    division_pct: float
    wildcard_pct: float


class ScenarioResult(BaseModel):
    """Results for one scenario (no game forced = current state)."""
    game_id: Optional[int] = None
    game_result: Optional[str] = None
    teams: List[TeamOutcome]


class SimulationResultsResponse(BaseModel):
    """Full simulation results response."""
    run_id: int
    season: int
    n_simulations: int
    include_decided: bool
    created_at: datetime
    completed_at: Optional[datetime] = None
    scenarios: List[ScenarioResult]

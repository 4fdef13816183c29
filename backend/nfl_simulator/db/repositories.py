"""
Repository classes for database operations.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select, delete, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..simulator.exceptions import UnknownTeamError
from ..simulator.engine import Season
from ..simulator.models import Game, SimulationOutcomeRow, Team
from .models import LeagueTeam, ScheduledGame, SimulationRun, SimulationOutcome


REGULAR_SEASON = "REG"


class PersistenceError(Exception):
    """Raised when the database cannot be read or written."""
    pass


class TeamRepository:
    """Repository for team operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def load_teams(self, season: int) -> Dict[int, Team]:
        """
        Load every team playing a game (home or away) in ``season``.

        Returns:
            Dict mapping team_id -> Team
        """
        home_teams = select(ScheduledGame.home_team_id).where(ScheduledGame.season == season)
        away_teams = select(ScheduledGame.away_team_id).where(ScheduledGame.season == season)
        try:
            result = await self.session.execute(
                select(LeagueTeam)
                .where(or_(
                    LeagueTeam.team_id.in_(home_teams),
                    LeagueTeam.team_id.in_(away_teams)
                ))
                .order_by(LeagueTeam.division, LeagueTeam.abbreviation)
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load teams for {season}: {e}") from e

        return {
            row.team_id: Team(
                id=row.team_id,
                abbreviation=row.abbreviation,
                name=row.name,
                conference=row.conference,
                division=row.division
            )
            for row in result.scalars().all()
        }


class GameRepository:
    """Repository for scheduled game operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def load_games(self, season: int, teams: Dict[int, Team]) -> Dict[int, Game]:
        """
        Load the regular-season schedule for ``season``.

        Args:
            season: Season year
            teams: Teams loaded for the same season

        Returns:
            Dict mapping game_id -> Game, with results derived from scores

        Raises:
            UnknownTeamError: If a game references a team not in ``teams``
        """
        try:
            result = await self.session.execute(
                select(ScheduledGame)
                .where(
                    ScheduledGame.season == season,
                    ScheduledGame.game_type == REGULAR_SEASON
                )
                .order_by(ScheduledGame.week, ScheduledGame.game_id)
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load games for {season}: {e}") from e

        games = {}
        for row in result.scalars().all():
            for team_id in (row.home_team_id, row.away_team_id):
                if team_id not in teams:
                    raise UnknownTeamError(team_id)
            games[row.game_id] = Game.from_scores(
                game_id=row.game_id,
                season=row.season,
                week=row.week,
                home_team=teams[row.home_team_id],
                away_team=teams[row.away_team_id],
                home_score=row.home_score,
                away_score=row.away_score
            )
        return games


async def load_season(session: AsyncSession, season: int, **season_options: Any) -> Season:
    """
    Load teams and games for ``season`` into a Season ready to simulate.

    Extra keyword arguments (rng, workers, cancel_event, progress_callback)
    are passed to :class:`Season`.
    """
    teams = await TeamRepository(session).load_teams(season)
    games = await GameRepository(session).load_games(season, teams)
    return Season(season, teams, games, **season_options)


class SimulationRunRepository:
    """Repository for simulation run operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, season: int, simulations: int, include_decided: bool = False) -> SimulationRun:
        """Create a new simulation run and assign its id."""
        run = SimulationRun(
            season=season,
            simulations=simulations,
            include_decided=include_decided,
            status="pending",
            progress=0
        )
        self.session.add(run)
        await self.session.flush()
        await self.session.refresh(run)
        return run

    async def get_by_id(self, run_id: int) -> Optional[SimulationRun]:
        """Get a run by ID."""
        result = await self.session.execute(
            select(SimulationRun).where(SimulationRun.simulation_id == run_id)
        )
        return result.scalar_one_or_none()

    async def update_progress(self, run: SimulationRun, progress: int) -> None:
        """Update run progress."""
        run.progress = progress
        run.status = "running"
        await self.session.flush()

    async def complete(self, run: SimulationRun) -> None:
        """Mark run as completed."""
        run.status = "completed"
        run.progress = 100
        run.completed_at = datetime.now(timezone.utc)
        await self.session.flush()

    async def fail(self, run: SimulationRun, error_message: str) -> None:
        """Mark run as failed with error message."""
        run.status = "failed"
        run.error_message = error_message
        run.completed_at = datetime.now(timezone.utc)
        await self.session.flush()


class SimulationOutcomeRepository:
    """Repository for simulation outcome rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def insert_results(self, run_id: int, rows: List[SimulationOutcomeRow]) -> int:
        """
        Store outcome rows for a run, replacing any rows already stored.

        Returns:
            Number of rows inserted
        """
        try:
            await self.session.execute(
                delete(SimulationOutcome).where(SimulationOutcome.simulation_id == run_id)
            )
            self.session.add_all([
                SimulationOutcome(
                    simulation_id=run_id,
                    game_id=row.game_id,
                    simulated_game_result=row.game_result.value if row.game_result else None,
                    team_id=row.team_id,
                    season_outcome=row.season_outcome.value,
                    simulations_with_outcome=row.count
                )
                for row in rows
            ])
            await self.session.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to insert results for run {run_id}: {e}") from e
        return len(rows)

    async def get_results(self, run_id: int) -> List[SimulationOutcome]:
        """Get all outcome rows for a run."""
        result = await self.session.execute(
            select(SimulationOutcome)
            .where(SimulationOutcome.simulation_id == run_id)
            .order_by(
                SimulationOutcome.game_id,
                SimulationOutcome.simulated_game_result,
                SimulationOutcome.team_id,
                SimulationOutcome.season_outcome
            )
        )
        return list(result.scalars().all())

"""
SQLAlchemy database models.
"""

from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import Boolean, String, Integer, BigInteger, DateTime, Text, ForeignKey, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


class LeagueTeam(Base):
    """An NFL franchise."""

    __tablename__ = "teams"

    team_id: Mapped[int] = mapped_column(primary_key=True)
    abbreviation: Mapped[str] = mapped_column(String(5), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    conference: Mapped[str] = mapped_column(String(10), nullable=False)
    division: Mapped[str] = mapped_column(String(20), nullable=False)

    def __repr__(self) -> str:
        return f"<LeagueTeam(team_id={self.team_id}, abbreviation={self.abbreviation})>"


class ScheduledGame(Base):
    """A scheduled game with its final score once played."""

    __tablename__ = "games"

    game_id: Mapped[int] = mapped_column(primary_key=True)
    season: Mapped[int] = mapped_column(Integer, nullable=False)
    week: Mapped[int] = mapped_column(Integer, nullable=False)
    game_type: Mapped[str] = mapped_column(String(10), nullable=False, default="REG")
    home_team_id: Mapped[int] = mapped_column(ForeignKey("teams.team_id"), nullable=False)
    away_team_id: Mapped[int] = mapped_column(ForeignKey("teams.team_id"), nullable=False)
    home_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    away_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index("ix_games_season_type", "season", "game_type"),
    )

    def __repr__(self) -> str:
        return f"<ScheduledGame(game_id={self.game_id}, season={self.season}, week={self.week})>"


class SimulationRun(Base):
    """One simulation run of a season, tracked while it executes."""

    __tablename__ = "simulations"

    simulation_id: Mapped[int] = mapped_column(primary_key=True)
    season: Mapped[int] = mapped_column(Integer, nullable=False)
    simulations: Mapped[int] = mapped_column(BigInteger, nullable=False)
    include_decided: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    simulation_timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    # Relationships
    outcomes: Mapped[list["SimulationOutcome"]] = relationship(
        back_populates="run",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_simulations_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<SimulationRun(simulation_id={self.simulation_id}, season={self.season}, status={self.status})>"


class SimulationOutcome(Base):
    """How often a team reached an outcome under one scenario of a run."""

    __tablename__ = "simulation_results"

    simulation_result_id: Mapped[int] = mapped_column(primary_key=True)
    simulation_id: Mapped[int] = mapped_column(
        ForeignKey("simulations.simulation_id", ondelete="CASCADE"), nullable=False, index=True
    )
    game_id: Mapped[Optional[int]] = mapped_column(ForeignKey("games.game_id"), nullable=True)
    simulated_game_result: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    team_id: Mapped[int] = mapped_column(ForeignKey("teams.team_id"), nullable=False)
    season_outcome: Mapped[str] = mapped_column(String(20), nullable=False)
    simulations_with_outcome: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Relationships
    run: Mapped["SimulationRun"] = relationship(back_populates="outcomes")

    def __repr__(self) -> str:
        return (
            f"<SimulationOutcome(simulation_id={self.simulation_id}, game_id={self.game_id}, "
            f"team_id={self.team_id}, season_outcome={self.season_outcome})>"
        )

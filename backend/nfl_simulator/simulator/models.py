"""
Data models for the season simulator.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


def calculate_percent(wins: int, losses: int, ties: int) -> int:
    """
    Win percentage as an integer per-mille value.

    Ties count as half a win. A team with no games has a percentage of 0.
    Integer division keeps equal records comparing equal.
    """
    total_games = wins + losses + ties
    if total_games == 0:
        return 0
    return (wins * 1000 + (ties * 1000) // 2) // total_games


@dataclass(frozen=True)
class Team:
    """An NFL team and its conference/division alignment."""

    id: int
    abbreviation: str
    name: str
    conference: str
    division: str

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "abbreviation": self.abbreviation,
            "name": self.name,
            "conference": self.conference,
            "division": self.division
        }


class GameResult(str, Enum):
    """Final result of a game from the home team's point of view."""
    HOME_WIN = "home win"
    AWAY_WIN = "away win"
    TIE = "tie"


@dataclass
class Game:
    """A scheduled regular-season game."""

    id: int
    season: int
    week: int
    home_team: Team
    away_team: Team
    game_result: Optional[GameResult] = None
    is_simulated: bool = False
    division_game: bool = field(init=False)
    conference_game: bool = field(init=False)

    def __post_init__(self):
        self.division_game = self.home_team.division == self.away_team.division
        self.conference_game = self.home_team.conference == self.away_team.conference

    @classmethod
    def from_scores(
        cls,
        game_id: int,
        season: int,
        week: int,
        home_team: Team,
        away_team: Team,
        home_score: Optional[int] = None,
        away_score: Optional[int] = None
    ) -> 'Game':
        """Build a game, deriving its result from the final score if there is one."""
        if home_score is None or away_score is None:
            result = None
        elif home_score > away_score:
            result = GameResult.HOME_WIN
        elif home_score < away_score:
            result = GameResult.AWAY_WIN
        else:
            result = GameResult.TIE

        return cls(
            id=game_id,
            season=season,
            week=week,
            home_team=home_team,
            away_team=away_team,
            game_result=result
        )

    @property
    def is_decided(self) -> bool:
        return self.game_result is not None

    def copy(self) -> 'Game':
        """Create a copy of this game for a single trial."""
        game = Game(
            id=self.id,
            season=self.season,
            week=self.week,
            home_team=self.home_team,
            away_team=self.away_team,
            game_result=self.game_result,
            is_simulated=self.is_simulated
        )
        return game

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "season": self.season,
            "week": self.week,
            "home_team_id": self.home_team.id,
            "away_team_id": self.away_team.id,
            "division_game": self.division_game,
            "conference_game": self.conference_game,
            "game_result": self.game_result.value if self.game_result else None,
            "is_simulated": self.is_simulated
        }


@dataclass
class Record:
    """Win/loss/tie counts."""

    wins: int = 0
    losses: int = 0
    ties: int = 0

    @property
    def percent(self) -> int:
        return calculate_percent(self.wins, self.losses, self.ties)

    @property
    def games(self) -> int:
        return self.wins + self.losses + self.ties

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.wins, self.losses, self.ties)

    def __str__(self) -> str:
        return f"{self.wins}-{self.losses}-{self.ties}"


@dataclass
class TeamRecord:
    """Overall, conference and division records for one trial."""

    overall: Record = field(default_factory=Record)
    conference: Record = field(default_factory=Record)
    division: Record = field(default_factory=Record)

    @property
    def overall_percent(self) -> int:
        return self.overall.percent

    @property
    def conference_percent(self) -> int:
        return self.conference.percent

    @property
    def division_percent(self) -> int:
        return self.division.percent

    def percent(self, percent_type: str) -> int:
        """Percentage by name: 'overall', 'conference' or 'division'."""
        if percent_type == "overall":
            return self.overall_percent
        if percent_type == "conference":
            return self.conference_percent
        if percent_type == "division":
            return self.division_percent
        raise ValueError(f"Invalid percent type {percent_type}")

    def to_dict(self) -> dict:
        return {
            "overall_record": str(self.overall),
            "overall_percent": self.overall_percent,
            "conference_record": str(self.conference),
            "conference_percent": self.conference_percent,
            "division_record": str(self.division),
            "division_percent": self.division_percent
        }


@dataclass(frozen=True)
class SimulationResultLookup:
    """Aggregation key: conditioning game/result (None when unconditioned) and team."""

    game_id: Optional[int]
    game_result: Optional[GameResult]
    team_id: int

    @property
    def scenario(self) -> 'Scenario':
        return (self.game_id, self.game_result)


@dataclass
class TeamSimulationResults:
    """Outcome counters for one team under one scenario."""

    division_winner: int = 0
    wildcard_team: int = 0
    # Not populated yet: playoff seeding and draft order are not simulated
    made_playoffs: int = 0
    playoff_seedings: List[int] = field(default_factory=list)
    draft_picks: List[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "division_winner": self.division_winner,
            "wildcard_team": self.wildcard_team
        }


class SeasonOutcome(str, Enum):
    """Outcomes counted per team in each trial."""
    DIVISION_WINNER = "division winner"
    WILDCARD_TEAM = "wildcard team"


class PoolType(str, Enum):
    """What a tie-break pool is deciding."""
    DIVISION = "division"
    WILDCARD = "wildcard"
    DRAFT_ORDER = "draft order"
    PLAYOFF_SEEDING = "playoff seeding"


@dataclass
class PoolEvaluation:
    """Result of evaluating a team pool."""

    pool_type: PoolType
    winner: Optional[int] = None
    ranking: Optional[List[int]] = None
    supported: bool = True


@dataclass
class TrialOutcome:
    """What one trial produced."""

    division_winners: List[int]
    wildcard_teams: List[int]
    team_records: Dict[int, TeamRecord]


@dataclass(frozen=True)
class SimulationOutcomeRow:
    """One persisted output row."""

    run_id: int
    game_id: Optional[int]
    game_result: Optional[GameResult]
    team_id: int
    season_outcome: SeasonOutcome
    count: int


# (conditioning game id, forced result); (None, None) is the current state
Scenario = Tuple[Optional[int], Optional[GameResult]]
CURRENT_STATE: Scenario = (None, None)

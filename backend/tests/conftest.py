"""
Shared fixtures for simulator, repository and API tests.
"""

from typing import Dict, List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from nfl_simulator.db.database import build_engine, build_session_maker, create_tables
from nfl_simulator.db.models import LeagueTeam, ScheduledGame
from nfl_simulator.simulator.models import Game, GameResult, Team


CONFERENCES = ("AFC", "NFC")
DIVISIONS = ("East", "West")


def make_team(team_id: int, conference: str = "AFC", division: str = "AFC East") -> Team:
    """Create a team with a generated abbreviation."""
    return Team(
        id=team_id,
        abbreviation=f"T{team_id}",
        name=f"Team {team_id}",
        conference=conference,
        division=division
    )


def make_game(
    game_id: int,
    home: Team,
    away: Team,
    result: Optional[GameResult] = None,
    week: int = 1,
    season: int = 2023
) -> Game:
    """Create a game between two teams, optionally already decided."""
    return Game(
        id=game_id,
        season=season,
        week=week,
        home_team=home,
        away_team=away,
        game_result=result
    )


def build_league() -> Dict[int, Team]:
    """16 teams: two conferences of two four-team divisions, ids 1-16."""
    teams = {}
    team_id = 1
    for conference in CONFERENCES:
        for division in DIVISIONS:
            for _ in range(4):
                teams[team_id] = make_team(team_id, conference, f"{conference} {division}")
                team_id += 1
    return teams


def build_schedule(teams: Dict[int, Team], undecided: int = 3) -> Dict[int, Game]:
    """
    Division round robins plus cross-division and interconference games.

    Every game is a home win except the last ``undecided`` games, which have
    no result yet.
    """
    pairs: List[tuple] = []
    ids = sorted(teams)
    for start in range(0, len(ids), 4):
        division = ids[start:start + 4]
        for i, home in enumerate(division):
            for away in division[i + 1:]:
                pairs.append((home, away))
    for start in (0, 8):
        for offset in range(4):
            pairs.append((ids[start + offset], ids[start + 4 + offset]))
    for offset in range(4):
        pairs.append((ids[offset], ids[8 + offset]))

    games = {}
    for game_id, (home, away) in enumerate(pairs, start=1):
        result = GameResult.HOME_WIN if game_id <= len(pairs) - undecided else None
        games[game_id] = make_game(
            game_id, teams[home], teams[away], result, week=1 + game_id // 8
        )
    return games


SCORES = {
    GameResult.HOME_WIN: (24, 17),
    GameResult.AWAY_WIN: (17, 24),
    GameResult.TIE: (20, 20),
    None: (None, None),
}


async def seed_season(session: AsyncSession, teams: Dict[int, Team], games: Dict[int, Game]) -> None:
    """Store teams and regular-season games, converting results to scores."""
    session.add_all([
        LeagueTeam(
            team_id=team.id,
            abbreviation=team.abbreviation,
            name=team.name,
            conference=team.conference,
            division=team.division
        )
        for team in teams.values()
    ])
    await session.flush()

    for game in games.values():
        home_score, away_score = SCORES[game.game_result]
        session.add(ScheduledGame(
            game_id=game.id,
            season=game.season,
            week=game.week,
            game_type="REG",
            home_team_id=game.home_team.id,
            away_team_id=game.away_team.id,
            home_score=home_score,
            away_score=away_score
        ))
    await session.commit()


@pytest.fixture
def league() -> Dict[int, Team]:
    return build_league()


@pytest.fixture
def schedule(league) -> Dict[int, Game]:
    return build_schedule(league)


@pytest_asyncio.fixture
async def session_maker():
    """In-memory SQLite database with all tables created."""
    engine = build_engine("sqlite+aiosqlite://", echo=False)
    await create_tables(engine)

    yield build_session_maker(engine)

    await engine.dispose()


@pytest_asyncio.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def seeded_session(session, league, schedule):
    """Session over a database holding the 2023 league and schedule."""
    await seed_season(session, league, schedule)
    return session

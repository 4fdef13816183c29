"""
Standings built from a trial's completed games.
"""

from typing import Dict, Iterable

from .exceptions import UnknownTeamError, UnresolvedGameError
from .models import Game, GameResult, Record, Team, TeamRecord


def _add_result(record: Record, outcome: str) -> None:
    if outcome == "win":
        record.wins += 1
    elif outcome == "loss":
        record.losses += 1
    else:
        record.ties += 1


def build_standings(
    teams: Dict[int, Team],
    games: Iterable[Game]
) -> Dict[int, TeamRecord]:
    """
    Build overall, conference and division records for every team.

    Args:
        teams: All teams in the season
        games: The trial's games, every one of them with a result

    Returns:
        Dict mapping team_id -> TeamRecord

    Raises:
        UnresolvedGameError: If a game has no result
        UnknownTeamError: If a game references a team not in ``teams``
    """
    standings = {team_id: TeamRecord() for team_id in teams}

    for game in games:
        if game.game_result is None:
            raise UnresolvedGameError(game.id)

        for team in (game.home_team, game.away_team):
            if team.id not in standings:
                raise UnknownTeamError(team.id)

        if game.game_result == GameResult.HOME_WIN:
            outcomes = ((game.home_team.id, "win"), (game.away_team.id, "loss"))
        elif game.game_result == GameResult.AWAY_WIN:
            outcomes = ((game.home_team.id, "loss"), (game.away_team.id, "win"))
        else:
            outcomes = ((game.home_team.id, "tie"), (game.away_team.id, "tie"))

        for team_id, outcome in outcomes:
            record = standings[team_id]
            _add_result(record.overall, outcome)
            if game.conference_game:
                _add_result(record.conference, outcome)
            if game.division_game:
                _add_result(record.division, outcome)

    return standings

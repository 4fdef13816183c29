"""
Tiebreaker resolution for division titles and wildcard berths.

Division tiebreaker order:
1. Overall win percentage
2. Division win percentage
3. Head-to-head record among tied teams
4. Record in common games (any number of common games)
5. Conference win percentage
6. Coin flip (random)

Wildcard tiebreaker order (per berth, best remaining team first):
1. Overall win percentage
2. Embedded division ties (only the best team of a division can advance)
3. Head-to-head sweep
4. Conference win percentage
5. Record in common games (more than four common games)
6. Random cut down to two teams
7. Head-to-head, conference percentage, common games, then a coin flip

Every criterion is only applied while more than one team is still tied and
returns the refined tied set, so each step can be tested on its own.
"""

import random
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from .exceptions import EmptyPoolError, UnknownTeamError, UnresolvedGameError
from .models import Game, GameResult, PoolEvaluation, PoolType, Record, TeamRecord


WILDCARD_SPOTS = 3
DIVISION_MIN_COMMON_GAMES = 0
WILDCARD_MIN_COMMON_GAMES = 4


def _require_teams(tied: Set[int]) -> None:
    if not tied:
        raise EmptyPoolError("Tiebreaker step received no teams")


def _keep_best(scores: Dict[int, int]) -> Set[int]:
    best = max(scores.values())
    return {team_id for team_id, score in scores.items() if score == best}


def _credit(records: Dict[int, Record], game: Game, home_id: int, away_id: int) -> None:
    """Credit a game's result to whichever participants are in ``records``."""
    if game.game_result is None:
        raise UnresolvedGameError(game.id)

    if game.game_result == GameResult.HOME_WIN:
        if home_id in records:
            records[home_id].wins += 1
        if away_id in records:
            records[away_id].losses += 1
    elif game.game_result == GameResult.AWAY_WIN:
        if home_id in records:
            records[home_id].losses += 1
        if away_id in records:
            records[away_id].wins += 1
    else:
        if home_id in records:
            records[home_id].ties += 1
        if away_id in records:
            records[away_id].ties += 1


def get_head_to_head_records(tied: Set[int], games: Iterable[Game]) -> Dict[int, Record]:
    """Records of each tied team in games where both participants are tied."""
    records = {team_id: Record() for team_id in tied}
    for game in games:
        home_id = game.home_team.id
        away_id = game.away_team.id
        if home_id in tied and away_id in tied:
            _credit(records, game, home_id, away_id)
    return records


def get_common_opponents(tied: Set[int], games: Iterable[Game]) -> Set[int]:
    """Opponents that every tied team has played."""
    opponents: Dict[int, Set[int]] = {team_id: set() for team_id in tied}
    for game in games:
        home_id = game.home_team.id
        away_id = game.away_team.id
        if home_id in tied:
            opponents[home_id].add(away_id)
        if away_id in tied:
            opponents[away_id].add(home_id)

    opponent_sets = iter(opponents.values())
    common = set(next(opponent_sets, set()))
    for opponent_set in opponent_sets:
        common &= opponent_set
    return common


def break_by_percent(
    tied: Set[int],
    team_records: Dict[int, TeamRecord],
    percent_type: str
) -> Set[int]:
    """Keep the tied teams with the best 'overall', 'division' or 'conference' percentage."""
    _require_teams(tied)
    if len(tied) <= 1:
        return set(tied)

    scores = {}
    for team_id in tied:
        if team_id not in team_records:
            raise UnknownTeamError(team_id)
        scores[team_id] = team_records[team_id].percent(percent_type)
    return _keep_best(scores)


def break_by_head_to_head(tied: Set[int], games: Iterable[Game]) -> Set[int]:
    """Keep the teams with the best record in games among the tied teams."""
    _require_teams(tied)
    if len(tied) <= 1:
        return set(tied)

    records = get_head_to_head_records(tied, games)
    return _keep_best({team_id: record.percent for team_id, record in records.items()})


def break_by_head_to_head_sweep(tied: Set[int], games: Iterable[Game]) -> Set[int]:
    """
    Apply the head-to-head sweep rule.

    A team that beat every other tied team and never lost or tied against any
    of them advances alone. Otherwise any team that lost to every other tied
    team (without a win or tie among them) is dropped.
    """
    _require_teams(tied)
    if len(tied) <= 1:
        return set(tied)

    beaten: Dict[int, Set[int]] = defaultdict(set)
    lost_to: Dict[int, Set[int]] = defaultdict(set)
    records = {team_id: Record() for team_id in tied}

    for game in games:
        home_id = game.home_team.id
        away_id = game.away_team.id
        if home_id not in tied or away_id not in tied:
            continue
        _credit(records, game, home_id, away_id)
        if game.game_result == GameResult.HOME_WIN:
            beaten[home_id].add(away_id)
            lost_to[away_id].add(home_id)
        elif game.game_result == GameResult.AWAY_WIN:
            beaten[away_id].add(home_id)
            lost_to[home_id].add(away_id)

    swept = set()
    for team_id in sorted(tied):
        others = tied - {team_id}
        record = records[team_id]
        if record.losses == 0 and record.ties == 0 and beaten[team_id] >= others:
            return {team_id}
        if record.wins == 0 and record.ties == 0 and lost_to[team_id] >= others:
            swept.add(team_id)

    survivors = tied - swept
    return survivors if survivors else set(tied)


def break_by_common_games(
    tied: Set[int],
    games: Iterable[Game],
    min_games: int
) -> Set[int]:
    """
    Keep the teams with the best record against common opponents.

    The criterion is skipped unless the tied teams played more than
    ``min_games`` games against common opponents in total.
    """
    _require_teams(tied)
    if len(tied) <= 1:
        return set(tied)

    games = list(games)
    common_opponents = get_common_opponents(tied, games)
    records = {team_id: Record() for team_id in tied}
    total_common_games = 0

    for game in games:
        home_id = game.home_team.id
        away_id = game.away_team.id
        if home_id in tied and away_id in common_opponents:
            total_common_games += 1
            _credit(records, game, home_id, away_id)
        elif away_id in tied and home_id in common_opponents:
            total_common_games += 1
            _credit(records, game, home_id, away_id)

    if total_common_games <= min_games:
        return set(tied)

    return _keep_best({team_id: record.percent for team_id, record in records.items()})


def break_by_random(tied: Set[int], rng: random.Random) -> Set[int]:
    """Coin flip: keep one tied team chosen uniformly at random."""
    _require_teams(tied)
    if len(tied) <= 1:
        return set(tied)
    return {rng.choice(sorted(tied))}


def pick_two_random(tied: Set[int], rng: random.Random) -> Set[int]:
    """Keep two tied teams chosen uniformly at random."""
    _require_teams(tied)
    if len(tied) <= 2:
        return set(tied)
    return set(rng.sample(sorted(tied), 2))


@dataclass
class TeamPool:
    """
    Working set for one tiebreaker evaluation.

    ``tied_teams`` starts as every team in the pool and only shrinks while a
    single winner is being selected.
    """

    pool_type: PoolType
    teams: Set[int]
    conference_mapping: Dict[str, List[int]]
    division_mapping: Dict[str, List[int]]
    team_records: Dict[int, TeamRecord]
    games: List[Game]
    rng: random.Random = field(default_factory=random.Random)
    tied_teams: Set[int] = field(init=False)

    def __post_init__(self):
        self.teams = set(self.teams)
        self.tied_teams = set(self.teams)

    def subpool(self, team_ids: Iterable[int], pool_type: PoolType) -> 'TeamPool':
        """A pool over a subset of teams sharing this pool's standings and games."""
        return TeamPool(
            pool_type=pool_type,
            teams=set(team_ids),
            conference_mapping=self.conference_mapping,
            division_mapping=self.division_mapping,
            team_records=self.team_records,
            games=self.games,
            rng=self.rng
        )

    def evaluate(self) -> PoolEvaluation:
        """Decide the pool according to its type."""
        if self.pool_type == PoolType.DIVISION:
            return PoolEvaluation(self.pool_type, winner=self.evaluate_division())
        if self.pool_type == PoolType.WILDCARD:
            return PoolEvaluation(self.pool_type, ranking=self.evaluate_wildcard())
        # Draft order and playoff seeding are not implemented
        return PoolEvaluation(self.pool_type, supported=False)

    def evaluate_division(self) -> int:
        """Narrow the pool to its division winner."""
        _require_teams(self.tied_teams)
        self.tied_teams = break_by_percent(self.tied_teams, self.team_records, "overall")
        self.tied_teams = break_by_percent(self.tied_teams, self.team_records, "division")
        self.tied_teams = break_by_head_to_head(self.tied_teams, self.games)
        self.tied_teams = break_by_common_games(
            self.tied_teams, self.games, DIVISION_MIN_COMMON_GAMES
        )
        self.tied_teams = break_by_percent(self.tied_teams, self.team_records, "conference")
        self.tied_teams = break_by_random(self.tied_teams, self.rng)
        return next(iter(self.tied_teams))

    def evaluate_wildcard(self, spots: int = WILDCARD_SPOTS) -> List[int]:
        """Rank up to ``spots`` wildcard teams, best first."""
        ranking: List[int] = []
        remaining = set(self.teams)

        while remaining and len(ranking) < spots:
            self.tied_teams = set(remaining)
            top_team = self._select_wildcard_team()
            ranking.append(top_team)
            remaining.discard(top_team)

        return ranking

    def _select_wildcard_team(self) -> int:
        self.tied_teams = break_by_percent(self.tied_teams, self.team_records, "overall")
        if len(self.tied_teams) > 2:
            self.tied_teams = self.break_division_ties(self.tied_teams)
        if len(self.tied_teams) > 2:
            self.tied_teams = break_by_head_to_head_sweep(self.tied_teams, self.games)
        if len(self.tied_teams) > 2:
            self.tied_teams = break_by_percent(self.tied_teams, self.team_records, "conference")
        if len(self.tied_teams) > 2:
            self.tied_teams = break_by_common_games(
                self.tied_teams, self.games, WILDCARD_MIN_COMMON_GAMES
            )
        if len(self.tied_teams) > 2:
            self.tied_teams = pick_two_random(self.tied_teams, self.rng)

        # Re-applied after the random cut, matching observed league behavior
        self.tied_teams = break_by_head_to_head(self.tied_teams, self.games)
        self.tied_teams = break_by_percent(self.tied_teams, self.team_records, "conference")
        self.tied_teams = break_by_common_games(
            self.tied_teams, self.games, WILDCARD_MIN_COMMON_GAMES
        )
        self.tied_teams = break_by_random(self.tied_teams, self.rng)
        return next(iter(self.tied_teams))

    def team_division(self, team_id: int) -> str:
        for division, team_ids in self.division_mapping.items():
            if team_id in team_ids:
                return division
        raise UnknownTeamError(team_id)

    def break_division_ties(self, tied: Set[int]) -> Set[int]:
        """Replace each division's tied teams with that division's tiebreaker winner."""
        _require_teams(tied)
        if len(tied) <= 1:
            return set(tied)

        by_division: Dict[str, Set[int]] = defaultdict(set)
        for team_id in tied:
            by_division[self.team_division(team_id)].add(team_id)

        winners = set()
        for division_teams in by_division.values():
            if len(division_teams) > 1:
                winners.add(self.subpool(division_teams, PoolType.DIVISION).evaluate_division())
            else:
                winners |= division_teams
        return winners


def resolve_division(
    team_ids: Iterable[int],
    team_records: Dict[int, TeamRecord],
    games: List[Game],
    division_mapping: Dict[str, List[int]],
    conference_mapping: Dict[str, List[int]],
    rng: Optional[random.Random] = None
) -> int:
    """
    Determine the division winner among ``team_ids``.

    Args:
        team_ids: Teams competing for the title
        team_records: Standings for this trial
        games: This trial's games, all with results
        division_mapping: Division name -> team ids
        conference_mapping: Conference name -> team ids
        rng: Randomness source for the coin flip

    Returns:
        The winning team id
    """
    pool = TeamPool(
        pool_type=PoolType.DIVISION,
        teams=set(team_ids),
        conference_mapping=conference_mapping,
        division_mapping=division_mapping,
        team_records=team_records,
        games=games,
        rng=rng or random.Random()
    )
    return pool.evaluate().winner


def resolve_wildcard(
    team_ids: Iterable[int],
    team_records: Dict[int, TeamRecord],
    games: List[Game],
    division_mapping: Dict[str, List[int]],
    conference_mapping: Dict[str, List[int]],
    rng: Optional[random.Random] = None
) -> List[int]:
    """
    Rank the wildcard teams among ``team_ids`` (division winners excluded).

    Returns:
        Up to three team ids, best first
    """
    pool = TeamPool(
        pool_type=PoolType.WILDCARD,
        teams=set(team_ids),
        conference_mapping=conference_mapping,
        division_mapping=division_mapping,
        team_records=team_records,
        games=games,
        rng=rng or random.Random()
    )
    return pool.evaluate().ranking

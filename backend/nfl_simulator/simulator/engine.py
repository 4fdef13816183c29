"""
Monte Carlo simulation engine for division and wildcard probabilities.
"""

import logging
import math
import random
import threading
from collections import Counter, defaultdict
from concurrent.futures import ProcessPoolExecutor, as_completed
from contextlib import contextmanager
from typing import Callable, Dict, List, Optional, Tuple

from .exceptions import PreconditionError, SimulationCancelled, UnknownGameError
from .models import (
    CURRENT_STATE,
    Game,
    GameResult,
    Scenario,
    SeasonOutcome,
    Team,
    TrialOutcome,
)
from .results import SimulationResults
from .standings import build_standings
from .tiebreakers import resolve_division, resolve_wildcard


logger = logging.getLogger(__name__)

TIE_LIKELIHOOD = 0.003421
PROGRESS_INTERVAL = 100


def simulate_if_undecided(game: Game, rng: random.Random) -> None:
    """Give a game without a result a random one (ties are rare, otherwise 50/50)."""
    if game.game_result is not None:
        return

    tie_predictor = rng.random()
    win_predictor = rng.random()

    if tie_predictor < TIE_LIKELIHOOD:
        game.game_result = GameResult.TIE
    elif win_predictor < 0.5:
        game.game_result = GameResult.HOME_WIN
    else:
        game.game_result = GameResult.AWAY_WIN

    game.is_simulated = True


def build_mappings(teams: Dict[int, Team]) -> Tuple[Dict[str, List[int]], Dict[str, List[int]]]:
    """
    Group team ids by conference and by division.

    Returns:
        Tuple of (conference name -> team ids, division name -> team ids)
    """
    conference_mapping: Dict[str, List[int]] = defaultdict(list)
    division_mapping: Dict[str, List[int]] = defaultdict(list)
    for team_id in sorted(teams):
        team = teams[team_id]
        conference_mapping[team.conference].append(team_id)
        division_mapping[team.division].append(team_id)
    return dict(conference_mapping), dict(division_mapping)


def apply_conditioning(games: Dict[int, Game], scenario: Scenario) -> Dict[int, Game]:
    """Copy of the schedule with the scenario's game forced to its result."""
    game_id, game_result = scenario
    base_games = dict(games)
    if game_id is None:
        return base_games

    if game_id not in games:
        raise UnknownGameError(game_id)

    forced = games[game_id].copy()
    forced.game_result = game_result
    forced.is_simulated = False
    base_games[game_id] = forced
    return base_games


def run_trial(
    teams: Dict[int, Team],
    base_games: Dict[int, Game],
    conference_mapping: Dict[str, List[int]],
    division_mapping: Dict[str, List[int]],
    rng: random.Random
) -> TrialOutcome:
    """
    Run one trial: randomize undecided games, build standings, pick division
    winners, then rank wildcard teams in each conference.
    """
    games = [base_games[game_id].copy() for game_id in sorted(base_games)]
    for game in games:
        simulate_if_undecided(game, rng)

    team_records = build_standings(teams, games)

    division_winners = []
    for division in sorted(division_mapping):
        division_winners.append(resolve_division(
            division_mapping[division], team_records, games,
            division_mapping, conference_mapping, rng
        ))

    winners = set(division_winners)
    wildcard_teams = []
    for conference in sorted(conference_mapping):
        candidates = [t for t in conference_mapping[conference] if t not in winners]
        if not candidates:
            continue
        wildcard_teams.extend(resolve_wildcard(
            candidates, team_records, games,
            division_mapping, conference_mapping, rng
        ))

    return TrialOutcome(
        division_winners=division_winners,
        wildcard_teams=wildcard_teams,
        team_records=team_records
    )


# Globals for worker processes
_WORKER_TEAMS: Optional[Dict[int, Team]] = None
_WORKER_GAMES: Optional[Dict[int, Game]] = None


def _init_worker(teams: Dict[int, Team], games: Dict[int, Game]) -> None:
    """Initializer to set the shared schedule in worker processes."""
    global _WORKER_TEAMS, _WORKER_GAMES
    _WORKER_TEAMS = teams
    _WORKER_GAMES = games


def _simulate_chunk(scenario: Scenario, n_trials: int, seed: int) -> Tuple[Counter, int]:
    """Run ``n_trials`` trials in a worker and return outcome counts."""
    if _WORKER_TEAMS is None or _WORKER_GAMES is None:
        raise PreconditionError("Worker process has no schedule installed")
    conference_mapping, division_mapping = build_mappings(_WORKER_TEAMS)
    base_games = apply_conditioning(_WORKER_GAMES, scenario)
    rng = random.Random(seed)

    counts: Counter = Counter()
    for _ in range(n_trials):
        outcome = run_trial(_WORKER_TEAMS, base_games, conference_mapping, division_mapping, rng)
        counts.update((SeasonOutcome.DIVISION_WINNER, t) for t in outcome.division_winners)
        counts.update((SeasonOutcome.WILDCARD_TEAM, t) for t in outcome.wildcard_teams)
    return counts, n_trials


class Season:
    """
    A season's authoritative schedule and the simulations run against it.

    Args:
        season_year: Season year
        teams: Team id -> Team
        games: Game id -> Game (regular season)
        rng: Randomness source; seed it to reproduce a run
        workers: Worker processes per batch (1 runs trials in this process)
        cancel_event: Checked between trials; stops the batch when set
        progress_callback: Receives percent complete of the current batch
    """

    def __init__(
        self,
        season_year: int,
        teams: Dict[int, Team],
        games: Dict[int, Game],
        rng: Optional[random.Random] = None,
        workers: int = 1,
        cancel_event: Optional[threading.Event] = None,
        progress_callback: Optional[Callable[[float], None]] = None
    ):
        self.season_year = season_year
        self.teams = teams
        self.actual_games = games
        self.conference_mapping, self.division_mapping = build_mappings(teams)
        self.rng = rng or random.Random()
        self.workers = max(1, workers)
        self.cancel_event = cancel_event
        self.progress_callback = progress_callback
        self.results = SimulationResults(teams)
        self.current_scenario: Scenario = CURRENT_STATE
        self.current_simulation_base_games = dict(games)
        self._executor: Optional[ProcessPoolExecutor] = None

    @property
    def undecided_games(self) -> List[int]:
        return [game_id for game_id in sorted(self.actual_games)
                if not self.actual_games[game_id].is_decided]

    def run_simulation(self, increment: bool = True) -> TrialOutcome:
        """Run one trial under the current scenario."""
        outcome = run_trial(
            self.teams, self.current_simulation_base_games, self.conference_mapping, self.division_mapping, self.rng
        )
        if increment:
            self.results.record_trial(
                self.current_scenario, outcome.division_winners, outcome.wildcard_teams
            )
        return outcome

    def simulate_current_state(self, sims: int) -> SimulationResults:
        """Simulate the season as it stands."""
        self._run_batch(CURRENT_STATE, sims)
        return self.results

    def simulate_for_game(self, game_id: int, game_result: GameResult, sims: int) -> SimulationResults:
        """Simulate the season with one game forced to ``game_result``."""
        if game_id not in self.actual_games:
            raise UnknownGameError(game_id)
        self._run_batch((game_id, game_result), sims)
        return self.results

    def run_all_game_simulations(self, sims: int, include_decided: bool = False) -> SimulationResults:
        """
        Simulate the current state, then every game under each forced result.

        Args:
            sims: Trials per batch
            include_decided: Also force games that already have a result

        Returns:
            The aggregated results for every scenario
        """
        with self._worker_pool():
            logger.info("Simulating current %s season state...", self.season_year)
            self.simulate_current_state(sims)

            game_ids = sorted(self.actual_games)
            for i, game_id in enumerate(game_ids, start=1):
                game = self.actual_games[game_id]
                if game.is_decided and not include_decided:
                    continue

                logger.info("Processing game %d of %d (id: %d)...", i, len(game_ids), game_id)
                for game_result in GameResult:
                    logger.debug("Simulating %s for game %d", game_result.value, game_id)
                    self.simulate_for_game(game_id, game_result, sims)

        return self.results

    @contextmanager
    def _worker_pool(self):
        if self.workers <= 1 or self._executor is not None:
            yield self._executor
            return

        with ProcessPoolExecutor(
            max_workers=self.workers,
            initializer=_init_worker,
            initargs=(self.teams, self.actual_games),
        ) as executor:
            self._executor = executor
            try:
                yield executor
            finally:
                self._executor = None

    def _check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise SimulationCancelled(
                f"Simulation cancelled for scenario {self.current_scenario}"
            )

    def _report_progress(self, done: int, total: int) -> None:
        if self.progress_callback and total:
            self.progress_callback(done / total * 100)

    def _run_batch(self, scenario: Scenario, sims: int) -> None:
        self.current_scenario = scenario
        self.current_simulation_base_games = apply_conditioning(self.actual_games, scenario)
        self.results.initialize(scenario)

        if self.workers > 1:
            with self._worker_pool() as executor:
                self._run_batch_parallel(executor, scenario, sims)
        else:
            self._run_batch_sequential(sims)

        self._report_progress(sims, sims)

    def _run_batch_sequential(self, sims: int) -> None:
        for sim_idx in range(sims):
            self._check_cancelled()
            if sim_idx % PROGRESS_INTERVAL == 0:
                self._report_progress(sim_idx, sims)
            self.run_simulation(increment=True)

    def _run_batch_parallel(self, executor: ProcessPoolExecutor, scenario: Scenario, sims: int) -> None:
        chunk_size = max(1, math.ceil(sims / (self.workers * 4)))
        base_seed = self.rng.randrange(2**32)

        futures = []
        for idx, start in enumerate(range(0, sims, chunk_size)):
            n_trials = min(chunk_size, sims - start)
            futures.append(executor.submit(_simulate_chunk, scenario, n_trials, base_seed + idx))

        done = 0
        for future in as_completed(futures):
            counts, n_trials = future.result()
            self.results.merge(scenario, counts, n_trials)
            done += n_trials
            self._report_progress(done, sims)
            if self.cancel_event is not None and self.cancel_event.is_set():
                for pending in futures:
                    pending.cancel()
                self._check_cancelled()

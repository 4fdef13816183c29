"""
Aggregation of trial outcomes across scenarios.
"""

import threading
from collections import Counter
from typing import Dict, Iterable, List

from .models import (
    CURRENT_STATE,
    Scenario,
    SeasonOutcome,
    SimulationOutcomeRow,
    SimulationResultLookup,
    TeamSimulationResults,
)


class SimulationResults:
    """
    Per-team outcome counts keyed by conditioning scenario.

    Updates are plain increments, so counts from separate workers can be
    merged in any order.
    """

    def __init__(self, team_ids: Iterable[int]):
        self.team_ids = sorted(team_ids)
        self.results: Dict[SimulationResultLookup, TeamSimulationResults] = {}
        self.trials: Dict[Scenario, int] = {}
        self._lock = threading.Lock()

    def initialize(self, scenario: Scenario = CURRENT_STATE) -> None:
        """Reset every team's counters for ``scenario`` to zero."""
        game_id, game_result = scenario
        with self._lock:
            self.trials[scenario] = 0
            for team_id in self.team_ids:
                lookup = SimulationResultLookup(game_id, game_result, team_id)
                self.results[lookup] = TeamSimulationResults()

    def _get(self, scenario: Scenario, team_id: int) -> TeamSimulationResults:
        lookup = SimulationResultLookup(scenario[0], scenario[1], team_id)
        try:
            return self.results[lookup]
        except KeyError:
            raise KeyError(f"Results not initialized for {lookup}") from None

    def record_trial(
        self,
        scenario: Scenario,
        division_winners: Iterable[int],
        wildcard_teams: Iterable[int]
    ) -> None:
        """Count one completed trial."""
        with self._lock:
            for team_id in division_winners:
                self._get(scenario, team_id).division_winner += 1
            for team_id in wildcard_teams:
                self._get(scenario, team_id).wildcard_team += 1
            self.trials[scenario] = self.trials.get(scenario, 0) + 1

    def merge(self, scenario: Scenario, counts: Counter, trials: int) -> None:
        """
        Merge counts produced elsewhere (e.g. by a worker process).

        ``counts`` maps (SeasonOutcome, team_id) -> times it happened.
        """
        with self._lock:
            for (outcome, team_id), count in counts.items():
                result = self._get(scenario, team_id)
                if outcome == SeasonOutcome.DIVISION_WINNER:
                    result.division_winner += count
                else:
                    result.wildcard_team += count
            self.trials[scenario] = self.trials.get(scenario, 0) + trials

    def get(self, team_id: int, scenario: Scenario = CURRENT_STATE) -> TeamSimulationResults:
        return self._get(scenario, team_id)

    def scenarios(self) -> List[Scenario]:
        return list(self.trials)

    def probabilities(self, scenario: Scenario = CURRENT_STATE) -> Dict[int, Dict[str, float]]:
        """Division and wildcard probability per team for one scenario."""
        trials = self.trials.get(scenario, 0)
        probabilities = {}
        for team_id in self.team_ids:
            result = self._get(scenario, team_id)
            if trials == 0:
                probabilities[team_id] = {"division_pct": 0.0, "wildcard_pct": 0.0}
                continue
            probabilities[team_id] = {
                "division_pct": result.division_winner / trials,
                "wildcard_pct": result.wildcard_team / trials
            }
        return probabilities

    def rows(self, run_id: int) -> List[SimulationOutcomeRow]:
        """Output rows, one per (scenario, team, outcome)."""
        rows = []
        with self._lock:
            for lookup, result in self.results.items():
                rows.append(SimulationOutcomeRow(
                    run_id=run_id,
                    game_id=lookup.game_id,
                    game_result=lookup.game_result,
                    team_id=lookup.team_id,
                    season_outcome=SeasonOutcome.DIVISION_WINNER,
                    count=result.division_winner
                ))
                rows.append(SimulationOutcomeRow(
                    run_id=run_id,
                    game_id=lookup.game_id,
                    game_result=lookup.game_result,
                    team_id=lookup.team_id,
                    season_outcome=SeasonOutcome.WILDCARD_TEAM,
                    count=result.wildcard_team
                ))
        return rows

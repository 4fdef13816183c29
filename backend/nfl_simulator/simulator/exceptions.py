"""
Exceptions raised by the season simulator.

Precondition errors mean a component was invoked out of its required order
(for example standings built before every game was resolved). They are fatal
for the batch in progress and are never retried.
"""


class SimulatorError(Exception):
    """Base class for simulator errors."""
    pass


class PreconditionError(SimulatorError):
    """Raised when a component is called with input it must never receive."""
    pass


class UnresolvedGameError(PreconditionError):
    """Raised when standings are built from a game that has no result."""

    def __init__(self, game_id: int):
        super().__init__(f"Game {game_id} has no result")
        self.game_id = game_id


class UnknownTeamError(PreconditionError):
    """Raised when a team id is not present in the season's team map."""

    def __init__(self, team_id: int):
        super().__init__(f"Team {team_id} does not exist")
        self.team_id = team_id


class UnknownGameError(PreconditionError):
    """Raised when a conditioning query names a game outside the schedule."""

    def __init__(self, game_id: int):
        super().__init__(f"Game {game_id} is not on the schedule")
        self.game_id = game_id


class EmptyPoolError(PreconditionError):
    """Raised when a tie-break step receives no teams."""
    pass


class SimulationCancelled(SimulatorError):
    """Raised when a batch stops because its cancel event was set."""
    pass

"""
Capability interface between the agent and a game-rules engine.

The search engine, trackers and determinizer only ever talk to a game
through the methods defined on GameModel. Any rules engine that can clone
itself, enumerate and apply actions, report terminal state and scores, and
accept injected hidden state (identities and hands) can be searched.

Architecture Note:
    GameModel is a capability surface, not a base class carrying behaviour.
    Every method raises NotImplementedError; concrete engines (see
    detective.game.heimlich.HeimlichGame) override all of them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Hashable, List


class ActionKind(Enum):
    """Coarse classification of actions used by the history tracker."""

    MOVE = "move"      # figurine movement after a die roll
    CHANCE = "chance"  # die roll outcome
    CARD = "card"      # card play (or explicit skip)
    OTHER = "other"    # forced or bookkeeping moves (e.g. moving the safe)


class Phase(Enum):
    """Turn phases exposed by the game model."""

    DIE_ROLL = "die_roll"  # chance phase
    CARD = "card"
    AGENT_MOVE = "agent_move"
    SAFE_MOVE = "safe_move"
    GAME_OVER = "game_over"


CHANCE_PHASE = Phase.DIE_ROLL


@dataclass(frozen=True)
class ActionRecord:
    """
    One entry of the public action log.

    Attributes:
        player: Seat index of the acting player
        action: The action that player took
    """

    player: int
    action: Hashable


class GameModel:
    """
    Interface every searchable game must provide.

    Attributes:
        num_players: Number of seats in the game
        winning_score: Score at which the game ends (used for reward scaling)
    """

    num_players: int
    winning_score: int

    def copy(self) -> "GameModel":
        """Return a deep, independent copy of this game state."""
        raise NotImplementedError

    def get_legal_actions(self) -> List[Hashable]:
        """Return legal actions for the current actor (empty when game over)."""
        raise NotImplementedError

    def apply_action(self, action: Hashable) -> None:
        """Apply an action in place."""
        raise NotImplementedError

    def is_valid_action(self, action: Hashable) -> bool:
        """Check whether action is legal in the current state."""
        raise NotImplementedError

    def is_game_over(self) -> bool:
        raise NotImplementedError

    def get_current_player(self) -> int:
        raise NotImplementedError

    def get_current_phase(self) -> Phase:
        raise NotImplementedError

    def is_chance_phase(self) -> bool:
        """True when the next action is decided by a die roll."""
        return self.get_current_phase() == CHANCE_PHASE

    def get_random_roll_action(self) -> Hashable:
        """Return the shortcut action that rolls the die at random."""
        raise NotImplementedError

    def set_allow_custom_die_rolls(self, allow: bool) -> None:
        """Expose every concrete die outcome as a legal chance action."""
        raise NotImplementedError

    def get_scores(self) -> Dict[Any, int]:
        """Return scores keyed by identity."""
        raise NotImplementedError

    def get_players_to_agents(self) -> Dict[int, Any]:
        """Return the (possibly partial) player → identity mapping."""
        raise NotImplementedError

    def get_identity_slots(self) -> List[Any]:
        """Return every identity a player may hold, in a fixed order."""
        raise NotImplementedError

    def set_identity_assignment(self, assignment: Dict[int, Any]) -> None:
        """Inject hypothesised identities for the given players."""
        raise NotImplementedError

    def get_hand(self, player: int) -> List[Any]:
        raise NotImplementedError

    def set_hand(self, player: int, cards: List[Any]) -> None:
        """Inject a hypothesised hand for a player."""
        raise NotImplementedError

    def is_with_cards(self) -> bool:
        raise NotImplementedError

    def get_action_records(self) -> List[ActionRecord]:
        """Return the public action log, oldest first."""
        raise NotImplementedError

    def get_card_universe(self) -> List[Any]:
        """Return every card instance that exists in the game."""
        raise NotImplementedError

    def new_shadow_board(self) -> Any:
        """Return a fresh board in the game's starting configuration."""
        raise NotImplementedError

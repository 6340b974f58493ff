"""
Determinization of hidden state for imperfect information MCTS.

Determinization replaces the hidden parts of a game state with one concrete
hypothesis consistent with the public evidence, so that a perfect
information search can run on it.

Two hidden quantities are filled in, greedily and independently:

    1. Identities: repeatedly take the globally most suspicious
       (opponent, figurine) pair among unassigned opponents and unused
       figurines; our own figurine is known and excluded. Ties go to the
       first pair in enumeration order (opponents ascending, then figurines
       in slot order), so the assignment is deterministic.

    2. Hands: shuffle the hidden card pool (universe - graveyard - own hand)
       and deal every opponent as many cards as the hand tracker says they
       hold, in seat order. If the pool runs dry an opponent simply gets
       fewer cards.

The greedy assignment is a simplification; it does not search for the
jointly most likely assignment.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from detective.game.model import GameModel
from detective.mcts.history_tracker import TurnHistoryTracker
from detective.mcts.suspicion import IdentitySuspicionEngine


@dataclass
class Determinization:
    """
    One concrete hypothesis of the hidden state.

    Attributes:
        identities: Hypothesised figurine of every opponent
        hands: Hypothesised hand of every opponent
    """

    identities: Dict[int, Any] = field(default_factory=dict)
    hands: Dict[int, List[Any]] = field(default_factory=dict)


class Determinizer:
    """
    Fills a game model's hidden state from tracker evidence.

    Attributes:
        tracker: Source of hand counts and the graveyard
        suspicion: Source of identity suspicion scores
    """

    def __init__(self, tracker: TurnHistoryTracker, suspicion: IdentitySuspicionEngine):
        self.tracker = tracker
        self.suspicion = suspicion

    def determinize(
        self,
        game: GameModel,
        own_player: int,
        rng: Optional[np.random.Generator] = None,
    ) -> Determinization:
        """
        Inject one concrete hypothesis into the game model.

        The game's player -> identity and player -> hand mappings are
        overwritten for every opponent.

        Args:
            game: Game model to mutate (normally a copy of the observed game)
            own_player: Seat of the searching agent
            rng: Generator used to shuffle the hidden card pool

        Returns:
            The hypothesis that was injected
        """
        if rng is None:
            rng = np.random.default_rng()

        identities = self.assign_identities(game, own_player)
        game.set_identity_assignment(identities)

        hands: Dict[int, List[Any]] = {}
        if game.is_with_cards():
            hands = self.assign_hands(game, own_player, rng)
            for player, hand in hands.items():
                game.set_hand(player, hand)

        return Determinization(identities=identities, hands=hands)

    def assign_identities(self, game: GameModel, own_player: int) -> Dict[int, Any]:
        """
        Greedy global-maximum identity assignment.

        Returns:
            Mapping opponent seat -> figurine
        """
        own_identity = game.get_players_to_agents().get(own_player)
        available_slots = [slot for slot in game.get_identity_slots() if slot != own_identity]
        opponents = [player for player in range(game.num_players) if player != own_player]

        assignment: Dict[int, Any] = {}
        while opponents and available_slots:
            best_opponent = None
            best_slot = None
            max_score = -1.0

            for opponent in opponents:
                for slot in available_slots:
                    score = self.suspicion.get_suspicion(opponent, slot)
                    if score > max_score:
                        max_score = score
                        best_opponent = opponent
                        best_slot = slot

            assignment[best_opponent] = best_slot
            opponents.remove(best_opponent)
            available_slots.remove(best_slot)

        return assignment

    def assign_hands(
        self,
        game: GameModel,
        own_player: int,
        rng: np.random.Generator,
    ) -> Dict[int, List[Any]]:
        """
        Deal the shuffled hidden pool to opponents by tracked hand size.

        Returns:
            Mapping opponent seat -> hypothesised hand
        """
        hidden_pool = self.tracker.get_hidden_pool(game.get_hand(own_player))
        rng.shuffle(hidden_pool)

        hands: Dict[int, List[Any]] = {}
        for player in range(game.num_players):
            if player == own_player:
                continue
            hand_size = self.tracker.get_player_card_count(player)
            guessed_hand = hidden_pool[:hand_size]
            del hidden_pool[:hand_size]
            hands[player] = guessed_hand

        return hands

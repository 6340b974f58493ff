"""
Reference game engine for Heimlich & Co.

This module implements a compact but complete rules engine (board, cards,
actions, turn phases, scoring) that satisfies the GameModel capability
interface. It is the game the agent is developed and tested against, and
the engine the arena uses to play full matches.

Rules summary:
    - Seven figurines walk clockwise around a ring of 12 fields. Field 0 is
      the ruins (worth -3 points), the others are buildings of rising value.
    - Every player secretly controls one figurine.
    - A turn is: roll the die (chance) -> optionally play one card ->
      distribute the rolled points over at most two figurines. On a roll of
      1-3 the player may instead decline to move and draw a card.
    - A figurine entering the ruins also earns the acting player a card.
    - When a figurine lands on the safe's field the safe is cracked: every
      figurine scores the value of the field it stands on, then the acting
      player moves the safe to another building.
    - The game ends when any figurine reaches 42 points.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
import copy
import random

from detective.game.constants import (
    Agent,
    CardKind,
    CARD_COUNTS,
    DIE_FACES,
    FIELD_VALUES,
    INITIAL_HAND,
    INITIAL_SAFE_FIELD,
    MAX_HAND,
    MAX_PLAYERS,
    MIN_PLAYERS,
    NO_MOVE_MAX_ROLL,
    NUM_FIELDS,
    RUINS_FIELD,
    WINNING_SCORE,
)
from detective.game.model import ActionKind, ActionRecord, GameModel, Phase


# ============================================================================
# Custom Exceptions
# ============================================================================


class HeimlichGameException(Exception):
    """Base exception for Heimlich & Co. game errors."""

    pass


class IllegalActionException(HeimlichGameException):
    """Raised when a player attempts an action that is not legal right now."""

    def __init__(self, player: int, action, reason: str):
        self.player = player
        self.action = action
        self.reason = reason
        super().__init__(f"Player {player} cannot play {action}: {reason}")


class GameStateException(HeimlichGameException):
    """Raised when game is in invalid state for requested operation."""

    pass


# ============================================================================
# Card Class
# ============================================================================


@dataclass(frozen=True)
class Card:
    """
    Immutable card instance.

    Attributes:
        kind: Effect of the card
        serial: Unique instance number within the deck (0-24)
    """

    kind: CardKind
    serial: int

    @property
    def steps(self) -> int:
        """Number of fields the targeted figurine advances."""
        return self.kind.value

    def __str__(self) -> str:
        return f"{self.kind.name}#{self.serial}"


def create_card_universe() -> List[Card]:
    """Create every card instance of the standard deck, in serial order."""
    cards = []
    serial = 0
    for kind, count in CARD_COUNTS.items():
        for _ in range(count):
            cards.append(Card(kind, serial))
            serial += 1
    return cards


# ============================================================================
# Board Class
# ============================================================================


class HeimlichBoard:
    """
    Figurine positions, safe location and scores.

    The board holds no hidden information, so the agent keeps its own copy
    (the shadow board) in sync by replaying the public action log.

    Attributes:
        num_fields: Number of fields on the ring
        positions: Field index of every figurine
        safe_position: Field the safe currently stands on
        scores: Score of every figurine
    """

    def __init__(self, num_fields: int = NUM_FIELDS):
        self.num_fields = num_fields
        self.field_values = FIELD_VALUES[:num_fields]
        self.positions: Dict[Agent, int] = {agent: RUINS_FIELD for agent in Agent}
        self.safe_position = INITIAL_SAFE_FIELD % num_fields
        self.scores: Dict[Agent, int] = {agent: 0 for agent in Agent}

    def get_agents_positions(self) -> Dict[Agent, int]:
        """Return a copy of the figurine positions."""
        return dict(self.positions)

    def get_number_of_fields(self) -> int:
        return self.num_fields

    def move_agent(self, agent: Agent, steps: int) -> int:
        """
        Move a figurine clockwise.

        Returns:
            The figurine's new field
        """
        self.positions[agent] = (self.positions[agent] + steps) % self.num_fields
        return self.positions[agent]

    def move_safe(self, field: int) -> None:
        if not 0 < field < self.num_fields:
            raise GameStateException(f"Safe cannot be moved to field {field}")
        self.safe_position = field

    def crack_safe(self) -> None:
        """Score every figurine by the value of its field (never below zero)."""
        for agent, field in self.positions.items():
            self.scores[agent] = max(0, self.scores[agent] + self.field_values[field])

    def max_score(self) -> int:
        return max(self.scores.values())

    def copy(self) -> "HeimlichBoard":
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        positions = ", ".join(f"{a.name}={p}" for a, p in self.positions.items())
        return f"HeimlichBoard(safe={self.safe_position}, {positions})"


# ============================================================================
# Actions
# ============================================================================


@dataclass(frozen=True)
class DieRollAction:
    """
    Die roll. value=None is the random-roll shortcut; 1-6 are custom rolls.
    """

    value: Optional[int] = None

    kind = ActionKind.CHANCE

    def is_random_roll(self) -> bool:
        return self.value is None

    def apply_to_board(self, board: HeimlichBoard) -> None:
        """Die rolls do not change the board."""
        return None


RANDOM_ROLL = DieRollAction(None)


@dataclass(frozen=True)
class CardAction:
    """
    Play a card on a figurine, or skip the card phase (card=None).
    """

    card: Optional[Card] = None
    agent: Optional[Agent] = None

    kind = ActionKind.CARD

    def is_skip(self) -> bool:
        return self.card is None

    def apply_to_board(self, board: HeimlichBoard) -> None:
        if self.card is not None:
            board.move_agent(self.agent, self.card.steps)

    def remove_played_card_from(self, cards: List[Card]) -> None:
        """Remove the played card instance from cards (no-op when absent)."""
        if self.card is not None and self.card in cards:
            cards.remove(self.card)


SKIP_CARD = CardAction(None, None)


@dataclass(frozen=True)
class AgentMoveAction:
    """
    Distribute the rolled points over figurines.

    Attributes:
        moves: Sorted tuple of (agent, points) pairs. Empty means the player
               declined to move (allowed on 1-3) and draws a card instead.
    """

    moves: Tuple[Tuple[Agent, int], ...] = ()

    kind = ActionKind.MOVE

    def is_no_move(self) -> bool:
        return len(self.moves) == 0

    def total_points(self) -> int:
        return sum(points for _, points in self.moves)

    def moves_agent_into_ruins(self, board: HeimlichBoard) -> bool:
        """Check whether applying this move puts any figurine into the ruins."""
        for agent, points in self.moves:
            if points > 0 and (board.positions[agent] + points) % board.num_fields == RUINS_FIELD:
                return True
        return False

    def apply_to_board(self, board: HeimlichBoard) -> bool:
        """
        Move the figurines and crack the safe if one of them reaches it.

        Returns:
            True if the safe was cracked
        """
        cracked = False
        for agent, points in self.moves:
            if board.move_agent(agent, points) == board.safe_position:
                cracked = True
        if cracked:
            board.crack_safe()
        return cracked


NO_MOVE = AgentMoveAction(())


@dataclass(frozen=True)
class SafeMoveAction:
    """Move the safe to a new field after it was cracked."""

    field: int

    kind = ActionKind.OTHER

    def apply_to_board(self, board: HeimlichBoard) -> None:
        board.move_safe(self.field)


def generate_move_actions(roll: int) -> List[AgentMoveAction]:
    """
    Enumerate every legal distribution of a die roll.

    Points go to a single figurine or are split between two. Rolls up to
    NO_MOVE_MAX_ROLL may also be declined.

    Example:
        >>> len(generate_move_actions(1))
        8
        >>> len(generate_move_actions(6))
        112
    """
    agents = list(Agent)
    actions = [AgentMoveAction(((agent, roll),)) for agent in agents]
    for i, first in enumerate(agents):
        for second in agents[i + 1:]:
            for points in range(1, roll):
                actions.append(AgentMoveAction(((first, points), (second, roll - points))))
    if roll <= NO_MOVE_MAX_ROLL:
        actions.append(NO_MOVE)
    return actions


# ============================================================================
# Game Class
# ============================================================================


class HeimlichGame(GameModel):
    """
    Complete Heimlich & Co. game state.

    Attributes:
        num_players: Number of players (2-7)
        with_cards: Whether the card variant is played
        board: Figurine positions, safe and scores
        players_to_agents: Secret identity of every player
        cards: Hand of every player
        deck: Draw pile
        graveyard: Played cards, in order
        current_player: Seat whose turn it is
        phase: Current turn phase
        last_roll: Die value of the current turn (None before rolling)
        allow_custom_die_rolls: Whether concrete die outcomes are legal actions
        action_records: Public action log
    """

    def __init__(
        self,
        num_players: int,
        with_cards: bool = True,
        seed: Optional[int] = None,
    ):
        """
        Set up a new game: deal identities and starting hands.

        Args:
            num_players: Number of players (2-7)
            with_cards: Play the card variant
            seed: Seed for identities, deck order and random die rolls

        Raises:
            ValueError: If num_players is out of range
        """
        if num_players < MIN_PLAYERS or num_players > MAX_PLAYERS:
            raise ValueError(
                f"num_players must be between {MIN_PLAYERS} and {MAX_PLAYERS}, "
                f"got {num_players}"
            )

        self.num_players = num_players
        self.with_cards = with_cards
        self.winning_score = WINNING_SCORE
        self.rng = random.Random(seed)

        self.board = HeimlichBoard()

        agents = list(Agent)
        self.rng.shuffle(agents)
        self.players_to_agents: Dict[int, Agent] = {
            player: agents[player] for player in range(num_players)
        }

        self.card_universe: List[Card] = create_card_universe()
        self.deck: List[Card] = list(self.card_universe)
        self.rng.shuffle(self.deck)
        self.cards: Dict[int, List[Card]] = {player: [] for player in range(num_players)}
        if with_cards:
            for player in range(num_players):
                for _ in range(INITIAL_HAND):
                    self.cards[player].append(self.deck.pop())
        self.graveyard: List[Card] = []

        self.current_player = 0
        self.phase = Phase.DIE_ROLL
        self.last_roll: Optional[int] = None
        self.allow_custom_die_rolls = False
        self.action_records: List[ActionRecord] = []

    # ------------------------------------------------------------------
    # GameModel interface
    # ------------------------------------------------------------------

    def copy(self) -> "HeimlichGame":
        """
        Create deep copy of game state for MCTS simulation.

        Example:
            >>> game = HeimlichGame(num_players=3, seed=1)
            >>> clone = game.copy()
            >>> clone.apply_action(DieRollAction(None))
            >>> game.last_roll is None
            True
        """
        return copy.deepcopy(self)

    def get_legal_actions(self) -> list:
        """
        Get legal actions for the current player.

        Returns:
            - DIE_ROLL: the random roll shortcut, plus 1-6 when custom rolls
              are allowed
            - CARD: skip, plus every (card in hand, figurine) pair
            - AGENT_MOVE: every distribution of the rolled points
            - SAFE_MOVE: every building other than the safe's current field
            - GAME_OVER: empty list
        """
        if self.phase == Phase.GAME_OVER:
            return []

        if self.phase == Phase.DIE_ROLL:
            actions = [RANDOM_ROLL]
            if self.allow_custom_die_rolls:
                actions.extend(DieRollAction(value) for value in DIE_FACES)
            return actions

        if self.phase == Phase.CARD:
            actions = [SKIP_CARD]
            for card in self.cards[self.current_player]:
                for agent in Agent:
                    actions.append(CardAction(card, agent))
            return actions

        if self.phase == Phase.AGENT_MOVE:
            return generate_move_actions(self.last_roll)

        if self.phase == Phase.SAFE_MOVE:
            return [
                SafeMoveAction(field)
                for field in range(1, self.board.num_fields)
                if field != self.board.safe_position
            ]

        raise GameStateException(f"Unknown phase: {self.phase}")

    def is_valid_action(self, action) -> bool:
        if action is None:
            return False
        return action in self.get_legal_actions()

    def apply_action(self, action) -> None:
        """
        Apply an action for the current player and advance the turn.

        Random rolls are resolved here and logged with their concrete value,
        so the public log never contains the random-roll shortcut.

        Raises:
            IllegalActionException: If the action is not legal right now
        """
        player = self.current_player
        if not self.is_valid_action(action):
            raise IllegalActionException(player, action, f"not legal in phase {self.phase.value}")

        if self.phase == Phase.DIE_ROLL:
            value = action.value if action.value is not None else self.rng.choice(DIE_FACES)
            self.last_roll = value
            self.action_records.append(ActionRecord(player, DieRollAction(value)))
            if self.with_cards and self.cards[player]:
                self.phase = Phase.CARD
            else:
                self.phase = Phase.AGENT_MOVE

        elif self.phase == Phase.CARD:
            self.action_records.append(ActionRecord(player, action))
            if not action.is_skip():
                self.cards[player].remove(action.card)
                self.graveyard.append(action.card)
                action.apply_to_board(self.board)
            self.phase = Phase.AGENT_MOVE

        elif self.phase == Phase.AGENT_MOVE:
            self.action_records.append(ActionRecord(player, action))
            gains_card = action.is_no_move() or action.moves_agent_into_ruins(self.board)
            cracked = action.apply_to_board(self.board)
            if gains_card:
                self._draw_card(player)
            if cracked:
                if self.board.max_score() >= self.winning_score:
                    self.phase = Phase.GAME_OVER
                else:
                    self.phase = Phase.SAFE_MOVE
            else:
                self._end_turn()

        elif self.phase == Phase.SAFE_MOVE:
            self.action_records.append(ActionRecord(player, action))
            action.apply_to_board(self.board)
            self._end_turn()

    def is_game_over(self) -> bool:
        return self.phase == Phase.GAME_OVER

    def get_current_player(self) -> int:
        return self.current_player

    def get_current_phase(self) -> Phase:
        return self.phase

    def get_random_roll_action(self) -> DieRollAction:
        return RANDOM_ROLL

    def set_allow_custom_die_rolls(self, allow: bool) -> None:
        self.allow_custom_die_rolls = allow

    def get_scores(self) -> Dict[Agent, int]:
        return dict(self.board.scores)

    def get_players_to_agents(self) -> Dict[int, Agent]:
        return dict(self.players_to_agents)

    def get_identity_slots(self) -> List[Agent]:
        return list(Agent)

    def set_identity_assignment(self, assignment: Dict[int, Agent]) -> None:
        for player, agent in assignment.items():
            self._check_player(player)
            self.players_to_agents[player] = agent

    def get_hand(self, player: int) -> List[Card]:
        self._check_player(player)
        return list(self.cards[player])

    def set_hand(self, player: int, cards: List[Card]) -> None:
        """
        Replace a player's hand.

        The previous hand returns to the deck and the new cards are taken out
        of it, so no card instance is ever in two places at once.
        """
        self._check_player(player)
        self.deck.extend(self.cards[player])
        for card in cards:
            if card in self.deck:
                self.deck.remove(card)
        self.cards[player] = list(cards)

    def is_with_cards(self) -> bool:
        return self.with_cards

    def get_action_records(self) -> List[ActionRecord]:
        return list(self.action_records)

    def get_card_universe(self) -> List[Card]:
        return list(self.card_universe)

    def new_shadow_board(self) -> HeimlichBoard:
        return HeimlichBoard(self.board.num_fields)

    # ------------------------------------------------------------------
    # Hidden information
    # ------------------------------------------------------------------

    def get_observation(self, player: int) -> "HeimlichGame":
        """
        Return the game as seen by one player.

        Opponents' identities are removed and their hands are shuffled back
        into the deck. The copy gets a fresh random generator so it cannot be
        used to predict future die rolls of the real game.
        """
        self._check_player(player)
        observation = self.copy()
        observation.players_to_agents = {player: self.players_to_agents[player]}
        for other in range(self.num_players):
            if other != player:
                observation.deck.extend(observation.cards[other])
                observation.cards[other] = []
        observation.rng = random.Random()
        observation.rng.shuffle(observation.deck)
        return observation

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _draw_card(self, player: int) -> None:
        if not self.with_cards:
            return
        if len(self.cards[player]) >= MAX_HAND or not self.deck:
            return
        self.cards[player].append(self.deck.pop())

    def _end_turn(self) -> None:
        self.current_player = (self.current_player + 1) % self.num_players
        self.phase = Phase.DIE_ROLL
        self.last_roll = None

    def _check_player(self, player: int) -> None:
        if player < 0 or player >= self.num_players:
            raise GameStateException(f"Player {player} not in game")

    def __repr__(self) -> str:
        return (
            f"HeimlichGame(players={self.num_players}, phase={self.phase.value}, "
            f"current={self.current_player}, max_score={self.board.max_score()})"
        )

"""
History tracking for hidden information in Heimlich & Co.

The game hides which figurine every opponent controls and which cards they
hold. Both can be inferred from the public action log, which this module
replays one record at a time.

Core Concepts:
    - The public log tells us every die roll, every card played and every
      figurine move, but not who benefits from a move.
    - Players tend to invest movement points in their own figurine, so the
      points each player spends on each figurine are evidence about identity.
    - Cards are gained by entering the ruins or declining to move on a low
      roll, and are lost by playing them, so hand sizes can be counted.

Tracker Components:
    1. Shadow board: our own copy of the board, advanced by replaying the log
    2. MovementLedger: per (player, figurine) history of points spent per turn
    3. HandTracker: per player card counts plus the graveyard of played cards

Information Updates:
    1. Figurine move: diff positions before/after on the shadow board and
       record the per-figurine deltas as that player's allocation this turn
    2. Card-gain trigger (ruins or no-move): increment the player's hand count
    3. Card played: identify the exact card instance, add it to the graveyard,
       decrement the player's hand count
    4. Die rolls and safe moves: shadow board only

Every record is processed exactly once; a cursor remembers how far into the
log we have read.
"""

import logging
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence

import numpy as np

from detective.game.constants import INITIAL_HAND, MAX_HAND
from detective.game.model import ActionKind, ActionRecord, GameModel

logger = logging.getLogger(__name__)

MAX_TRACKED_TURNS = 100


class MovementLedger:
    """
    Movement points every player invested in every figurine.

    Keeps a bounded per-turn history for each (player, figurine) pair and a
    running total that always equals the sum of the retained history.

    Attributes:
        num_players: Number of players tracked
        slots: Identity slots (figurines) in a fixed order
        max_turns: History length per pair; older turns are discarded
        totals: (num_players, num_slots) array of total invested points
    """

    def __init__(self, num_players: int, slots: Sequence[Any], max_turns: int = MAX_TRACKED_TURNS):
        if max_turns <= 0:
            raise ValueError(f"max_turns must be positive, got {max_turns}")

        self.num_players = num_players
        self.slots = list(slots)
        self.max_turns = max_turns
        self._slot_index = {slot: idx for idx, slot in enumerate(self.slots)}

        self.totals = np.zeros((num_players, len(self.slots)), dtype=np.int64)
        self.history: List[List[Deque[int]]] = [
            [deque() for _ in self.slots] for _ in range(num_players)
        ]
        self.turn_counts = np.zeros(num_players, dtype=np.int64)

    def is_tracked_player(self, player: int) -> bool:
        return 0 <= player < self.num_players

    def slot_index(self, slot: Any) -> Optional[int]:
        return self._slot_index.get(slot)

    def record_turn(self, player: int, allocations: Dict[Any, int]) -> bool:
        """
        Record one turn of movement for a player.

        Every slot gets an entry (zero when untouched) so all histories of a
        player stay aligned turn by turn.

        Args:
            player: Player who moved
            allocations: Points spent per figurine this turn

        Returns:
            False if the player is out of range (nothing recorded)
        """
        if not self.is_tracked_player(player):
            return False

        for slot, idx in self._slot_index.items():
            points = max(0, int(allocations.get(slot, 0)))
            turns = self.history[player][idx]
            if len(turns) >= self.max_turns:
                self.totals[player, idx] -= turns.popleft()
            turns.append(points)
            self.totals[player, idx] += points

        self.turn_counts[player] += 1
        return True

    def get_total(self, player: int, slot: Any) -> int:
        idx = self.slot_index(slot)
        if not self.is_tracked_player(player) or idx is None:
            return 0
        return int(self.totals[player, idx])

    def get_player_total(self, player: int) -> int:
        if not self.is_tracked_player(player):
            return 0
        return int(self.totals[player].sum())

    def get_history(self, player: int, slot: Any) -> List[int]:
        """Return the retained per-turn allocations, oldest first."""
        idx = self.slot_index(slot)
        if not self.is_tracked_player(player) or idx is None:
            return []
        return list(self.history[player][idx])

    def get_turn_count(self, player: int) -> int:
        if not self.is_tracked_player(player):
            return 0
        return int(self.turn_counts[player])

    def get_average_movement(self, player: int, slot: Any) -> float:
        """Average points per recorded turn spent on a figurine."""
        turns = len(self.get_history(player, slot))
        if turns == 0:
            return 0.0
        return self.get_total(player, slot) / turns


class HandTracker:
    """
    Card counts per player and the graveyard of played cards.

    Attributes:
        card_universe: Every card instance in the game (immutable)
        graveyard: Played cards in the order they were played
        card_counts: Number of cards each player holds
    """

    def __init__(
        self,
        num_players: int,
        card_universe: Sequence[Any],
        initial_hand: int = INITIAL_HAND,
        max_hand: int = MAX_HAND,
    ):
        self.num_players = num_players
        self.card_universe = tuple(card_universe)
        self.max_hand = max_hand
        self.graveyard: List[Any] = []
        self.card_counts = [initial_hand] * num_players

    def is_tracked_player(self, player: int) -> bool:
        return 0 <= player < self.num_players

    def record_card_gained(self, player: int) -> None:
        """A player gained a card (capped at the hand limit)."""
        if not self.is_tracked_player(player):
            return
        if self.card_counts[player] < self.max_hand:
            self.card_counts[player] += 1

    def record_card_played(self, player: int, card: Any) -> None:
        """
        A player played a specific card.

        Cards already in the graveyard or foreign to the universe are ignored,
        so the graveyard stays a duplicate-free subset of the universe.
        """
        if not self.is_tracked_player(player):
            return
        if card in self.card_universe and card not in self.graveyard:
            self.graveyard.append(card)
        if self.card_counts[player] > 0:
            self.card_counts[player] -= 1

    def get_player_card_count(self, player: int) -> int:
        if not self.is_tracked_player(player):
            return 0
        return self.card_counts[player]

    def get_total_cards_in_game(self) -> List[Any]:
        """Return a copy of the card universe."""
        return list(self.card_universe)

    def get_remaining_cards(self) -> List[Any]:
        """Cards not yet played by anyone."""
        remaining = list(self.card_universe)
        for played in self.graveyard:
            remaining.remove(played)
        return remaining

    def get_hidden_pool(self, own_cards: Sequence[Any]) -> List[Any]:
        """
        Cards that could be in opponents' hands or the deck.

        Pool = universe - graveyard - own hand.

        Example:
            >>> tracker = HandTracker(4, universe)   # 25 cards
            >>> # 3 cards played, we hold 2
            >>> len(tracker.get_hidden_pool(own_hand))
            20
        """
        pool = self.get_remaining_cards()
        for own in own_cards:
            if own in pool:
                pool.remove(own)
        return pool

    def identify_played_card(self, action) -> Optional[Any]:
        """
        Find which card instance a card action removed.

        Applies the action's removal to a scratch list of the remaining cards
        and diffs the result.

        Returns:
            The removed card, or None if the action removed nothing we track
        """
        before = self.get_remaining_cards()
        after = list(before)
        action.remove_played_card_from(after)
        if len(after) >= len(before):
            return None
        for card in after:
            before.remove(card)
        return before[0]


class TurnHistoryTracker:
    """
    Replays the public action log into movement and card evidence.

    Attributes:
        ledger: Movement points per (player, figurine)
        hands: Card counts and graveyard
        board: Shadow board kept in sync with the log
        cursor: Number of log records processed so far
        num_rolls: Number of die rolls seen
    """

    def __init__(
        self,
        num_players: int,
        slots: Sequence[Any],
        card_universe: Sequence[Any],
        board_factory: Callable[[], Any],
        max_tracked_turns: int = MAX_TRACKED_TURNS,
    ):
        self.num_players = num_players
        self.slots = list(slots)
        self.card_universe = list(card_universe)
        self.board_factory = board_factory
        self.max_tracked_turns = max_tracked_turns
        self._reset()

    @classmethod
    def from_game(cls, game: GameModel, max_tracked_turns: int = MAX_TRACKED_TURNS) -> "TurnHistoryTracker":
        """Create a tracker sized for the given game."""
        return cls(
            num_players=game.num_players,
            slots=game.get_identity_slots(),
            card_universe=game.get_card_universe(),
            board_factory=game.new_shadow_board,
            max_tracked_turns=max_tracked_turns,
        )

    def _reset(self) -> None:
        self.ledger = MovementLedger(self.num_players, self.slots, self.max_tracked_turns)
        self.hands = HandTracker(self.num_players, self.card_universe)
        self.board = self.board_factory()
        self.cursor = 0
        self.num_rolls = 0

    def advance(self, records: Sequence[ActionRecord]) -> int:
        """
        Process every record not yet seen.

        Args:
            records: The full public log so far, oldest first

        Returns:
            Number of records processed by this call
        """
        if len(records) < self.cursor:
            logger.info(
                f"Action log shorter than processed prefix "
                f"({len(records)} < {self.cursor}); resynchronizing"
            )
            return self.resync(records)

        processed = 0
        for index in range(self.cursor, len(records)):
            self._process_record(index, records[index])
            self.cursor = index + 1
            processed += 1
        return processed

    def resync(self, records: Sequence[ActionRecord]) -> int:
        """Discard all derived state and replay the full log."""
        self._reset()
        return self.advance(records)

    def _process_record(self, index: int, record: ActionRecord) -> None:
        action = record.action
        kind = getattr(action, "kind", ActionKind.OTHER)

        if kind == ActionKind.MOVE:
            self._process_move(index, record.player, action)
        elif kind == ActionKind.CARD:
            self._process_card(index, record.player, action)
        else:
            if kind == ActionKind.CHANCE:
                self.num_rolls += 1
            self._apply_to_shadow_board(index, action)

    def _process_move(self, index: int, player: int, action) -> None:
        try:
            gains_card = action.moves_agent_into_ruins(self.board) or action.is_no_move()
            points = action.total_points()
        except Exception as e:
            logger.debug(f"Record {index}: malformed move {action} ({e}); treating as no movement")
            self.ledger.record_turn(player, {})
            return

        positions_before = self.board.get_agents_positions()
        if gains_card:
            self.hands.record_card_gained(player)

        if not self._apply_to_shadow_board(index, action):
            self.ledger.record_turn(player, {})
            return

        positions_after = self.board.get_agents_positions()
        num_fields = self.board.get_number_of_fields()
        deduced_moves = {}
        for agent, before in positions_before.items():
            dist = (positions_after[agent] - before + num_fields) % num_fields
            if dist > 0:
                deduced_moves[agent] = dist

        if sum(deduced_moves.values()) != points:
            logger.debug(
                f"Record {index}: deduced movement {deduced_moves} does not match "
                f"{points} points; treating as no movement"
            )
            deduced_moves = {}

        self.ledger.record_turn(player, deduced_moves)

    def _process_card(self, index: int, player: int, action) -> None:
        if not action.is_skip():
            try:
                played_card = self.hands.identify_played_card(action)
            except Exception as e:
                logger.debug(f"Record {index}: could not identify card of {action} ({e})")
                played_card = None
            if played_card is not None:
                self.hands.record_card_played(player, played_card)
        self._apply_to_shadow_board(index, action)

    def _apply_to_shadow_board(self, index: int, action) -> bool:
        try:
            action.apply_to_board(self.board)
        except Exception as e:
            logger.warning(f"Record {index}: could not apply {action} to shadow board: {e}")
            return False
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_total_invested_points(self, player: int, slot: Any) -> int:
        return self.ledger.get_total(player, slot)

    def get_movement_history(self, player: int, slot: Any) -> List[int]:
        return self.ledger.get_history(player, slot)

    def get_average_movement(self, player: int, slot: Any) -> float:
        return self.ledger.get_average_movement(player, slot)

    def get_turn_count(self, player: int) -> int:
        return self.ledger.get_turn_count(player)

    def get_player_card_count(self, player: int) -> int:
        return self.hands.get_player_card_count(player)

    def get_hidden_pool(self, own_cards: Sequence[Any]) -> List[Any]:
        return self.hands.get_hidden_pool(own_cards)

    def get_tracking_summary(self) -> str:
        """
        Get human-readable summary of the tracked evidence.

        Returns:
            Multi-line string describing investments and hand sizes
        """
        lines = ["Turn History Summary:"]
        lines.append(f"Records processed: {self.cursor}, die rolls: {self.num_rolls}")
        lines.append(f"Graveyard: {len(self.hands.graveyard)} cards")
        for player in range(self.num_players):
            invested = {
                getattr(slot, "name", slot): self.get_total_invested_points(player, slot)
                for slot in self.slots
                if self.get_total_invested_points(player, slot) > 0
            }
            lines.append(
                f"  Player {player}: cards={self.get_player_card_count(player)}, "
                f"turns={self.get_turn_count(player)}, invested={invested}"
            )
        return "\n".join(lines)

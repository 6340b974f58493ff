"""
Identity suspicion scoring.

Turns the movement ledger into a (players x identity slots) matrix of how
likely each opponent is to control each figurine. Two signals are combined:

    basic = points player spent on figurine / all points player spent
    burst = 1 + 0.2 * (number of the last 5 turns with > 3 points on it)

A player who secretly controls a figurine tends to push it hard near
decisive moments, so large single-turn investments in recent turns raise
suspicion beyond the plain investment share. Each row is normalized to sum
to 1; rows of players who have not moved anything stay all zero, meaning
"no evidence yet".
"""

from typing import Any, List, Optional

import numpy as np

from detective.mcts.history_tracker import MovementLedger

BURST_WINDOW = 5
BURST_THRESHOLD = 3
BURST_INCREMENT = 0.2


class IdentitySuspicionEngine:
    """
    Suspicion matrix derived from a MovementLedger.

    Attributes:
        ledger: Movement evidence (shared with the history tracker)
        burst_window: Number of most recent turns inspected for bursts
        burst_threshold: A turn is a burst when it spends more than this
        burst_increment: Multiplier gained per burst turn
        suspicion_matrix: Scores from the last recompute()
    """

    def __init__(
        self,
        ledger: MovementLedger,
        burst_window: int = BURST_WINDOW,
        burst_threshold: int = BURST_THRESHOLD,
        burst_increment: float = BURST_INCREMENT,
    ):
        self.ledger = ledger
        self.burst_window = burst_window
        self.burst_threshold = burst_threshold
        self.burst_increment = burst_increment
        self.suspicion_matrix = np.zeros(
            (ledger.num_players, len(ledger.slots)), dtype=np.float64
        )

    def recompute(self) -> np.ndarray:
        """
        Recompute every row of the suspicion matrix.

        Runs in O(players x figurines) plus the burst window scan.

        Returns:
            The updated matrix (the engine's own array, not a copy)
        """
        for player in range(self.ledger.num_players):
            totals = self.ledger.totals[player].astype(np.float64)
            total_points = totals.sum()

            if total_points == 0:
                self.suspicion_matrix[player] = 0.0
                continue

            basic = totals / total_points
            burst = np.array([
                self.calculate_burst_factor(self.ledger.get_history(player, slot))
                for slot in self.ledger.slots
            ])
            row = basic * burst

            row_sum = row.sum()
            if row_sum > 0:
                row = row / row_sum
            self.suspicion_matrix[player] = row

        return self.suspicion_matrix

    def calculate_burst_factor(self, history: List[int]) -> float:
        """
        Multiplier for a figurine's recent burst investments.

        Args:
            history: Per-turn allocations, oldest first

        Example:
            >>> engine.calculate_burst_factor([0, 4, 1, 5, 6])
            1.6
        """
        recent = history[-self.burst_window:] if self.burst_window > 0 else []
        bursts = sum(1 for points in recent if points > self.burst_threshold)
        return 1.0 + self.burst_increment * bursts

    def get_suspicion(self, player: int, slot: Any) -> float:
        """O(1) lookup into the last computed matrix."""
        idx: Optional[int] = self.ledger.slot_index(slot)
        if idx is None or not self.ledger.is_tracked_player(player):
            return 0.0
        return float(self.suspicion_matrix[player, idx])

    def get_most_suspected(self, player: int) -> Optional[Any]:
        """Figurine the player most likely controls, or None without evidence."""
        if not self.ledger.is_tracked_player(player):
            return None
        row = self.suspicion_matrix[player]
        if row.sum() == 0:
            return None
        return self.ledger.slots[int(np.argmax(row))]

    def get_suspicion_summary(self) -> str:
        lines = ["Suspicion Matrix:"]
        for player in range(self.ledger.num_players):
            suspect = self.get_most_suspected(player)
            if suspect is None:
                lines.append(f"  Player {player}: no evidence")
                continue
            name = getattr(suspect, "name", suspect)
            lines.append(
                f"  Player {player}: most suspected {name} "
                f"({self.get_suspicion(player, suspect):.2f})"
            )
        return "\n".join(lines)

"""
Monte Carlo Tree Search over determinized Heimlich & Co. states.

This module provides the agent's decision pipeline:
- TurnHistoryTracker: Replays the public action log into evidence
- IdentitySuspicionEngine: Scores which figurine each opponent controls
- Determinizer: Fills hidden identities and hands with one hypothesis
- MCTSNode / MCTS: UCT search with chance node handling

The per-turn driver lives in detective.mcts.controller (SearchController).

Example:
    >>> from detective.game.heimlich import HeimlichGame
    >>> from detective.mcts.controller import SearchController
    >>> game = HeimlichGame(num_players=4, seed=1)
    >>> controller = SearchController(player_id=0)
    >>> action = controller.compute_next_action(game.get_observation(0))
"""

from detective.mcts.node import MCTSNode, MCTSContractError, get_maximum_valued_actions
from detective.mcts.search import (
    MCTS,
    ChancePolicy,
    RewardFunction,
    NormalizedScoreReward,
    WinLossReward,
    get_reward_function,
)
from detective.mcts.history_tracker import HandTracker, MovementLedger, TurnHistoryTracker
from detective.mcts.suspicion import IdentitySuspicionEngine
from detective.mcts.determinization import Determinization, Determinizer

__all__ = [
    "MCTSNode",
    "MCTSContractError",
    "get_maximum_valued_actions",
    "MCTS",
    "ChancePolicy",
    "RewardFunction",
    "NormalizedScoreReward",
    "WinLossReward",
    "get_reward_function",
    "HandTracker",
    "MovementLedger",
    "TurnHistoryTracker",
    "IdentitySuspicionEngine",
    "Determinization",
    "Determinizer",
]

"""
Monte Carlo Tree Search over determinized game states.

This module implements the four-phase UCT loop used by the detective agent.
The tree is built over one concrete (determinized) copy of the game, so all
hidden information is fixed for the life of the tree; only die rolls remain
random.

Main Components:
    - ChancePolicy: How die-roll (chance) nodes are handled
    - RewardFunction: Maps a finished or truncated game to a reward in [0, 1]
    - MCTS: Orchestrates Selection, Expansion, Simulation, Backpropagation

Chance handling:
    FULL_BRANCHING: The game exposes every concrete die outcome as a legal
        action. The random-roll shortcut is removed and the outcomes are
        selected by UCT like any other action.
    SINGLE_SAMPLE: The first visit of a chance node commits to one uniformly
        sampled outcome, which is reused for the rest of the tree's life.

Both policies draw concrete outcomes from the search's own generator, never
from the game's dice, so a fixed seed reproduces the tree.

Example:
    >>> from detective.game.heimlich import HeimlichGame
    >>> game = HeimlichGame(num_players=3, seed=7)
    >>> mcts = MCTS(player_id=0, rng=np.random.default_rng(0))
    >>> action = mcts.search(game, num_iterations=200)
"""

from enum import Enum
from typing import Callable, Dict, Hashable, List, Optional, Tuple, Type
import logging
import math

import numpy as np

from detective.game.model import GameModel
from detective.mcts.node import MCTSNode, get_maximum_valued_actions

logger = logging.getLogger(__name__)

DEFAULT_EXPLORATION_CONSTANT = math.sqrt(2)
DEFAULT_TERMINATION_DEPTH = 64


class ChancePolicy(Enum):
    FULL_BRANCHING = "full_branching"
    SINGLE_SAMPLE = "single_sample"


# ============================================================================
# Reward Functions
# ============================================================================


class RewardFunction:
    """
    Reward of a (possibly unfinished) game for one player.

    Subclasses must return a value in [0, 1].
    """

    name = "base"

    def __call__(self, game: GameModel, player: int) -> float:
        raise NotImplementedError

    @staticmethod
    def player_score(game: GameModel, player: int) -> int:
        """Score of the identity the player controls in this game state."""
        identity = game.get_players_to_agents()[player]
        return game.get_scores()[identity]


class NormalizedScoreReward(RewardFunction):
    """
    Own score scaled by the winning score.

    reward = min(1, score / winning_score), never below 0
    """

    name = "normalized_score"

    def __call__(self, game: GameModel, player: int) -> float:
        score = self.player_score(game, player)
        reward = score / game.winning_score
        return max(0.0, min(1.0, reward))


class WinLossReward(RewardFunction):
    """
    1.0 if the player's score is a (possibly shared) maximum among players,
    else 0.0. Figurines nobody controls do not count.
    """

    name = "win_loss"

    def __call__(self, game: GameModel, player: int) -> float:
        scores = game.get_scores()
        score = self.player_score(game, player)
        best = max(scores[identity] for identity in game.get_players_to_agents().values())
        return 1.0 if score >= best else 0.0


REWARD_FUNCTIONS: Dict[str, Type[RewardFunction]] = {
    NormalizedScoreReward.name: NormalizedScoreReward,
    WinLossReward.name: WinLossReward,
}


def get_reward_function(name: str) -> RewardFunction:
    """
    Instantiate a reward function by name.

    Raises:
        ValueError: If name is unknown
    """
    if name not in REWARD_FUNCTIONS:
        raise ValueError(
            f"Unknown reward function '{name}', expected one of {sorted(REWARD_FUNCTIONS)}"
        )
    return REWARD_FUNCTIONS[name]()


# ============================================================================
# MCTS
# ============================================================================


class MCTS:
    """
    UCT search for one player on a determinized game.

    Attributes:
        player_id: Seat whose reward is maximized
        exploration_constant: C in the UCT formula
        chance_policy: Handling of chance nodes (fixed for the tree's life)
        reward_function: Reward of simulated games
        termination_depth: Maximum simulation length (-1 = until game over)
        rng: Generator for tie-breaks, chance sampling and rollouts
        should_stop: Predicate polled between iterations and rollout steps
        root: Root of the current tree
        iterations: Iterations run on the current tree
    """

    def __init__(
        self,
        player_id: int,
        exploration_constant: float = DEFAULT_EXPLORATION_CONSTANT,
        chance_policy: ChancePolicy = ChancePolicy.FULL_BRANCHING,
        reward_function: Optional[RewardFunction] = None,
        termination_depth: int = DEFAULT_TERMINATION_DEPTH,
        rng: Optional[np.random.Generator] = None,
        should_stop: Optional[Callable[[], bool]] = None,
    ):
        self.player_id = player_id
        self.exploration_constant = exploration_constant
        self.chance_policy = chance_policy
        self.reward_function = reward_function or NormalizedScoreReward()
        self.termination_depth = termination_depth
        self.rng = rng if rng is not None else np.random.default_rng()
        self._has_stop_predicate = should_stop is not None
        self.should_stop = should_stop or (lambda: False)

        self.root: Optional[MCTSNode] = None
        self.iterations = 0

    def create_root(self, game: GameModel) -> MCTSNode:
        """
        Build a fresh tree rooted at a copy of game.

        The copy exposes concrete die outcomes, so every roll in the tree and
        in rollouts is drawn from this search's generator.
        """
        root_state = game.copy()
        root_state.set_allow_custom_die_rolls(True)

        self.root = MCTSNode(root_state, self.player_id)
        self.iterations = 0
        return self.root

    def _get_candidate_actions(self, game: GameModel) -> List[Hashable]:
        """Legal actions, with the random-roll shortcut removed when concrete outcomes exist."""
        actions = game.get_legal_actions()
        if game.is_chance_phase():
            random_roll = game.get_random_roll_action()
            outcomes = [action for action in actions if action != random_roll]
            if outcomes:
                return outcomes
        return actions

    def _pick(self, actions: List[Hashable]) -> Hashable:
        return actions[int(self.rng.integers(len(actions)))]

    def _select_by_uct(self, node: MCTSNode, actions: List[Hashable]) -> Hashable:
        best_actions = get_maximum_valued_actions(
            actions,
            key=lambda action: node.calculate_uct(action, self.exploration_constant),
        )
        return self._pick(best_actions)

    def _select_chance_action(self, node: MCTSNode) -> Hashable:
        outcomes = self._get_candidate_actions(node.game_state)
        if self.chance_policy == ChancePolicy.SINGLE_SAMPLE:
            if node.chance_outcome is None:
                node.chance_outcome = self._pick(outcomes)
            return node.chance_outcome
        return self._select_by_uct(node, outcomes)

    def selection(self, node: MCTSNode) -> Tuple[MCTSNode, Optional[Hashable]]:
        """
        Descend by UCT until an unexpanded action or a terminal node.

        Returns:
            (node, action) where action has no child at node yet, or
            (terminal node, None)
        """
        while True:
            if node.is_terminal():
                return node, None

            if node.game_state.is_chance_phase():
                action = self._select_chance_action(node)
            else:
                action = self._select_by_uct(node, self._get_candidate_actions(node.game_state))

            child = node.children.get(action)
            if child is None:
                return node, action
            node = child

    def expansion(self, node: MCTSNode, action: Optional[Hashable]) -> MCTSNode:
        return node.expand(action)

    def simulation(self, node: MCTSNode) -> float:
        """
        Play uniformly random actions from node and score the result.

        Stops at game over, at termination_depth steps, or when should_stop
        fires.
        """
        game = node.game_state.copy()
        simulation_depth = 0

        while not game.is_game_over() and not self.should_stop():
            if 0 <= self.termination_depth <= simulation_depth:
                break
            game.apply_action(self._pick(self._get_candidate_actions(game)))
            simulation_depth += 1

        return self.reward_function(game, self.player_id)

    def backpropagation(self, node: MCTSNode, reward: float) -> None:
        node.backpropagate(reward)

    def run_iteration(self, root: Optional[MCTSNode] = None) -> MCTSNode:
        """
        Run one Selection, Expansion, Simulation, Backpropagation cycle.

        Returns:
            The node the simulation started from
        """
        root = root or self.root
        if root is None:
            raise ValueError("No search tree: call create_root() first")

        node, action = self.selection(root)
        leaf = self.expansion(node, action)
        reward = self.simulation(leaf)
        self.backpropagation(leaf, reward)
        self.iterations += 1
        return leaf

    def search(self, game: GameModel, num_iterations: Optional[int] = None) -> Hashable:
        """
        Build a new tree for game and return the best root action.

        Args:
            game: Determinized game state (copied, never mutated)
            num_iterations: Iteration limit; None runs until should_stop fires

        Raises:
            ValueError: If neither an iteration limit nor a stop predicate
                bounds the search
        """
        if num_iterations is None and not self._has_stop_predicate:
            raise ValueError("search() needs num_iterations or a should_stop predicate")

        root = self.create_root(game)
        while not self.should_stop():
            if num_iterations is not None and self.iterations >= num_iterations:
                break
            self.run_iteration(root)

        logger.debug(f"Search finished: {self.iterations} iterations, {root}")
        return self.get_best_action(root)

    def get_best_action(self, root: Optional[MCTSNode] = None) -> Hashable:
        """Root action with the highest mean reward (random tie-break)."""
        root = root or self.root
        if root is None:
            raise ValueError("No search tree: call create_root() first")
        return self._pick(root.get_best_actions())

"""
MCTS Node implementation with UCT selection.

This module implements the tree node structure for Monte Carlo Tree Search
over determinized game states: UCT-based action scoring, single-action
expansion, and backpropagation of rewards in [0, 1].

Perspective:
    Every node stores statistics from the point of view of one optimized
    player (the searching agent). When an opponent is to act at a node the
    exploitation term is inverted (1 - Q), so opponents are modelled as
    minimizing our reward.

Architecture Note:
    Turn tracking delegates to GameModel.get_current_player() as the
    canonical source of truth. Nodes hold direct references to their children
    and a back-reference to their parent; the tree is discarded after every
    decision.
"""

from typing import Callable, Dict, Hashable, Iterable, List, Optional
import math

from detective.game.model import GameModel


class MCTSContractError(ValueError):
    """Raised when the search tree is used in a way that breaks its contract."""

    pass


def get_maximum_valued_actions(
    actions: Iterable[Hashable],
    key: Callable[[Hashable], float],
) -> List[Hashable]:
    """
    Return every action whose value equals the maximum, in input order.

    Single linear scan; the caller breaks ties.

    Args:
        actions: Candidate actions
        key: Value of an action

    Returns:
        All maximal actions (empty if actions is empty)

    Example:
        >>> get_maximum_valued_actions(["a", "b", "c"], {"a": 1, "b": 3, "c": 3}.get)
        ['b', 'c']
    """
    best_actions: List[Hashable] = []
    best_value = -math.inf

    for action in actions:
        value = key(action)
        if value > best_value:
            best_value = value
            best_actions = [action]
        elif value == best_value:
            best_actions.append(action)

    return best_actions


class MCTSNode:
    """
    Node in the MCTS tree.

    Attributes:
        game_state: Game state at this node (owned exclusively by the node)
        optimized_player: Seat whose reward the tree maximizes
        parent: Parent node (None for root)
        action_taken: Action that led to this node from parent
        depth: Distance from the root
        children: Dictionary mapping action → child node
        playouts: Number of simulations through this node
        wins: Sum of rewards backpropagated through this node
        chance_outcome: Outcome committed to at a chance node (single-sample
            chance handling only)
    """

    def __init__(
        self,
        game_state: GameModel,
        optimized_player: int,
        parent: Optional["MCTSNode"] = None,
        action_taken: Optional[Hashable] = None,
    ):
        """
        Initialize MCTS node.

        Example:
            >>> game = HeimlichGame(num_players=3, seed=0)
            >>> root = MCTSNode(game, optimized_player=0)
            >>> root.is_root(), root.is_leaf()
            (True, True)
        """
        self.game_state = game_state
        self.optimized_player = optimized_player
        self.parent = parent
        self.action_taken = action_taken
        self.depth = 0 if parent is None else parent.depth + 1

        self.children: Dict[Hashable, MCTSNode] = {}

        # MCTS statistics
        self.playouts = 0
        self.wins = 0.0

        self.chance_outcome: Optional[Hashable] = None

    def is_leaf(self) -> bool:
        """Check if node has no children yet."""
        return not self.children

    def is_root(self) -> bool:
        return self.parent is None

    def is_terminal(self) -> bool:
        return self.game_state.is_game_over()

    def get_current_player(self) -> int:
        return self.game_state.get_current_player()

    def get_mean_value(self) -> float:
        """Average reward of this node (0.0 when unvisited)."""
        if self.playouts == 0:
            return 0.0
        return self.wins / self.playouts

    def calculate_q_of_child(self, action: Hashable) -> float:
        """
        Exploitation term of a child from the acting player's perspective.

        Returns:
            wins / playouts of the child, or 1 minus that when an opponent
            acts at this node

        Raises:
            MCTSContractError: If the child does not exist or is unvisited
        """
        child = self.children.get(action)
        if child is None or child.playouts == 0:
            raise MCTSContractError(f"No visited child for action {action}")

        q_value = child.wins / child.playouts
        if self.get_current_player() != self.optimized_player:
            q_value = 1.0 - q_value
        return q_value

    def calculate_uct(self, action: Hashable, exploration_constant: float = math.sqrt(2)) -> float:
        """
        UCT score of taking action at this node.

        UCT(a) = Q(a) + C * sqrt(ln N(s) / N(s, a))

        Unexpanded or unvisited actions score +inf so that every action is
        tried once before any is revisited.

        Args:
            action: Legal action at this node
            exploration_constant: C (sqrt(2) by default)

        Raises:
            MCTSContractError: If a visited child exists under an unvisited parent
        """
        child = self.children.get(action)
        if child is None or child.playouts == 0:
            return math.inf
        if self.playouts == 0:
            raise MCTSContractError("Parent has visited children but no playouts")

        q_value = self.calculate_q_of_child(action)
        exploration = exploration_constant * math.sqrt(math.log(self.playouts) / child.playouts)
        return q_value + exploration

    def expand(self, action: Optional[Hashable]) -> "MCTSNode":
        """
        Add the child reached by taking action.

        Args:
            action: Legal action that has no child yet. None is accepted only
                on terminal nodes, where the node itself is returned.

        Returns:
            The new child node

        Raises:
            MCTSContractError: If action is None on a non-terminal node, is
                already expanded, or is not legal here
        """
        if action is None:
            if self.is_terminal():
                return self
            raise MCTSContractError("Cannot expand a non-terminal node without an action")

        if action in self.children:
            raise MCTSContractError(f"Action {action} is already expanded")

        if not self.game_state.is_valid_action(action):
            raise MCTSContractError(f"Action {action} is not legal at this node")

        child_state = self.game_state.copy()
        child_state.apply_action(action)

        child = MCTSNode(
            game_state=child_state,
            optimized_player=self.optimized_player,
            parent=self,
            action_taken=action,
        )
        self.children[action] = child
        return child

    def backpropagate(self, reward: float) -> None:
        """
        Add one playout with the given reward to this node and every ancestor.

        Raises:
            MCTSContractError: If reward is outside [0, 1]
        """
        if not 0.0 <= reward <= 1.0:
            raise MCTSContractError(f"Reward must be in [0, 1], got {reward}")

        node: Optional[MCTSNode] = self
        while node is not None:
            node.playouts += 1
            node.wins += reward
            node = node.parent

    def get_best_actions(self) -> List[Hashable]:
        """
        Root children with the highest mean reward.

        Raises:
            MCTSContractError: If the node has no children
        """
        if not self.children:
            raise MCTSContractError("Cannot pick best action: node has no children")

        return get_maximum_valued_actions(
            self.children.keys(),
            key=lambda action: self.children[action].get_mean_value(),
        )

    def __repr__(self) -> str:
        return (
            f"MCTSNode(action={self.action_taken}, depth={self.depth}, "
            f"playouts={self.playouts}, wins={self.wins:.2f}, "
            f"children={len(self.children)})"
        )

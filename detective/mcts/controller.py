"""
Per-decision driver of the detective agent.

SearchController.compute_next_action is the single entry point a host game
harness calls once per turn. One decision runs:

    1. Single legal action -> return it, no search
    2. Sync trackers with the public action log, recompute suspicion
    3. Bootstrap: too few die rolls observed -> random legal action
    4. Determinize a copy of the game
    5. UCT iterations until the stop predicate fires or memory runs high
    6. Best root action, verified against the real game

Any exception during 2-6 is logged and answered with a uniformly random
legal action, so the host always gets a legal move back.
"""

from dataclasses import dataclass
from typing import Callable, Hashable, List, Optional
import logging
import time

import numpy as np
import psutil

from detective.config import AgentConfig
from detective.game.model import GameModel
from detective.mcts.determinization import Determinizer
from detective.mcts.history_tracker import TurnHistoryTracker
from detective.mcts.search import MCTS, get_reward_function
from detective.mcts.suspicion import IdentitySuspicionEngine

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024
DEFAULT_CEILING_MB = 4096


@dataclass
class SearchStats:
    """
    Summary of the last decision.

    Attributes:
        iterations: MCTS iterations run
        root_playouts: Playouts at the root
        best_playouts: Playouts of the chosen root child
        best_q: Mean reward of the chosen root child
        elapsed: Wall-clock seconds spent deciding
        stopped_by_memory: Whether the memory threshold ended the search
        fallback: Why no search result was used (None if it was)
    """

    iterations: int = 0
    root_playouts: int = 0
    best_playouts: int = 0
    best_q: float = 0.0
    elapsed: float = 0.0
    stopped_by_memory: bool = False
    fallback: Optional[str] = None


class Deadline:
    """
    Stop predicate that fires once a time budget is used up.

    Example:
        >>> stop = Deadline(0.5)
        >>> stop()
        False
    """

    def __init__(self, budget_seconds: float, clock: Callable[[], float] = time.perf_counter):
        self.budget_seconds = budget_seconds
        self.clock = clock
        self.start = clock()

    def remaining(self) -> float:
        return self.budget_seconds - (self.clock() - self.start)

    def __call__(self) -> bool:
        return self.remaining() <= 0


class MemoryMonitor:
    """
    Resident memory check against a ceiling.

    Attributes:
        high_water: Fraction of the ceiling at which memory counts as exhausted
        ceiling_bytes: Memory ceiling (total system memory, capped at
            DEFAULT_CEILING_MB, by default)
    """

    def __init__(self, high_water: float = 0.9, ceiling_mb: Optional[float] = None):
        self.high_water = high_water
        if ceiling_mb is None:
            self.ceiling_bytes = min(
                psutil.virtual_memory().total, DEFAULT_CEILING_MB * BYTES_PER_MB
            )
        else:
            self.ceiling_bytes = int(ceiling_mb * BYTES_PER_MB)
        self.process = psutil.Process()

    def used_bytes(self) -> int:
        return self.process.memory_info().rss

    def is_exhausted(self) -> bool:
        return self.used_bytes() >= self.high_water * self.ceiling_bytes


class SearchController:
    """
    Chooses actions for one seat with determinized MCTS.

    Trackers are created lazily on the first decision and live for the whole
    game; the search tree is rebuilt for every decision.

    Attributes:
        player_id: Seat this controller plays
        config: Agent configuration
        tracker: Public history tracker (None until first decision)
        suspicion: Identity suspicion engine (None until first decision)
        determinizer: Hidden state sampler (None until first decision)
        last_stats: SearchStats of the most recent decision
    """

    def __init__(self, player_id: int, config: Optional[AgentConfig] = None):
        self.player_id = player_id
        self.config = config or AgentConfig()
        self.config.validate()

        self.reward_function = get_reward_function(self.config.reward)
        self.chance_policy = self.config.get_chance_policy()
        self.memory_monitor = MemoryMonitor(
            self.config.memory_high_water, self.config.memory_ceiling_mb
        )
        self.seed_sequence = np.random.SeedSequence(self.config.seed)

        self.tracker: Optional[TurnHistoryTracker] = None
        self.suspicion: Optional[IdentitySuspicionEngine] = None
        self.determinizer: Optional[Determinizer] = None
        self.last_stats = SearchStats()

    def _initialize_trackers(self, game: GameModel) -> None:
        self.tracker = TurnHistoryTracker.from_game(game, self.config.max_tracked_turns)
        self.suspicion = IdentitySuspicionEngine(self.tracker.ledger)
        self.determinizer = Determinizer(self.tracker, self.suspicion)
        logger.info(
            f"Player {self.player_id}: trackers initialized for "
            f"{game.num_players} players"
        )

    def _random_action(self, legal_actions: List[Hashable], rng: np.random.Generator) -> Hashable:
        return legal_actions[int(rng.integers(len(legal_actions)))]

    def compute_next_action(
        self,
        game: GameModel,
        should_stop: Optional[Callable[[], bool]] = None,
        time_budget: Optional[float] = None,
    ) -> Hashable:
        """
        Choose the next action for this controller's seat.

        Args:
            game: The game as observed by this seat
            should_stop: Stop predicate; defaults to a Deadline
            time_budget: Seconds for the default Deadline (config value if None)

        Returns:
            A legal action of game

        Raises:
            ValueError: If game has no legal actions
        """
        start = time.perf_counter()
        self.last_stats = SearchStats()
        rng = np.random.default_rng(self.seed_sequence.spawn(1)[0])

        legal_actions = game.get_legal_actions()
        if not legal_actions:
            raise ValueError("compute_next_action called without legal actions")

        if len(legal_actions) == 1:
            self.last_stats.fallback = "single_action"
            self.last_stats.elapsed = time.perf_counter() - start
            return legal_actions[0]

        if should_stop is None:
            should_stop = Deadline(time_budget if time_budget is not None else self.config.time_budget)

        try:
            action = self._decide(game, legal_actions, should_stop, rng)
        except Exception:
            logger.exception(
                f"Player {self.player_id}: search failed, playing a random action"
            )
            self.last_stats.fallback = "error"
            action = self._random_action(legal_actions, rng)

        self.last_stats.elapsed = time.perf_counter() - start
        return action

    def _decide(
        self,
        game: GameModel,
        legal_actions: List[Hashable],
        should_stop: Callable[[], bool],
        rng: np.random.Generator,
    ) -> Hashable:
        stats = self.last_stats

        if self.tracker is None:
            self._initialize_trackers(game)
        self.tracker.advance(game.get_action_records())
        self.suspicion.recompute()

        if self.tracker.num_rolls < self.config.bootstrap_rolls:
            logger.debug(
                f"Player {self.player_id}: {self.tracker.num_rolls} rolls observed, "
                f"playing randomly until {self.config.bootstrap_rolls}"
            )
            stats.fallback = "bootstrap"
            return self._random_action(legal_actions, rng)

        determinized = game.copy()
        hypothesis = self.determinizer.determinize(determinized, self.player_id, rng)
        logger.debug(f"Player {self.player_id}: determinized identities {hypothesis.identities}")

        mcts = MCTS(
            player_id=self.player_id,
            exploration_constant=self.config.exploration_constant,
            chance_policy=self.chance_policy,
            reward_function=self.reward_function,
            termination_depth=self.config.termination_depth,
            rng=rng,
            should_stop=should_stop,
        )
        root = mcts.create_root(determinized)

        while not should_stop():
            if self.memory_monitor.is_exhausted():
                logger.info(
                    f"Player {self.player_id}: memory threshold reached after "
                    f"{mcts.iterations} iterations"
                )
                stats.stopped_by_memory = True
                break
            mcts.run_iteration(root)

        stats.iterations = mcts.iterations
        stats.root_playouts = root.playouts

        if root.is_leaf():
            logger.warning(f"Player {self.player_id}: search produced no children")
            stats.fallback = "no_children"
            return self._random_action(legal_actions, rng)

        best_action = mcts.get_best_action(root)
        if not game.is_valid_action(best_action):
            logger.warning(
                f"Player {self.player_id}: best action {best_action} is not legal "
                f"in the real game, playing a random action"
            )
            stats.fallback = "illegal_best"
            return self._random_action(legal_actions, rng)

        best_child = root.children[best_action]
        stats.best_playouts = best_child.playouts
        stats.best_q = best_child.get_mean_value()

        logger.info(
            f"Player {self.player_id}: chose {best_action} after {stats.iterations} "
            f"iterations (playouts={stats.best_playouts}, Q={stats.best_q:.3f})"
        )
        return best_action

"""
Agent and Arena Configuration

Centralized configuration for the detective search agent and for arena
matches. Configs are plain dataclasses that round-trip through JSON.
"""

import json
import math
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional

from detective.game.constants import MAX_PLAYERS, MIN_PLAYERS
from detective.mcts.search import ChancePolicy, REWARD_FUNCTIONS


class BaseConfig:
    """JSON persistence shared by all config dataclasses."""

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert config to dictionary.

        Returns:
            Dictionary representation of config
        """
        return asdict(self)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]):
        """
        Create config from dictionary.

        Args:
            config_dict: Dictionary of configuration values

        Returns:
            Config instance
        """
        # Filter out keys that aren't valid config fields
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}
        filtered_dict = {k: v for k, v in config_dict.items() if k in valid_keys}
        return cls(**filtered_dict)

    @classmethod
    def from_file(cls, filepath: str):
        """
        Load config from JSON file.

        Args:
            filepath: Path to JSON config file
        """
        with open(filepath, 'r') as f:
            config_dict = json.load(f)
        return cls.from_dict(config_dict)

    def save(self, filepath: str):
        """
        Save config to JSON file.

        Args:
            filepath: Path to save config to
        """
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


@dataclass
class AgentConfig(BaseConfig):
    """Configuration for the search agent."""

    # UCT settings
    exploration_constant: float = math.sqrt(2)
    termination_depth: int = 64  # -1 = simulate until game over
    chance_policy: str = ChancePolicy.FULL_BRANCHING.value
    reward: str = "normalized_score"

    # Evidence settings
    bootstrap_rolls: int = 10  # Play randomly until this many die rolls were observed
    max_tracked_turns: int = 100

    # Resource limits
    time_budget: float = 1.0  # Seconds per decision
    memory_high_water: float = 0.9  # Fraction of the ceiling that ends the search
    memory_ceiling_mb: Optional[float] = None  # None = system memory, capped at 4096MB

    # Reproducibility
    seed: Optional[int] = None

    def get_chance_policy(self) -> ChancePolicy:
        return ChancePolicy(self.chance_policy)

    def validate(self) -> bool:
        """
        Validate configuration values.

        Returns:
            True if config is valid

        Raises:
            ValueError: If config values are invalid
        """
        if self.exploration_constant < 0:
            raise ValueError(
                f"exploration_constant must be non-negative, got {self.exploration_constant}"
            )

        if self.termination_depth < -1:
            raise ValueError(
                f"termination_depth must be -1 or non-negative, got {self.termination_depth}"
            )

        valid_policies = [policy.value for policy in ChancePolicy]
        if self.chance_policy not in valid_policies:
            raise ValueError(
                f"chance_policy must be one of {valid_policies}, got {self.chance_policy}"
            )

        if self.reward not in REWARD_FUNCTIONS:
            raise ValueError(
                f"reward must be one of {sorted(REWARD_FUNCTIONS)}, got {self.reward}"
            )

        if self.bootstrap_rolls < 0:
            raise ValueError(f"bootstrap_rolls must be non-negative, got {self.bootstrap_rolls}")

        if self.max_tracked_turns <= 0:
            raise ValueError(
                f"max_tracked_turns must be positive, got {self.max_tracked_turns}"
            )

        if self.time_budget <= 0:
            raise ValueError(f"time_budget must be positive, got {self.time_budget}")

        if not 0 < self.memory_high_water <= 1:
            raise ValueError(
                f"memory_high_water must be in (0, 1], got {self.memory_high_water}"
            )

        if self.memory_ceiling_mb is not None and self.memory_ceiling_mb <= 0:
            raise ValueError(
                f"memory_ceiling_mb must be positive, got {self.memory_ceiling_mb}"
            )

        return True

    def __str__(self) -> str:
        """String representation of config."""
        ceiling = "system" if self.memory_ceiling_mb is None else f"{self.memory_ceiling_mb}MB"
        lines = ["Agent Configuration:"]
        lines.append(f"  UCT: C={self.exploration_constant:.3f}, depth={self.termination_depth}")
        lines.append(f"  Chance: {self.chance_policy}, Reward: {self.reward}")
        lines.append(f"  Bootstrap: {self.bootstrap_rolls} rolls, Tracked turns: {self.max_tracked_turns}")
        lines.append(f"  Budget: {self.time_budget}s, Memory: {self.memory_high_water:.0%} of {ceiling}")
        lines.append(f"  Seed: {self.seed}")
        return "\n".join(lines)


@dataclass
class ArenaConfig(BaseConfig):
    """Configuration for arena matches."""

    num_games: int = 10
    num_players: int = 4
    with_cards: bool = True
    rotate_seats: bool = True  # Move the search agent one seat per game
    max_actions_per_game: int = 5_000
    seed: Optional[int] = None

    def validate(self) -> bool:
        """
        Validate configuration values.

        Raises:
            ValueError: If config values are invalid
        """
        if self.num_games <= 0:
            raise ValueError(f"num_games must be positive, got {self.num_games}")

        if not MIN_PLAYERS <= self.num_players <= MAX_PLAYERS:
            raise ValueError(
                f"num_players must be in [{MIN_PLAYERS}, {MAX_PLAYERS}], got {self.num_players}"
            )

        if self.max_actions_per_game <= 0:
            raise ValueError(
                f"max_actions_per_game must be positive, got {self.max_actions_per_game}"
            )

        return True

    def __str__(self) -> str:
        lines = ["Arena Configuration:"]
        lines.append(f"  Games: {self.num_games}, Players: {self.num_players}, Cards: {self.with_cards}")
        lines.append(f"  Rotate seats: {self.rotate_seats}, Action cap: {self.max_actions_per_game}")
        lines.append(f"  Seed: {self.seed}")
        return "\n".join(lines)


def get_fast_config() -> AgentConfig:
    """
    Get a fast agent config for testing/debugging.

    Returns:
        AgentConfig with a short time budget and shallow rollouts
    """
    return AgentConfig(
        termination_depth=16,
        bootstrap_rolls=0,
        time_budget=0.05,
    )


def get_default_config() -> AgentConfig:
    """
    Get the default tournament agent config.

    Returns:
        AgentConfig with default settings
    """
    return AgentConfig()  # Uses defaults

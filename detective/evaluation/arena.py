"""
Arena system for playing the detective agent against baseline opponents.

Full Heimlich & Co. games are played on the reference engine with one
SearchController seat and RandomAgent seats everywhere else. Every agent is
handed only its own observation of the game, so the search agent has to
rely on its trackers for hidden information. The search seat rotates across
games so no seat order advantage is baked into the results.
"""

from typing import Any, Dict, Hashable, List, Optional
import logging
import time

import numpy as np

from detective.config import AgentConfig, ArenaConfig
from detective.game.heimlich import HeimlichGame
from detective.game.model import GameModel
from detective.mcts.controller import SearchController

logger = logging.getLogger(__name__)


class RandomAgent:
    """Baseline that plays a uniformly random legal action."""

    def __init__(self, player_id: int, seed: Optional[int] = None):
        self.player_id = player_id
        self.rng = np.random.default_rng(seed)

    def compute_next_action(self, game: GameModel, should_stop=None, time_budget=None) -> Hashable:
        legal_actions = game.get_legal_actions()
        return legal_actions[int(self.rng.integers(len(legal_actions)))]


class Arena:
    """
    Match runner for one search agent against random opponents.

    Attributes:
        agent_config: Configuration of the search agent
        arena_config: Match settings
    """

    def __init__(
        self,
        agent_config: Optional[AgentConfig] = None,
        arena_config: Optional[ArenaConfig] = None,
    ):
        self.agent_config = agent_config or AgentConfig()
        self.arena_config = arena_config or ArenaConfig()
        self.agent_config.validate()
        self.arena_config.validate()
        self.seed_sequence = np.random.SeedSequence(self.arena_config.seed)

    def _make_agents(self, detective_seat: int, seeds: List[int]) -> Dict[int, Any]:
        agents: Dict[int, Any] = {}
        for seat in range(self.arena_config.num_players):
            if seat == detective_seat:
                agents[seat] = SearchController(seat, self.agent_config)
            else:
                agents[seat] = RandomAgent(seat, seed=seeds[seat])
        return agents

    def play_game(self, detective_seat: int = 0, seed: Optional[int] = None) -> Dict[str, Any]:
        """
        Play one full game.

        Args:
            detective_seat: Seat of the search agent
            seed: Seed for the game engine and the random opponents

        Returns:
            Game result:
            - scores: Final score of every seat's figurine
            - winners: Seats whose figurine has the maximum score
            - detective_seat: Seat of the search agent
            - num_actions: Actions applied
            - truncated: Whether the action cap ended the game
            - fallbacks: Search decisions answered without a search result
        """
        seeds = np.random.SeedSequence(seed).generate_state(self.arena_config.num_players + 1)
        game = HeimlichGame(
            self.arena_config.num_players,
            with_cards=self.arena_config.with_cards,
            seed=int(seeds[-1]),
        )
        agents = self._make_agents(detective_seat, [int(s) for s in seeds[:-1]])

        num_actions = 0
        fallbacks = 0
        while not game.is_game_over():
            if num_actions >= self.arena_config.max_actions_per_game:
                logger.warning(
                    f"Game stopped after {num_actions} actions without a winner"
                )
                break

            seat = game.get_current_player()
            agent = agents[seat]
            action = agent.compute_next_action(game.get_observation(seat))
            if seat == detective_seat and agent.last_stats.fallback not in (None, "single_action"):
                fallbacks += 1

            game.apply_action(action)
            num_actions += 1

        board_scores = game.get_scores()
        identities = game.get_players_to_agents()
        scores = [board_scores[identities[seat]] for seat in range(game.num_players)]
        best = max(scores)

        return {
            "scores": scores,
            "winners": [seat for seat, score in enumerate(scores) if score == best],
            "detective_seat": detective_seat,
            "num_actions": num_actions,
            "truncated": not game.is_game_over(),
            "fallbacks": fallbacks,
        }

    def play_match(self) -> Dict[str, Any]:
        """
        Play arena_config.num_games games.

        Returns:
            Match results:
            - wins: Games the search agent won outright
            - draws: Games where it shared the top score
            - losses: Games it lost
            - win_rate: wins / games_played
            - avg_score: Average final score of the search agent
            - avg_opponent_score: Average final score of the opponents
            - games_played: Total games played
            - elapsed: Wall-clock seconds
        """
        config = self.arena_config
        logger.info(f"Starting match: {config.num_games} games, {config.num_players} players")

        game_seeds = self.seed_sequence.generate_state(config.num_games)
        detective_scores = np.zeros(config.num_games)
        opponent_scores = np.zeros(config.num_games)
        outcomes = np.zeros(config.num_games, dtype=np.int64)  # 1 win, 0 draw, -1 loss

        start = time.perf_counter()
        for game_idx in range(config.num_games):
            seat = game_idx % config.num_players if config.rotate_seats else 0
            result = self.play_game(detective_seat=seat, seed=int(game_seeds[game_idx]))

            scores = result["scores"]
            detective_scores[game_idx] = scores[seat]
            opponent_scores[game_idx] = np.mean([s for p, s in enumerate(scores) if p != seat])

            if seat in result["winners"]:
                outcomes[game_idx] = 1 if len(result["winners"]) == 1 else 0
            else:
                outcomes[game_idx] = -1

            logger.info(
                f"Game {game_idx + 1}/{config.num_games}: seat {seat} scored "
                f"{scores[seat]}, winners {result['winners']}, "
                f"{result['num_actions']} actions"
            )

        wins = int(np.sum(outcomes == 1))
        results = {
            "wins": wins,
            "draws": int(np.sum(outcomes == 0)),
            "losses": int(np.sum(outcomes == -1)),
            "win_rate": wins / config.num_games,
            "avg_score": float(np.mean(detective_scores)),
            "avg_opponent_score": float(np.mean(opponent_scores)),
            "games_played": config.num_games,
            "elapsed": time.perf_counter() - start,
        }

        logger.info(
            f"Match complete: {results['wins']}W/{results['draws']}D/{results['losses']}L, "
            f"win rate {results['win_rate']:.1%}, avg score {results['avg_score']:.1f}"
        )
        return results

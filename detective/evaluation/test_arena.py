"""
Tests for the arena match runner.
"""

import pytest

from detective.config import AgentConfig, ArenaConfig, get_fast_config
from detective.evaluation.arena import Arena, RandomAgent
from detective.game.heimlich import HeimlichGame
from detective.play import load_agent_config, parse_args


@pytest.fixture
def agent_config():
    config = get_fast_config()
    config.time_budget = 0.01
    config.termination_depth = 4
    config.seed = 1
    return config


@pytest.fixture
def arena(agent_config):
    return Arena(
        agent_config,
        ArenaConfig(num_games=2, num_players=3, max_actions_per_game=40, seed=7),
    )


class TestRandomAgent:
    """Tests for the random baseline."""

    def test_plays_legal_actions(self):
        game = HeimlichGame(num_players=3, seed=2)
        agent = RandomAgent(0, seed=0)
        for _ in range(20):
            seat = game.get_current_player()
            action = agent.compute_next_action(game.get_observation(seat))
            assert game.is_valid_action(action)
            game.apply_action(action)


class TestArena:
    """Tests for Arena."""

    def test_play_game(self, arena):
        result = arena.play_game(detective_seat=1, seed=3)

        assert result["detective_seat"] == 1
        assert len(result["scores"]) == 3
        assert result["winners"]
        assert 0 < result["num_actions"] <= 40
        assert result["truncated"] == (result["num_actions"] == 40)

    def test_play_match(self, arena):
        results = arena.play_match()

        assert results["games_played"] == 2
        assert results["wins"] + results["draws"] + results["losses"] == 2
        assert 0.0 <= results["win_rate"] <= 1.0
        assert results["avg_score"] >= 0.0

    def test_invalid_config_rejected(self, agent_config):
        with pytest.raises(ValueError):
            Arena(agent_config, ArenaConfig(num_players=9))


class TestCommandLine:
    """Tests for argument handling of the play script."""

    def test_defaults(self):
        args = parse_args([])
        assert args.games == 10
        assert args.players == 4
        assert args.log_level == "INFO"

    def test_overrides_applied_to_config(self):
        args = parse_args(["--fast", "--time-budget", "0.2", "--seed", "9"])
        config = load_agent_config(args)
        assert config.time_budget == 0.2
        assert config.seed == 9
        assert config.bootstrap_rolls == get_fast_config().bootstrap_rolls

    def test_config_file(self, tmp_path):
        path = tmp_path / "agent.json"
        AgentConfig(reward="win_loss").save(str(path))
        config = load_agent_config(parse_args(["--config", str(path)]))
        assert config.reward == "win_loss"

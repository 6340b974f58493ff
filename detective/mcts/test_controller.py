"""
Tests for the per-decision search controller.

Test Coverage:
    - Deadline and MemoryMonitor stop conditions
    - Early returns (single legal action, bootstrap)
    - Full search path and SearchStats
    - Fallbacks on memory exhaustion, errors and illegal results
"""

import logging
import types

import pytest

from detective.config import AgentConfig
from detective.game.heimlich import HeimlichGame, RANDOM_ROLL, SafeMoveAction
from detective.game.model import Phase
from detective.mcts import controller as controller_module
from detective.mcts.controller import Deadline, MemoryMonitor, SearchController

CEILING_CAP_BYTES = controller_module.DEFAULT_CEILING_MB * controller_module.BYTES_PER_MB


@pytest.fixture
def game():
    """4 player game where player 0 has rolled and is in the card phase."""
    game = HeimlichGame(num_players=4, seed=6)
    game.apply_action(RANDOM_ROLL)
    return game


def search_config(**overrides):
    settings = dict(bootstrap_rolls=0, termination_depth=8, time_budget=0.3, seed=3)
    settings.update(overrides)
    return AgentConfig(**settings)


class TestStopConditions:
    """Tests for Deadline and MemoryMonitor."""

    def test_deadline_with_fake_clock(self):
        times = iter([0.0, 0.5, 1.5])
        deadline = Deadline(1.0, clock=lambda: next(times))
        assert deadline() is False
        assert deadline() is True

    def test_deadline_remaining(self):
        times = iter([10.0, 10.25])
        deadline = Deadline(1.0, clock=lambda: next(times))
        assert deadline.remaining() == pytest.approx(0.75)

    def test_memory_monitor(self):
        assert not MemoryMonitor(0.9, ceiling_mb=10_000_000).is_exhausted()
        assert MemoryMonitor(0.9, ceiling_mb=0.001).is_exhausted()

    def test_memory_monitor_defaults_to_system_memory(self):
        monitor = MemoryMonitor()
        assert 0 < monitor.ceiling_bytes <= CEILING_CAP_BYTES
        assert monitor.used_bytes() > 0

    def test_default_ceiling_is_capped(self, monkeypatch):
        huge = types.SimpleNamespace(total=1024 * 1024 * controller_module.BYTES_PER_MB)
        monkeypatch.setattr(controller_module.psutil, "virtual_memory", lambda: huge)

        monitor = MemoryMonitor()
        assert monitor.ceiling_bytes == CEILING_CAP_BYTES

    def test_default_ceiling_follows_small_machines(self, monkeypatch):
        small = types.SimpleNamespace(total=512 * controller_module.BYTES_PER_MB)
        monkeypatch.setattr(controller_module.psutil, "virtual_memory", lambda: small)

        assert MemoryMonitor().ceiling_bytes == 512 * controller_module.BYTES_PER_MB


class TestEarlyReturns:
    """Tests for decisions answered without a search."""

    def test_single_legal_action(self):
        game = HeimlichGame(num_players=4, seed=6)
        controller = SearchController(0, search_config())

        action = controller.compute_next_action(game.get_observation(0))

        assert action == RANDOM_ROLL
        assert controller.last_stats.fallback == "single_action"
        assert controller.last_stats.elapsed > 0.0
        assert controller.tracker is None

    def test_no_legal_actions_raises(self, game):
        game.phase = Phase.GAME_OVER
        controller = SearchController(0, search_config())
        with pytest.raises(ValueError):
            controller.compute_next_action(game)

    def test_bootstrap_plays_randomly(self, game):
        controller = SearchController(0, search_config(bootstrap_rolls=10))

        action = controller.compute_next_action(game.get_observation(0))

        assert game.is_valid_action(action)
        assert controller.last_stats.fallback == "bootstrap"
        assert controller.last_stats.iterations == 0
        assert controller.tracker.num_rolls == 1
        assert controller.tracker.cursor == 1

    def test_same_seed_same_choice(self, game):
        actions = []
        for _ in range(2):
            controller = SearchController(0, search_config(bootstrap_rolls=10, seed=5))
            actions.append(controller.compute_next_action(game.get_observation(0)))
        assert actions[0] == actions[1]

    def test_invalid_config_rejected(self):
        with pytest.raises(ValueError):
            SearchController(0, AgentConfig(reward="elo"))


class TestSearch:
    """Tests for the full search path."""

    def test_search_returns_legal_action(self, game):
        controller = SearchController(0, search_config())

        action = controller.compute_next_action(game.get_observation(0))
        stats = controller.last_stats

        assert game.is_valid_action(action)
        assert stats.fallback is None
        assert stats.iterations >= 1
        assert stats.root_playouts == stats.iterations
        assert 1 <= stats.best_playouts <= stats.root_playouts
        assert 0.0 <= stats.best_q <= 1.0
        assert stats.elapsed > 0

    def test_trackers_persist_between_decisions(self, game):
        controller = SearchController(0, search_config(time_budget=0.05))
        controller.compute_next_action(game.get_observation(0))
        tracker = controller.tracker

        game.apply_action(controller.compute_next_action(game.get_observation(0)))
        controller.compute_next_action(game.get_observation(0))

        assert controller.tracker is tracker
        assert tracker.cursor == len(game.get_action_records())

    def test_stop_predicate_before_first_iteration(self, game):
        controller = SearchController(0, search_config())

        action = controller.compute_next_action(game.get_observation(0), should_stop=lambda: True)

        assert game.is_valid_action(action)
        assert controller.last_stats.fallback == "no_children"


class TestFallbacks:
    """Tests for graceful degradation."""

    def test_memory_exhaustion_ends_search(self, game):
        controller = SearchController(0, search_config(memory_ceiling_mb=0.001))

        action = controller.compute_next_action(game.get_observation(0))

        assert game.is_valid_action(action)
        assert controller.last_stats.stopped_by_memory
        assert controller.last_stats.iterations == 0
        assert controller.last_stats.fallback == "no_children"

    def test_exception_returns_random_legal_action(self, game, monkeypatch, caplog):
        def boom(self, *args, **kwargs):
            raise RuntimeError("determinization failed")

        monkeypatch.setattr(controller_module.Determinizer, "determinize", boom)
        controller = SearchController(0, search_config())

        with caplog.at_level(logging.ERROR, logger="detective.mcts.controller"):
            action = controller.compute_next_action(game.get_observation(0))

        assert game.is_valid_action(action)
        assert controller.last_stats.fallback == "error"
        assert "search failed" in caplog.text

    def test_illegal_best_action_replaced(self, game, monkeypatch):
        monkeypatch.setattr(
            controller_module.MCTS, "get_best_action", lambda self, root=None: SafeMoveAction(3)
        )
        controller = SearchController(0, search_config(time_budget=0.05))

        action = controller.compute_next_action(game.get_observation(0))

        assert game.is_valid_action(action)
        assert controller.last_stats.fallback == "illegal_best"

"""
Unit tests for the Heimlich & Co. reference engine.

Tests board mechanics, action enumeration, the turn phase machine, card
handling and the hidden information views used by the agent.
"""

import pytest

from detective.game.constants import (
    Agent,
    DECK_SIZE,
    FIELD_VALUES,
    INITIAL_HAND,
    MAX_HAND,
    RUINS_FIELD,
)
from detective.game.heimlich import (
    AgentMoveAction,
    CardAction,
    DieRollAction,
    GameStateException,
    HeimlichBoard,
    HeimlichGame,
    IllegalActionException,
    NO_MOVE,
    RANDOM_ROLL,
    SKIP_CARD,
    SafeMoveAction,
    create_card_universe,
    generate_move_actions,
)
from detective.game.model import ActionKind, Phase


def roll(game: HeimlichGame, value: int) -> None:
    """Apply a concrete die roll to game."""
    game.set_allow_custom_die_rolls(True)
    game.apply_action(DieRollAction(value))


def all_cards(game: HeimlichGame):
    cards = list(game.deck) + list(game.graveyard)
    for hand in game.cards.values():
        cards.extend(hand)
    return cards


# ============================================================================
# Test Board and Cards
# ============================================================================


class TestBoard:
    """Test HeimlichBoard mechanics."""

    def test_initial_board(self):
        board = HeimlichBoard()
        assert all(field == RUINS_FIELD for field in board.positions.values())
        assert all(score == 0 for score in board.scores.values())
        assert board.get_number_of_fields() == len(FIELD_VALUES)

    def test_move_agent_wraps_around(self):
        board = HeimlichBoard()
        board.positions[Agent.RED] = 10
        assert board.move_agent(Agent.RED, 3) == 1

    def test_crack_safe_scores_never_negative(self):
        """Figurines in the ruins lose points but stay at zero or above."""
        board = HeimlichBoard()
        board.positions[Agent.BLUE] = 11
        board.crack_safe()
        assert board.scores[Agent.BLUE] == FIELD_VALUES[11]
        assert board.scores[Agent.RED] == 0

    def test_move_safe_rejects_ruins(self):
        board = HeimlichBoard()
        with pytest.raises(GameStateException):
            board.move_safe(RUINS_FIELD)

    def test_copy_is_independent(self):
        board = HeimlichBoard()
        clone = board.copy()
        clone.move_agent(Agent.GREEN, 4)
        assert board.positions[Agent.GREEN] == RUINS_FIELD


class TestCards:
    """Test the card universe."""

    def test_universe_size_and_uniqueness(self):
        universe = create_card_universe()
        assert len(universe) == DECK_SIZE
        assert len(set(universe)) == DECK_SIZE

    def test_card_steps(self):
        universe = create_card_universe()
        assert {card.steps for card in universe} == {1, 2}


# ============================================================================
# Test Actions
# ============================================================================


class TestMoveGeneration:
    """Test enumeration of figurine moves."""

    @pytest.mark.parametrize("value,expected", [(1, 8), (2, 29), (3, 50), (4, 70), (6, 112)])
    def test_move_counts(self, value, expected):
        assert len(generate_move_actions(value)) == expected

    def test_no_move_only_on_low_rolls(self):
        assert NO_MOVE in generate_move_actions(3)
        assert NO_MOVE not in generate_move_actions(4)

    def test_every_move_spends_the_roll(self):
        for action in generate_move_actions(5):
            assert action.total_points() == 5
            assert len(action.moves) <= 2

    def test_action_kinds(self):
        assert RANDOM_ROLL.kind == ActionKind.CHANCE
        assert SKIP_CARD.kind == ActionKind.CARD
        assert NO_MOVE.kind == ActionKind.MOVE
        assert SafeMoveAction(3).kind == ActionKind.OTHER

    def test_moves_agent_into_ruins(self):
        board = HeimlichBoard()
        board.positions[Agent.RED] = 10
        assert AgentMoveAction(((Agent.RED, 2),)).moves_agent_into_ruins(board)
        assert not AgentMoveAction(((Agent.RED, 1),)).moves_agent_into_ruins(board)


# ============================================================================
# Test Game
# ============================================================================


class TestGameSetup:
    """Test game initialization."""

    def test_identities_are_distinct(self):
        game = HeimlichGame(num_players=5, seed=3)
        identities = list(game.get_players_to_agents().values())
        assert len(identities) == 5
        assert len(set(identities)) == 5

    def test_initial_hands(self):
        game = HeimlichGame(num_players=4, seed=3)
        for player in range(4):
            assert len(game.get_hand(player)) == INITIAL_HAND
        assert len(game.deck) == DECK_SIZE - 4 * INITIAL_HAND

    def test_without_cards(self):
        game = HeimlichGame(num_players=4, with_cards=False, seed=3)
        assert all(len(game.get_hand(p)) == 0 for p in range(4))

    @pytest.mark.parametrize("num_players", [1, 8])
    def test_invalid_player_count(self, num_players):
        with pytest.raises(ValueError):
            HeimlichGame(num_players=num_players)

    def test_same_seed_same_setup(self):
        game1 = HeimlichGame(num_players=4, seed=11)
        game2 = HeimlichGame(num_players=4, seed=11)
        assert game1.get_players_to_agents() == game2.get_players_to_agents()
        assert game1.deck == game2.deck


class TestTurnFlow:
    """Test the phase machine of one turn."""

    def test_die_roll_phase_actions(self):
        game = HeimlichGame(num_players=3, seed=0)
        assert game.get_legal_actions() == [RANDOM_ROLL]
        assert game.is_chance_phase()

        game.set_allow_custom_die_rolls(True)
        actions = game.get_legal_actions()
        assert len(actions) == 7
        assert DieRollAction(6) in actions

    def test_custom_roll_rejected_when_disabled(self):
        game = HeimlichGame(num_players=3, seed=0)
        with pytest.raises(IllegalActionException):
            game.apply_action(DieRollAction(4))

    def test_random_roll_is_logged_with_value(self):
        game = HeimlichGame(num_players=3, seed=0)
        game.apply_action(RANDOM_ROLL)
        records = game.get_action_records()
        assert len(records) == 1
        assert records[0].player == 0
        assert records[0].action.value in range(1, 7)
        assert game.last_roll == records[0].action.value

    def test_card_phase_follows_roll_with_cards(self):
        game = HeimlichGame(num_players=3, seed=0)
        roll(game, 2)
        assert game.get_current_phase() == Phase.CARD
        # skip + every (card, figurine) pair
        assert len(game.get_legal_actions()) == 1 + INITIAL_HAND * len(Agent)

    def test_card_phase_skipped_without_cards(self):
        game = HeimlichGame(num_players=3, with_cards=False, seed=0)
        roll(game, 2)
        assert game.get_current_phase() == Phase.AGENT_MOVE

    def test_play_card(self):
        game = HeimlichGame(num_players=3, seed=0)
        roll(game, 1)
        card = game.get_hand(0)[0]
        game.apply_action(CardAction(card, Agent.BLUE))

        assert card not in game.get_hand(0)
        assert game.graveyard == [card]
        assert game.board.positions[Agent.BLUE] == card.steps
        assert game.get_current_phase() == Phase.AGENT_MOVE

    def test_play_foreign_card_rejected(self):
        game = HeimlichGame(num_players=3, seed=0)
        roll(game, 1)
        foreign = game.get_hand(1)[0]
        with pytest.raises(IllegalActionException):
            game.apply_action(CardAction(foreign, Agent.RED))

    def test_no_move_draws_card_and_ends_turn(self):
        game = HeimlichGame(num_players=3, seed=0)
        roll(game, 2)
        game.apply_action(SKIP_CARD)
        game.apply_action(NO_MOVE)

        assert len(game.get_hand(0)) == INITIAL_HAND + 1
        assert game.get_current_player() == 1
        assert game.get_current_phase() == Phase.DIE_ROLL

    def test_entering_ruins_draws_card(self):
        game = HeimlichGame(num_players=3, seed=0)
        game.board.positions[Agent.RED] = 10
        roll(game, 2)
        game.apply_action(SKIP_CARD)
        game.apply_action(AgentMoveAction(((Agent.RED, 2),)))

        assert game.board.positions[Agent.RED] == RUINS_FIELD
        assert len(game.get_hand(0)) == INITIAL_HAND + 1

    def test_hand_limit(self):
        game = HeimlichGame(num_players=3, seed=0)
        for _ in range(MAX_HAND + 1):
            game._draw_card(0)
        assert len(game.get_hand(0)) == MAX_HAND

    def test_cracking_the_safe(self):
        game = HeimlichGame(num_players=3, with_cards=False, seed=0)
        game.board.positions[Agent.RED] = 5
        roll(game, 2)
        game.apply_action(AgentMoveAction(((Agent.RED, 2),)))

        assert game.board.scores[Agent.RED] == FIELD_VALUES[7]
        assert game.get_current_phase() == Phase.SAFE_MOVE
        assert game.get_current_player() == 0
        assert len(game.get_legal_actions()) == len(FIELD_VALUES) - 2

        game.apply_action(SafeMoveAction(3))
        assert game.board.safe_position == 3
        assert game.get_current_player() == 1
        assert game.get_current_phase() == Phase.DIE_ROLL

    def test_game_over_at_winning_score(self):
        game = HeimlichGame(num_players=3, with_cards=False, seed=0)
        game.board.positions[Agent.RED] = 5
        game.board.scores[Agent.RED] = 40
        roll(game, 2)
        game.apply_action(AgentMoveAction(((Agent.RED, 2),)))

        assert game.is_game_over()
        assert game.get_legal_actions() == []
        assert game.get_scores()[Agent.RED] == 45


class TestHiddenInformation:
    """Test copies, observations and hidden state injection."""

    def test_copy_is_independent(self):
        game = HeimlichGame(num_players=3, seed=1)
        clone = game.copy()
        clone.apply_action(RANDOM_ROLL)
        assert game.get_action_records() == []
        assert game.last_roll is None

    def test_observation_hides_opponents(self):
        game = HeimlichGame(num_players=4, seed=1)
        observation = game.get_observation(2)

        assert observation.get_players_to_agents() == {2: game.players_to_agents[2]}
        assert observation.get_hand(2) == game.get_hand(2)
        for other in (0, 1, 3):
            assert observation.get_hand(other) == []
        assert len(observation.deck) == DECK_SIZE - INITIAL_HAND
        # The real game is untouched
        assert len(game.get_players_to_agents()) == 4

    def test_set_hand_conserves_cards(self):
        game = HeimlichGame(num_players=4, seed=1)
        observation = game.get_observation(0)
        new_hand = observation.deck[:3]
        observation.set_hand(1, new_hand)

        assert observation.get_hand(1) == new_hand
        cards = all_cards(observation)
        assert len(cards) == DECK_SIZE
        assert len(set(cards)) == DECK_SIZE

    def test_set_identity_assignment(self):
        game = HeimlichGame(num_players=3, seed=1)
        observation = game.get_observation(0)
        observation.set_identity_assignment({1: Agent.GREY, 2: Agent.ORANGE})
        assert observation.get_players_to_agents()[1] == Agent.GREY

    def test_unknown_player_rejected(self):
        game = HeimlichGame(num_players=3, seed=1)
        with pytest.raises(GameStateException):
            game.get_hand(5)

"""
Game constants for Heimlich & Co.

This module defines the board layout, figurine roster, card deck composition,
and scoring rules shared by the reference game engine and the agent's
history trackers.
"""

from enum import Enum


class Agent(Enum):
    """The seven figurines (secret agents) on the board."""

    RED = 0
    BLUE = 1
    GREEN = 2
    YELLOW = 3
    ORANGE = 4
    PURPLE = 5
    GREY = 6


NUM_AGENTS = len(Agent)

# Board layout
NUM_FIELDS = 12
RUINS_FIELD = 0
# Points awarded to a figurine standing on each field when the safe is cracked
FIELD_VALUES = [-3, 0, 0, 1, 2, 3, 4, 5, 6, 7, 8, 10]
INITIAL_SAFE_FIELD = 7

# Game constraints
MIN_PLAYERS = 2
MAX_PLAYERS = NUM_AGENTS
WINNING_SCORE = 42

# Die
DIE_FACES = [1, 2, 3, 4, 5, 6]
NO_MOVE_MAX_ROLL = 3  # rolls up to this value may be declined for a card

# Cards
INITIAL_HAND = 2
MAX_HAND = 4


class CardKind(Enum):
    """Card effects available in the deck."""

    ADVANCE_ONE = 1
    ADVANCE_TWO = 2


CARD_COUNTS = {
    CardKind.ADVANCE_ONE: 15,
    CardKind.ADVANCE_TWO: 10,
}
DECK_SIZE = sum(CARD_COUNTS.values())

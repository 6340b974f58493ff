"""
Heimlich & Co. Game Engine Package.

This package contains the GameModel capability interface the agent searches
over, plus a reference implementation of the Heimlich & Co. rules.
"""

from detective.game.constants import (
    Agent,
    CardKind,
    DIE_FACES,
    FIELD_VALUES,
    MIN_PLAYERS,
    MAX_PLAYERS,
    NUM_FIELDS,
    WINNING_SCORE,
)
from detective.game.model import ActionKind, ActionRecord, GameModel, Phase
from detective.game.heimlich import (
    Card,
    HeimlichBoard,
    HeimlichGame,
    HeimlichGameException,
    IllegalActionException,
    GameStateException,
)

__all__ = [
    "Agent",
    "CardKind",
    "DIE_FACES",
    "FIELD_VALUES",
    "MIN_PLAYERS",
    "MAX_PLAYERS",
    "NUM_FIELDS",
    "WINNING_SCORE",
    "ActionKind",
    "ActionRecord",
    "GameModel",
    "Phase",
    "Card",
    "HeimlichBoard",
    "HeimlichGame",
    "HeimlichGameException",
    "IllegalActionException",
    "GameStateException",
]

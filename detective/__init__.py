"""
Detective: determinized Monte Carlo Tree Search agent for Heimlich & Co.

Subpackages:
    - detective.game: GameModel interface and the reference rules engine
    - detective.mcts: History tracking, suspicion, determinization and search
    - detective.evaluation: Arena matches against baseline agents
"""

__version__ = "0.1.0"

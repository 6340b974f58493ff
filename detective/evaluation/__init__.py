"""Arena matches for the detective agent."""

from detective.evaluation.arena import Arena, RandomAgent

__all__ = ['Arena', 'RandomAgent']

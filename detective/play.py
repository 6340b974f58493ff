"""
Arena Match Script

Entry point for playing the detective agent against random opponents.

Usage:
    # Default match
    python -m detective.play --games 10 --players 4

    # Use custom agent config
    python -m detective.play --config configs/agent.json --games 20

    # Fast test run
    python -m detective.play --fast --games 2 --log-level DEBUG
"""

import argparse
import logging
import sys
from typing import List, Optional

from detective.config import AgentConfig, ArenaConfig, get_default_config, get_fast_config
from detective.evaluation.arena import Arena


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Play the detective MCTS agent against random opponents",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # Match parameters
    parser.add_argument(
        '--games',
        type=int,
        default=10,
        help='Number of games to play',
    )
    parser.add_argument(
        '--players',
        type=int,
        default=4,
        help='Players per game (2-7)',
    )
    parser.add_argument(
        '--no-cards',
        action='store_true',
        help='Play without the card variant',
    )
    parser.add_argument(
        '--time-budget',
        type=float,
        default=None,
        help='Seconds per search decision (overrides config)',
    )
    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Seed for games and agents',
    )

    # Configuration
    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to JSON agent config file (overrides defaults)',
    )
    parser.add_argument(
        '--fast',
        action='store_true',
        help='Use fast agent config for testing/debugging',
    )

    # Logging
    parser.add_argument(
        '--log-level',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level',
    )

    return parser.parse_args(argv)


def setup_logging(log_level: str = 'INFO'):
    """
    Setup console logging.

    Args:
        log_level: Logging level
    """
    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    date_format = '%Y-%m-%d %H:%M:%S'

    logging.basicConfig(
        level=getattr(logging, log_level),
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def load_agent_config(args: argparse.Namespace) -> AgentConfig:
    if args.config:
        config = AgentConfig.from_file(args.config)
    elif args.fast:
        config = get_fast_config()
    else:
        config = get_default_config()

    if args.time_budget is not None:
        config.time_budget = args.time_budget
    if args.seed is not None:
        config.seed = args.seed
    return config


def main(argv: Optional[List[str]] = None):
    """Main match entry point."""
    args = parse_args(argv)
    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    agent_config = load_agent_config(args)
    arena_config = ArenaConfig(
        num_games=args.games,
        num_players=args.players,
        with_cards=not args.no_cards,
        seed=args.seed,
    )

    logger.info("=" * 80)
    logger.info("Detective MCTS - Arena Match")
    logger.info("=" * 80)
    logger.info(f"\n{agent_config}")
    logger.info(f"\n{arena_config}")

    arena = Arena(agent_config, arena_config)
    results = arena.play_match()

    logger.info(
        f"Results: {results['wins']} wins, {results['draws']} draws, "
        f"{results['losses']} losses over {results['games_played']} games "
        f"({results['elapsed']:.1f}s)"
    )
    return results


if __name__ == '__main__':
    main()

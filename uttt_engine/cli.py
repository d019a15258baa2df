"""Command line entry point running arena matches for the decision engine."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from .arena import Arena, ArenaConfig, MoveSelector, RandomPlayer
from .config import load_config, section
from .engine import DecisionEngine
from .utils import make_rng

__all__ = ["main", "parse_args"]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Play the Ultimate Tic-Tac-Toe decision engine against a baseline"
    )
    parser.add_argument("--config", type=Path, default=None, help="YAML config overriding the defaults")
    parser.add_argument("--games", type=int, default=None, help="Number of games to play")
    parser.add_argument(
        "--time-per-move",
        type=int,
        default=None,
        help="Time budget handed to each player per move",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducibility")
    parser.add_argument(
        "--opponent",
        choices=("random", "engine"),
        default=None,
        help="Baseline the engine plays against",
    )
    parser.add_argument("--verbose", action="store_true", help="Log every decision")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    engine_cfg = section(config, "engine")
    arena_cfg = ArenaConfig.from_mapping(section(config, "arena"))
    if args.games is not None:
        arena_cfg.games = args.games
    if args.time_per_move is not None:
        arena_cfg.time_per_move = args.time_per_move
    if args.opponent is not None:
        arena_cfg.opponent = args.opponent
    if args.seed is not None:
        arena_cfg.seed = args.seed
        engine_cfg["seed"] = args.seed

    rng = make_rng(arena_cfg.seed)

    def challenger(player: str) -> DecisionEngine:
        return DecisionEngine.from_config(player, engine_cfg)

    def baseline(player: str) -> MoveSelector:
        if arena_cfg.opponent == "engine":
            return DecisionEngine.from_config(player, engine_cfg)
        return RandomPlayer(rng)

    arena = Arena(challenger=challenger, baseline=baseline, time_per_move=arena_cfg.time_per_move)
    result = arena.play_matches(arena_cfg.games)
    print(
        f"Played {result.total} games against {arena_cfg.opponent}: "
        f"wins={result.wins} losses={result.losses} draws={result.draws} "
        f"win_rate={result.win_rate:.2f}"
    )


if __name__ == "__main__":
    main()

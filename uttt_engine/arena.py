"""Evaluation arena pitting two move selectors against each other."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Protocol

import numpy as np

from .game import GameState, Move, Player
from .utils import random_element

logger = logging.getLogger(__name__)

__all__ = ["Arena", "ArenaConfig", "ArenaResult", "MoveSelector", "RandomPlayer"]


class MoveSelector(Protocol):
    def select_move(self, state: GameState) -> Optional[Move]:
        ...


PlayerFactory = Callable[[Player], MoveSelector]


class RandomPlayer:
    """Baseline that plays uniformly random legal moves."""

    def __init__(self, rng: Optional[np.random.Generator] = None) -> None:
        self.rng = rng or np.random.default_rng()

    def select_move(self, state: GameState) -> Optional[Move]:
        moves = state.legal_moves()
        if not moves:
            return None
        return random_element(self.rng, moves)


@dataclass
class ArenaConfig:
    games: int = 10
    time_per_move: int = 1000
    opponent: str = "random"
    seed: Optional[int] = 0

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Any]]) -> "ArenaConfig":
        mapping = mapping or {}
        defaults = cls()
        seed = mapping.get("seed", defaults.seed)
        return cls(
            games=int(mapping.get("games", defaults.games)),
            time_per_move=int(mapping.get("time_per_move", defaults.time_per_move)),
            opponent=str(mapping.get("opponent", defaults.opponent)),
            seed=None if seed is None else int(seed),
        )


@dataclass
class ArenaResult:
    wins: int
    losses: int
    draws: int

    @property
    def total(self) -> int:
        return self.wins + self.losses + self.draws

    @property
    def win_rate(self) -> float:
        return self.wins / self.total if self.total else 0.0


@dataclass
class Arena:
    """Plays matches between a challenger and a baseline.

    The factories are called once per game with the identity the new player
    will have, so engines that keep per-match state start fresh every game.
    """

    challenger: PlayerFactory
    baseline: PlayerFactory
    time_per_move: int = 1000

    def play_game(self, challenger_first: bool) -> Optional[Player]:
        """Play one game and return the winning identity, ``None`` for a draw."""

        challenger_side: Player = "X" if challenger_first else "O"
        baseline_side: Player = "O" if challenger_first else "X"
        players = {
            challenger_side: self.challenger(challenger_side),
            baseline_side: self.baseline(baseline_side),
        }

        state = GameState.new(time_per_move=self.time_per_move)
        while not state.is_terminal():
            to_move = state.current_player
            move = players[to_move].select_move(state.clone())
            if move is None:
                break
            state.apply_move(move)
            if state.move_number % 2 == 0:
                state.round_number += 1

        winner = state.winner()
        logger.debug(
            "Game finished after %d moves; winner: %s\n%s",
            state.move_number,
            winner or "draw",
            state.render_ascii(),
        )
        return winner

    def play_matches(self, num_games: int = 10) -> ArenaResult:
        results = ArenaResult(wins=0, losses=0, draws=0)

        for game_index in range(num_games):
            challenger_first = game_index % 2 == 0
            winner = self.play_game(challenger_first)
            challenger_side = "X" if challenger_first else "O"
            if winner is None:
                results.draws += 1
            elif winner == challenger_side:
                results.wins += 1
            else:
                results.losses += 1

        return results

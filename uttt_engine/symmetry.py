"""Symmetry utilities for Ultimate Tic-Tac-Toe positions.

The eight rotations and reflections of the 9x9 board map sub-boards onto
sub-boards and local cells onto the matching local cells, so they carry whole
positions (cells and the sub-board status grid) onto equivalent positions.
They are used to check that the rules do not depend on orientation.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Tuple

from .game import BOARD_SIZE, MACRO_SIZE, GameState, Move, PLAYERS
from .utils import opponent

Transform = Callable[[int, int, int], Tuple[int, int]]


@dataclass(frozen=True)
class Symmetry:
    """A board symmetry acting on coordinates of any square grid."""

    name: str
    transform: Transform

    def apply_move(self, move: Move) -> Move:
        return self.transform(move[0], move[1], BOARD_SIZE - 1)

    def apply_sub_board(self, sub_board: Tuple[int, int]) -> Tuple[int, int]:
        return self.transform(sub_board[0], sub_board[1], MACRO_SIZE - 1)

    def apply_state(self, state: GameState) -> GameState:
        cells = _map_grid(state.cells, lambda x, y: self.apply_move((x, y)))
        macro = _map_grid(state.macro, lambda x, y: self.apply_sub_board((x, y)))
        return GameState(
            cells=cells,
            macro=macro,
            move_number=state.move_number,
            round_number=state.round_number,
            time_per_move=state.time_per_move,
            degraded=state.degraded,
        )


def _map_grid(grid: List[List[str]], mapping: Callable[[int, int], Tuple[int, int]]) -> List[List[str]]:
    size = len(grid)
    result = [[""] * size for _ in range(size)]
    for x in range(size):
        for y in range(size):
            nx, ny = mapping(x, y)
            result[nx][ny] = grid[x][y]
    return result


SYMMETRIES: Tuple[Symmetry, ...] = (
    Symmetry("identity", lambda x, y, n: (x, y)),
    Symmetry("rot90", lambda x, y, n: (n - y, x)),
    Symmetry("rot180", lambda x, y, n: (n - x, n - y)),
    Symmetry("rot270", lambda x, y, n: (y, n - x)),
    Symmetry("mirror_v", lambda x, y, n: (n - x, y)),
    Symmetry("mirror_h", lambda x, y, n: (x, n - y)),
    Symmetry("diag_main", lambda x, y, n: (y, x)),
    Symmetry("diag_anti", lambda x, y, n: (n - y, n - x)),
)

DIAGONAL_MIRRORS: Tuple[Symmetry, ...] = tuple(
    sym for sym in SYMMETRIES if sym.name.startswith("diag_")
)


def swap_players(state: GameState) -> GameState:
    """Return ``state`` with the marks and sub-board owners of X and O exchanged."""

    def relabel(value: str) -> str:
        return opponent(value) if value in PLAYERS else value

    return GameState(
        cells=[[relabel(value) for value in column] for column in state.cells],
        macro=[[relabel(value) for value in column] for column in state.macro],
        move_number=state.move_number,
        round_number=state.round_number,
        time_per_move=state.time_per_move,
        degraded=state.degraded,
    )


__all__ = ["DIAGONAL_MIRRORS", "SYMMETRIES", "Symmetry", "swap_players"]

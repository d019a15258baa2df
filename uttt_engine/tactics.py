"""Heuristic tactics layered in front of the tree search.

Two distinct win tests live here.  :func:`completes_line` is a static check of
the cells sharing a line with the move, while :func:`is_winning_move` plays the
move on a copy of the state and asks whether the sub-board is now owned.  They
agree on ordinary positions but are kept separate on purpose: the orchestrator
uses the static one first and the simulated one later in the pipeline.
"""
from __future__ import annotations

from typing import AbstractSet, List, Optional, Sequence, Tuple

import numpy as np

from .game import EMPTY, MACRO_SIZE, GameState, Move, Player, local_of, sub_board_of
from .utils import opponent, random_element

WIN_SCORE = 100000
DEFENSIVE_PRIORITY = 2000
CENTER_BOARD_BONUS = 500
CORNER_BOARD_BONUS = 300

# Indexed POSITION_WEIGHTS[x][y]; symmetric, so the orientation does not matter.
POSITION_WEIGHTS: Tuple[Tuple[int, ...], ...] = (
    (5, 1, 5, 1, 8, 1, 5, 1, 5),
    (1, 3, 1, 3, 8, 3, 1, 3, 1),
    (5, 1, 5, 1, 8, 1, 5, 1, 5),
    (1, 3, 1, 3, 8, 3, 1, 3, 1),
    (8, 8, 8, 8, 10, 8, 8, 8, 8),
    (1, 3, 1, 3, 8, 3, 1, 3, 1),
    (5, 1, 5, 1, 8, 1, 5, 1, 5),
    (1, 3, 1, 3, 8, 3, 1, 3, 1),
    (5, 1, 5, 1, 8, 1, 5, 1, 5),
)

CENTER_CELL: Move = (4, 4)
SUB_BOARD_CENTERS: Tuple[Move, ...] = (
    (1, 1), (4, 1), (7, 1), (1, 4), (7, 4), (1, 7), (4, 7), (7, 7),
)
CORNER_CELLS: Tuple[Move, ...] = tuple(
    (mx * 3 + dx, my * 3 + dy)
    for my in range(MACRO_SIZE)
    for mx in range(MACRO_SIZE)
    for dx, dy in ((0, 0), (2, 0), (0, 2), (2, 2))
)
MIDDLE_EDGES: Tuple[Tuple[int, int], ...] = ((1, 0), (0, 1), (2, 1), (1, 2))

# (start dx, start dy, step dx, step dy) in scan order: rows, columns, diagonals.
_SCAN_LINES: Tuple[Tuple[int, int, int, int], ...] = (
    (0, 0, 1, 0),
    (0, 1, 1, 0),
    (0, 2, 1, 0),
    (0, 0, 0, 1),
    (1, 0, 0, 1),
    (2, 0, 0, 1),
    (0, 0, 1, 1),
    (2, 0, -1, 1),
)


def position_weight(move: Move) -> int:
    return POSITION_WEIGHTS[move[0]][move[1]]


def _first_listed(moves: Sequence[Move], preferred: Sequence[Move]) -> Optional[Move]:
    legal = set(moves)
    for move in preferred:
        if move in legal:
            return move
    return None


# ----------------------------------------------------------------------
# Opening and early game


def opening_move(state: GameState, rng: np.random.Generator) -> Optional[Move]:
    """Centre of the board, else the centre of another sub-board, else random."""

    moves = state.legal_moves()
    if not moves:
        return None
    if CENTER_CELL in moves:
        return CENTER_CELL
    return _first_listed(moves, SUB_BOARD_CENTERS) or random_element(rng, moves)


def corner_move(state: GameState, rng: np.random.Generator) -> Optional[Move]:
    moves = state.legal_moves()
    if not moves:
        return None
    return _first_listed(moves, CORNER_CELLS) or random_element(rng, moves)


def avoid_middle_edges(state: GameState) -> Optional[Move]:
    moves = state.legal_moves()
    for move in moves:
        if local_of(move) not in MIDDLE_EDGES:
            return move
    return moves[0] if moves else None


def early_game_move(
    state: GameState, opponent_player: Player, rng: np.random.Generator
) -> Optional[Move]:
    if state.cell(*CENTER_CELL) == opponent_player:
        move = corner_move(state, rng)
        if move is not None:
            return move
    return avoid_middle_edges(state)


# ----------------------------------------------------------------------
# Static line checks


def completes_line(state: GameState, move: Move, player: Player) -> bool:
    """Whether the two other cells of some line through ``move`` belong to ``player``.

    Only lines inside the move's own sub-board are considered; diagonals are
    checked only when the move lies on them.
    """

    x, y = move
    ox, oy = x - x % 3, y - y % 3
    lx, ly = local_of(move)

    row = sum(1 for i in range(3) if i != lx and state.cell(ox + i, y) == player)
    if row == 2:
        return True
    column = sum(1 for i in range(3) if i != ly and state.cell(x, oy + i) == player)
    if column == 2:
        return True
    if lx == ly:
        diagonal = sum(1 for i in range(3) if i != lx and state.cell(ox + i, oy + i) == player)
        if diagonal == 2:
            return True
    if lx + ly == 2:
        anti = sum(1 for i in range(3) if i != lx and state.cell(ox + i, oy + 2 - i) == player)
        if anti == 2:
            return True
    return False


def find_immediate_win_or_block(state: GameState, player: Player) -> Optional[Move]:
    """First legal move in an active sub-board completing a line for ``player``."""

    for move in state.legal_moves():
        if state.is_active(*sub_board_of(move)) and completes_line(state, move, player):
            return move
    return None


def _check_line(
    state: GameState,
    start: Tuple[int, int],
    step: Tuple[int, int],
    player: Player,
    legal: AbstractSet[Move],
) -> Optional[Move]:
    cells = [(start[0] + step[0] * i, start[1] + step[1] * i) for i in range(3)]
    owned = sum(1 for cell in cells if state.cell(*cell) == player)
    empty = [cell for cell in cells if state.cell(*cell) == EMPTY]
    if owned == 2 and len(empty) == 1 and empty[0] in legal:
        return empty[0]
    return None


def find_two_in_line(state: GameState, player: Player, active_only: bool) -> Optional[Move]:
    """Scan sub-boards for a line holding two ``player`` cells and a legal gap."""

    legal = state.legal_moves()
    if not legal:
        return None
    legal_set = set(legal)
    for mx in range(MACRO_SIZE):
        for my in range(MACRO_SIZE):
            if active_only and not state.is_active(mx, my):
                continue
            for sx, sy, dx, dy in _SCAN_LINES:
                move = _check_line(
                    state, (mx * 3 + sx, my * 3 + sy), (dx, dy), player, legal_set
                )
                if move is not None:
                    return move
    return None


def find_pattern_move(state: GameState, player: Player, opponent_player: Player) -> Optional[Move]:
    return (
        find_two_in_line(state, player, active_only=True)
        or find_two_in_line(state, opponent_player, active_only=True)
        or find_two_in_line(state, player, active_only=False)
    )


# ----------------------------------------------------------------------
# Simulated checks


def is_winning_move(state: GameState, move: Move, player: Player) -> bool:
    """Play ``move`` for ``player`` on a copy and test the sub-board it landed in."""

    simulated = state.clone()
    simulated.apply_move(move, player)
    return simulated.sub_board_winner(*sub_board_of(move)) == player


def count_winning_threats(state: GameState, player: Player) -> int:
    return sum(1 for move in state.legal_moves() if is_winning_move(state, move, player))


def find_fork_move(state: GameState, player: Player) -> Optional[Move]:
    """First move leaving ``player`` at least two sub-board wins on the next turn."""

    for move in state.legal_moves():
        simulated = state.clone()
        simulated.apply_move(move, player)
        if count_winning_threats(simulated, player) >= 2:
            return move
    return None


def find_tactical_move(state: GameState, player: Player, opponent_player: Player) -> Optional[Move]:
    moves = state.legal_moves()
    for move in moves:
        if is_winning_move(state, move, player):
            return move
    for move in moves:
        if is_winning_move(state, move, opponent_player):
            return move
    return find_fork_move(state, player)


# ----------------------------------------------------------------------
# Static evaluation


def needs_blocking(state: GameState, mx: int, my: int, opponent_player: Player) -> bool:
    """Whether the opponent holds exactly two cells of some line in the sub-board."""

    ox, oy = mx * 3, my * 3
    for sx, sy, dx, dy in _SCAN_LINES:
        count = sum(
            1 for i in range(3) if state.cell(ox + sx + dx * i, oy + sy + dy * i) == opponent_player
        )
        if count == 2:
            return True
    return False


def evaluate_position(state: GameState, player: Player) -> int:
    other = opponent(player)
    score = 0
    if state.status(1, 1) == player:
        score += CENTER_BOARD_BONUS
    if any(state.status(mx, my) == player for mx, my in ((0, 0), (2, 0), (0, 2), (2, 2))):
        score += CORNER_BOARD_BONUS

    for mx in range(MACRO_SIZE):
        for my in range(MACRO_SIZE):
            if state.sub_board_winner(mx, my) == player:
                score += WIN_SCORE
            if needs_blocking(state, mx, my, other):
                score += DEFENSIVE_PRIORITY

    score += sum(position_weight(move) for move in owned_cells(state, player))
    return score


def owned_cells(state: GameState, player: Player) -> List[Move]:
    return [
        (x, y)
        for x, column in enumerate(state.cells)
        for y, value in enumerate(column)
        if value == player
    ]


__all__ = [
    "CORNER_CELLS",
    "POSITION_WEIGHTS",
    "SUB_BOARD_CENTERS",
    "avoid_middle_edges",
    "completes_line",
    "corner_move",
    "count_winning_threats",
    "early_game_move",
    "evaluate_position",
    "find_fork_move",
    "find_immediate_win_or_block",
    "find_pattern_move",
    "find_tactical_move",
    "find_two_in_line",
    "is_winning_move",
    "needs_blocking",
    "opening_move",
    "position_weight",
]

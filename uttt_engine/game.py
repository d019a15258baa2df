"""Core game state for the Ultimate Tic-Tac-Toe decision engine.

The board is a 9x9 grid addressed with ``(x, y)`` coordinates, ``cells[x][y]``.
It is partitioned into nine 3x3 sub-boards; the sub-board containing a cell is
``(x // 3, y // 3)`` and the cell's local coordinate inside it is
``(x % 3, y % 3)``.  The status of every sub-board is tracked separately in the
3x3 ``macro`` grid, which also records which sub-boards are currently open for
the next move.

The player to move is never stored: ``"X"`` moves when the move number is even
and ``"O"`` when it is odd.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

Player = str  # Either "X" or "O"
Move = Tuple[int, int]
SubBoard = Tuple[int, int]

EMPTY = " "
ACTIVE = "-"
DRAW = "T"
PLAYERS: Tuple[Player, Player] = ("X", "O")

BOARD_SIZE = 9
MACRO_SIZE = 3

# Local (dx, dy) triples of the eight winning lines of a 3x3 grid.
WIN_LINES: Tuple[Tuple[Tuple[int, int], ...], ...] = (
    ((0, 0), (1, 0), (2, 0)),
    ((0, 1), (1, 1), (2, 1)),
    ((0, 2), (1, 2), (2, 2)),
    ((0, 0), (0, 1), (0, 2)),
    ((1, 0), (1, 1), (1, 2)),
    ((2, 0), (2, 1), (2, 2)),
    ((0, 0), (1, 1), (2, 2)),
    ((2, 0), (1, 1), (0, 2)),
)


class InvalidMoveError(RuntimeError):
    """Raised when a move is attempted that is not legal in the current state."""


def _empty_cells() -> List[List[str]]:
    return [[EMPTY] * BOARD_SIZE for _ in range(BOARD_SIZE)]


def _open_macro() -> List[List[str]]:
    return [[ACTIVE] * MACRO_SIZE for _ in range(MACRO_SIZE)]


def _copy_grid(grid: Sequence[Sequence[str]], size: int) -> List[List[str]]:
    copy = [list(column) for column in grid]
    if len(copy) != size or any(len(column) != size for column in copy):
        raise ValueError(f"expected a {size}x{size} grid")
    return copy


def check_move_range(move: Move) -> None:
    x, y = move
    if not 0 <= x < BOARD_SIZE or not 0 <= y < BOARD_SIZE:
        raise ValueError("move components must be in range 0..8")


def sub_board_of(move: Move) -> SubBoard:
    return move[0] // 3, move[1] // 3


def local_of(move: Move) -> Tuple[int, int]:
    return move[0] % 3, move[1] % 3


def line_winner(grid: Sequence[Sequence[str]], origin: Tuple[int, int] = (0, 0)) -> Optional[Player]:
    """Return the player owning a full line of the 3x3 block at ``origin``."""

    ox, oy = origin
    for line in WIN_LINES:
        (ax, ay), (bx, by), (cx, cy) = line
        first = grid[ox + ax][oy + ay]
        if first in PLAYERS and first == grid[ox + bx][oy + by] == grid[ox + cx][oy + cy]:
            return first
    return None


@dataclass
class GameState:
    """A position as handed over by the game runner.

    ``macro`` holds one of ``EMPTY`` (unresolved, closed), ``ACTIVE`` (open for
    the next move), ``"X"``/``"O"`` (won) or ``DRAW`` per sub-board.
    """

    cells: List[List[str]] = field(default_factory=_empty_cells)
    macro: List[List[str]] = field(default_factory=_open_macro)
    move_number: int = 0
    round_number: int = 0
    time_per_move: int = 1000
    degraded: bool = False

    @classmethod
    def new(cls, time_per_move: int = 1000, round_number: int = 0) -> "GameState":
        return cls(time_per_move=time_per_move, round_number=round_number)

    @classmethod
    def from_position(
        cls,
        marks: Mapping[Move, Player],
        active: Optional[Iterable[SubBoard]] = None,
        move_number: int = 0,
        round_number: int = 0,
        time_per_move: int = 1000,
    ) -> "GameState":
        """Build a position from placed marks.

        Every sub-board status is derived from the cells.  ``active`` lists the
        sub-boards open for the next move; ``None`` opens every unresolved one.
        Active entries naming a resolved sub-board are ignored.  Opening more
        than one sub-board while leaving another unresolved one closed is
        rejected with ``ValueError``; an empty list closes the whole board.
        """

        cells = _empty_cells()
        for move, player in marks.items():
            check_move_range(move)
            if player not in PLAYERS:
                raise ValueError("player must be 'X' or 'O'")
            cells[move[0]][move[1]] = player

        state = cls(
            cells=cells,
            macro=[[EMPTY] * MACRO_SIZE for _ in range(MACRO_SIZE)],
            move_number=move_number,
            round_number=round_number,
            time_per_move=time_per_move,
        )
        for mx in range(MACRO_SIZE):
            for my in range(MACRO_SIZE):
                state.macro[mx][my] = state._resolve_sub_board(mx, my)

        targets = (
            [(mx, my) for mx in range(MACRO_SIZE) for my in range(MACRO_SIZE)]
            if active is None
            else list(active)
        )
        for mx, my in targets:
            if state.macro[mx][my] == EMPTY:
                state.macro[mx][my] = ACTIVE
        opened = len(state.active_sub_boards())
        if opened > 1 and any(EMPTY in column for column in state.macro):
            raise ValueError("active sub-boards must be a single target or every unresolved one")
        return state

    # ------------------------------------------------------------------
    @property
    def current_player(self) -> Player:
        return PLAYERS[self.move_number % 2]

    def cell(self, x: int, y: int) -> str:
        return self.cells[x][y]

    def status(self, mx: int, my: int) -> str:
        return self.macro[mx][my]

    def is_active(self, mx: int, my: int) -> bool:
        return self.macro[mx][my] == ACTIVE

    def is_resolved(self, mx: int, my: int) -> bool:
        return self.macro[mx][my] not in (EMPTY, ACTIVE)

    def active_sub_boards(self) -> List[SubBoard]:
        return [
            (mx, my)
            for mx in range(MACRO_SIZE)
            for my in range(MACRO_SIZE)
            if self.macro[mx][my] == ACTIVE
        ]

    def is_legal(self, move: Move) -> bool:
        x, y = move
        if not 0 <= x < BOARD_SIZE or not 0 <= y < BOARD_SIZE:
            return False
        return self.cells[x][y] == EMPTY and self.macro[x // 3][y // 3] == ACTIVE

    def legal_moves(self) -> List[Move]:
        moves: List[Move] = []
        for x in range(BOARD_SIZE):
            for y in range(BOARD_SIZE):
                if self.cells[x][y] == EMPTY and self.macro[x // 3][y // 3] == ACTIVE:
                    moves.append((x, y))
        return moves

    # ------------------------------------------------------------------
    def apply_move(self, move: Move, player: Optional[Player] = None) -> None:
        """Claim ``move`` for ``player`` (the player to move by default)."""

        check_move_range(move)
        if player is None:
            player = self.current_player
        elif player not in PLAYERS:
            raise ValueError("player must be 'X' or 'O'")
        if not self.is_legal(move):
            raise InvalidMoveError(f"Move {move} is not legal in the current state")

        x, y = move
        self.cells[x][y] = player

        mx, my = sub_board_of(move)
        resolved = self._resolve_sub_board(mx, my)
        if resolved != EMPTY:
            self.macro[mx][my] = resolved

        self._update_active(local_of(move))
        self.move_number += 1

    def _resolve_sub_board(self, mx: int, my: int) -> str:
        winner = self.sub_board_winner(mx, my)
        if winner is not None:
            return winner
        ox, oy = mx * 3, my * 3
        if all(self.cells[ox + dx][oy + dy] != EMPTY for dx in range(3) for dy in range(3)):
            return DRAW
        return EMPTY

    def _update_active(self, target: SubBoard) -> None:
        for mx in range(MACRO_SIZE):
            for my in range(MACRO_SIZE):
                if self.macro[mx][my] == ACTIVE:
                    self.macro[mx][my] = EMPTY

        tx, ty = target
        if self.macro[tx][ty] == EMPTY:
            self.macro[tx][ty] = ACTIVE
            return

        for mx in range(MACRO_SIZE):
            for my in range(MACRO_SIZE):
                if self.macro[mx][my] == EMPTY:
                    self.macro[mx][my] = ACTIVE

    # ------------------------------------------------------------------
    def sub_board_winner(self, mx: int, my: int) -> Optional[Player]:
        """Winner of a sub-board read directly from its cells."""

        return line_winner(self.cells, (mx * 3, my * 3))

    def has_won(self, player: Player) -> bool:
        """Whether ``player`` owns a full line of sub-boards."""

        return any(
            all(self.macro[mx][my] == player for mx, my in line) for line in WIN_LINES
        )

    def winner(self) -> Optional[Player]:
        for player in PLAYERS:
            if self.has_won(player):
                return player
        return None

    def all_resolved(self) -> bool:
        return all(
            self.is_resolved(mx, my) for mx in range(MACRO_SIZE) for my in range(MACRO_SIZE)
        )

    def is_terminal(self) -> bool:
        return self.winner() is not None or not self.legal_moves()

    # ------------------------------------------------------------------
    def clone(self) -> "GameState":
        """Return an independent copy of this state.

        A board or status grid that cannot be copied yields a fresh, open board
        carrying the original counters, flagged as ``degraded``.
        """

        try:
            cells = _copy_grid(self.cells, BOARD_SIZE)
            macro = _copy_grid(self.macro, MACRO_SIZE)
        except (TypeError, ValueError, IndexError) as exc:
            logger.warning("Could not copy game state (%s); continuing on an empty board", exc)
            return GameState(
                move_number=self.move_number,
                round_number=self.round_number,
                time_per_move=self.time_per_move,
                degraded=True,
            )
        return GameState(
            cells=cells,
            macro=macro,
            move_number=self.move_number,
            round_number=self.round_number,
            time_per_move=self.time_per_move,
            degraded=self.degraded,
        )

    def render_ascii(self) -> str:
        rows: List[str] = []
        for y in range(BOARD_SIZE):
            groups: List[str] = []
            for mx in range(MACRO_SIZE):
                groups.append(
                    " ".join(
                        self.cells[x][y] if self.cells[x][y] != EMPTY else "."
                        for x in range(mx * 3, mx * 3 + 3)
                    )
                )
            rows.append(" || ".join(groups))
            if y in (2, 5):
                rows.append("======++=======++======")
        return "\n".join(rows)


__all__ = [
    "ACTIVE",
    "DRAW",
    "EMPTY",
    "GameState",
    "InvalidMoveError",
    "Move",
    "PLAYERS",
    "Player",
    "SubBoard",
    "WIN_LINES",
    "check_move_range",
    "line_winner",
    "local_of",
    "sub_board_of",
]

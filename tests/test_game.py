from __future__ import annotations

import numpy as np
import pytest

from uttt_engine.game import ACTIVE, DRAW, EMPTY, GameState, InvalidMoveError


def play_random_game(seed: int, max_moves: int = 81):
    rng = np.random.default_rng(seed)
    state = GameState.new()
    history = []
    while not state.is_terminal() and len(history) < max_moves:
        moves = state.legal_moves()
        move = moves[int(rng.integers(len(moves)))]
        before = state.clone()
        state.apply_move(move)
        history.append((before, move, state.clone()))
    return state, history


def unresolved(state: GameState):
    return {
        (mx, my) for mx in range(3) for my in range(3) if not state.is_resolved(mx, my)
    }


def test_new_game_opens_every_sub_board() -> None:
    state = GameState.new()
    assert len(state.legal_moves()) == 81
    assert len(state.active_sub_boards()) == 9
    assert state.current_player == "X"


def test_move_sends_opponent_to_target_sub_board() -> None:
    state = GameState.new()
    state.apply_move((4, 4))
    assert state.cell(4, 4) == "X"
    assert state.active_sub_boards() == [(1, 1)]
    assert state.move_number == 1
    assert state.current_player == "O"

    state.apply_move((3, 5))
    assert state.cell(3, 5) == "O"
    assert state.active_sub_boards() == [(0, 2)]
    assert state.legal_moves() == [(0, 6), (0, 7), (0, 8), (1, 6), (1, 7), (1, 8), (2, 6), (2, 7), (2, 8)]


def test_winning_a_sub_board_resolves_it() -> None:
    state = GameState.from_position(
        {(0, 0): "X", (1, 0): "X", (4, 4): "O", (8, 8): "O"},
        active=[(0, 0)],
        move_number=4,
    )
    state.apply_move((2, 0))
    assert state.status(0, 0) == "X"
    # Target (2, 0) is still open, so only it becomes active.
    assert state.active_sub_boards() == [(2, 0)]


def test_resolved_target_opens_every_unresolved_sub_board() -> None:
    state = GameState.from_position(
        {(0, 0): "X", (1, 0): "X", (2, 0): "X", (4, 4): "O", (5, 5): "O"},
        active=[(2, 2)],
        move_number=5,
    )
    assert state.status(0, 0) == "X"
    # O plays the top-left corner of the bottom-right sub-board, pointing at (0, 0).
    state.apply_move((6, 6))
    active = set(state.active_sub_boards())
    assert active == unresolved(state)
    assert (0, 0) not in active
    assert len(active) == 8


def test_full_sub_board_without_line_is_drawn() -> None:
    marks = {
        (0, 0): "X", (1, 0): "O", (2, 0): "X",
        (0, 1): "X", (1, 1): "O", (2, 1): "O",
        (0, 2): "O", (1, 2): "X",
    }
    state = GameState.from_position(marks, active=[(0, 0)], move_number=8)
    state.apply_move((2, 2))
    assert state.status(0, 0) == DRAW
    assert state.sub_board_winner(0, 0) is None


def test_illegal_moves_are_rejected() -> None:
    state = GameState.new()
    state.apply_move((4, 4))
    with pytest.raises(InvalidMoveError):
        state.apply_move((4, 4))
    with pytest.raises(InvalidMoveError):
        state.apply_move((0, 0))
    with pytest.raises(ValueError):
        state.apply_move((9, 0))
    assert state.move_number == 1


@pytest.mark.parametrize("seed", [0, 1, 2, 3])
def test_status_changes_only_where_the_move_landed(seed: int) -> None:
    _, history = play_random_game(seed)
    assert history
    for before, move, after in history:
        sub_board = (move[0] // 3, move[1] // 3)
        for mx in range(3):
            for my in range(3):
                old, new = before.status(mx, my), after.status(mx, my)
                if before.is_resolved(mx, my):
                    assert new == old
                elif (mx, my) != sub_board:
                    assert new in (EMPTY, ACTIVE)
                else:
                    assert new in (EMPTY, ACTIVE, "X", "O", DRAW)


@pytest.mark.parametrize("seed", [4, 5, 6, 7])
def test_active_set_is_one_or_every_unresolved_sub_board(seed: int) -> None:
    _, history = play_random_game(seed)
    for _, _, after in history:
        active = set(after.active_sub_boards())
        if not unresolved(after):
            assert not active
        else:
            assert len(active) == 1 or active == unresolved(after)


def test_from_position_rejects_a_partial_active_set() -> None:
    with pytest.raises(ValueError):
        GameState.from_position({}, active=[(0, 0), (1, 1)], move_number=2)

    # Once (0, 0) is won, opening the remaining eight is the same as opening all.
    won = {(0, 0): "X", (1, 1): "X", (2, 2): "X"}
    rest = [(mx, my) for mx in range(3) for my in range(3) if (mx, my) != (0, 0)]
    state = GameState.from_position(won, active=rest, move_number=5)
    assert set(state.active_sub_boards()) == set(rest)


def test_match_win_on_status_grid() -> None:
    marks = {}
    for mx in range(3):
        for dx in range(3):
            marks[(mx * 3 + dx, 0)] = "X"
    state = GameState.from_position(marks, move_number=9)
    assert [state.status(mx, 0) for mx in range(3)] == ["X", "X", "X"]
    assert state.has_won("X")
    assert not state.has_won("O")
    assert state.winner() == "X"
    assert state.is_terminal()
    assert state.legal_moves()


def test_no_legal_moves_is_terminal() -> None:
    state = GameState.from_position({}, active=[], move_number=10)
    assert state.legal_moves() == []
    assert state.is_terminal()
    assert state.winner() is None


def test_clone_is_independent() -> None:
    state = GameState.new(time_per_move=300, round_number=2)
    copy = state.clone()
    copy.apply_move((4, 4))
    assert state.cell(4, 4) == EMPTY
    assert state.move_number == 0
    assert copy.time_per_move == 300
    assert copy.round_number == 2
    assert not copy.degraded


def test_clone_of_malformed_board_degrades_to_empty_board() -> None:
    state = GameState(
        cells=[[EMPTY] * 9 for _ in range(8)],
        move_number=7,
        round_number=3,
        time_per_move=40,
    )
    copy = state.clone()
    assert copy.degraded
    assert copy.move_number == 7
    assert copy.round_number == 3
    assert copy.time_per_move == 40
    assert len(copy.legal_moves()) == 81


def test_render_ascii_marks_claimed_cells() -> None:
    state = GameState.new()
    state.apply_move((4, 4))
    rendered = state.render_ascii().splitlines()
    assert len(rendered) == 11
    assert rendered[5].split(" || ")[1] == ". X ."

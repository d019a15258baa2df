from __future__ import annotations

import itertools
import math

import numpy as np
import pytest

from uttt_engine.game import GameState
from uttt_engine.tactics import position_weight
from uttt_engine.mcts import (
    MCTS,
    MCTSConfig,
    Outcome,
    SearchTree,
    best_move_from_statistics,
    merge_root_statistics,
)


def midgame_state(time_per_move: int = 200) -> GameState:
    state = GameState.new(time_per_move=time_per_move)
    for move in [(4, 4), (4, 3), (3, 1), (1, 4), (5, 3)]:
        state.apply_move(move)
    return state


def test_simulation_count_follows_time_budget() -> None:
    config = MCTSConfig()
    assert config.simulation_count(5000) == 500
    assert config.simulation_count(200) == 100
    assert config.simulation_count(1) == 0


def test_config_from_mapping_uses_defaults_for_missing_keys() -> None:
    config = MCTSConfig.from_mapping({"base_simulation_count": 64, "rollout_depth": "7"})
    assert config.base_simulation_count == 64
    assert config.rollout_depth == 7
    assert config.exploration_constant == pytest.approx(1.414)
    assert MCTSConfig.from_mapping(None) == MCTSConfig()


def test_search_accounts_every_simulation_at_the_root() -> None:
    state = midgame_state()
    result = MCTS("O", rng=np.random.default_rng(3)).search(state)

    assert result.simulations == 100
    assert result.move in state.legal_moves()
    assert set(result.statistics) == set(state.legal_moves())
    assert sum(visits for visits, _ in result.statistics.values()) == 100
    for visits, score in result.statistics.values():
        assert 0.0 <= score <= visits
    assert result.move == best_move_from_statistics(result.statistics)


def test_search_is_reproducible_with_a_fixed_seed() -> None:
    state = midgame_state()
    first = MCTS("O", rng=np.random.default_rng(42)).search(state)
    second = MCTS("O", rng=np.random.default_rng(42)).search(state)
    assert first.move == second.move
    assert first.statistics == second.statistics
    assert first.cutoffs == second.cutoffs


def test_search_does_not_mutate_the_input() -> None:
    state = midgame_state()
    before = state.clone()
    MCTS("O", rng=np.random.default_rng(0)).search(state)
    assert state == before


def test_zero_budget_falls_back_to_a_random_legal_move() -> None:
    state = midgame_state(time_per_move=1)
    result = MCTS("O", rng=np.random.default_rng(0)).search(state)
    assert result.simulations == 0
    assert result.statistics == {}
    assert result.move in state.legal_moves()


def test_decided_root_falls_back_to_a_random_legal_move() -> None:
    marks = {(x, 0): "X" for x in range(9)}
    state = GameState.from_position(marks, move_number=9, time_per_move=100)
    assert state.has_won("X") and state.legal_moves()

    result = MCTS("O", rng=np.random.default_rng(1)).search(state)
    assert result.simulations == 50
    assert result.statistics == {}
    assert result.move in state.legal_moves()


def test_no_legal_move_yields_none() -> None:
    state = GameState.from_position({}, active=[], move_number=4, time_per_move=100)
    assert MCTS("X", rng=np.random.default_rng(0)).run(state) is None


def test_short_rollouts_end_in_cutoffs() -> None:
    config = MCTSConfig(rollout_depth=0)
    state = midgame_state()
    result = MCTS("O", config=config, rng=np.random.default_rng(0)).search(state)
    assert result.cutoffs == result.simulations
    for visits, score in result.statistics.values():
        assert score == pytest.approx(0.5 * visits)


def test_outcome_scores() -> None:
    assert Outcome.WIN.score == 1.0
    assert Outcome.DRAW.score == 0.5
    assert Outcome.LOSS.score == 0.0
    assert Outcome.CUTOFF.score == 0.5


def test_deadline_stops_the_search_early() -> None:
    ticks = itertools.count()
    config = MCTSConfig(respect_deadline=True)
    search = MCTS(
        "O",
        config=config,
        rng=np.random.default_rng(0),
        clock=lambda: float(next(ticks)),
    )
    result = search.search(midgame_state(time_per_move=200))
    assert result.simulations == 1
    assert result.move is not None


def test_search_tree_links_nodes_by_index() -> None:
    tree = SearchTree()
    first = tree.add_child(0, (0, 0))
    second = tree.add_child(0, (1, 1))
    grandchild = tree.add_child(first, (2, 2))

    assert len(tree) == 4
    assert tree.root.children == [first, second]
    assert tree.nodes[grandchild].parent == first
    assert tree.child_moves(0) == [(0, 0), (1, 1)]


def test_root_statistics_merge() -> None:
    merged = merge_root_statistics(
        [
            {(0, 0): (3, 1.5), (1, 1): (5, 4.0)},
            {(0, 0): (4, 2.0), (2, 2): (1, 1.0)},
        ]
    )
    assert merged == {(0, 0): (7, 3.5), (1, 1): (5, 4.0), (2, 2): (1, 1.0)}
    assert best_move_from_statistics(merged) == (0, 0)
    assert best_move_from_statistics({}) is None


def test_most_visited_move_wins_ties_by_order() -> None:
    stats = {(3, 3): (4, 0.0), (5, 5): (4, 4.0), (4, 4): (2, 2.0)}
    assert best_move_from_statistics(stats) == (3, 3)


class RecordingRng:
    """Always picks the first option and remembers how it was asked."""

    def __init__(self) -> None:
        self.weighted = []
        self.uniform = 0

    def choice(self, n, p=None):
        self.weighted.append((n, list(p)))
        return 0

    def integers(self, n):
        self.uniform += 1
        return 0


def tree_with_children(parent_visits, children):
    tree = SearchTree()
    tree.root.visits = parent_visits
    for move, visits, score in children:
        index = tree.add_child(0, move)
        tree.nodes[index].visits = visits
        tree.nodes[index].score = score
    return tree


def uct(parent_visits, move, visits, score, c=1.414):
    return score / visits + c * math.sqrt(math.log(parent_visits) / visits) + position_weight(move) / 10.0


def test_best_child_follows_the_uct_formula() -> None:
    children = [((0, 1), 9, 5.4), ((1, 0), 1, 0.0)]
    tree = tree_with_children(10, children)
    search = MCTS("X", rng=np.random.default_rng(0))

    expected = max(range(2), key=lambda i: uct(10, *children[i]))
    assert expected == 1
    assert search._best_child(tree, 0) == tree.root.children[1]


def test_best_child_positional_bonus_breaks_equal_statistics() -> None:
    tree = tree_with_children(10, [((0, 1), 5, 2.5), ((4, 4), 5, 2.5)])
    search = MCTS("X", rng=np.random.default_rng(0))
    assert search._best_child(tree, 0) == tree.root.children[1]


def test_best_child_keeps_the_first_of_equal_scores() -> None:
    tree = tree_with_children(10, [((0, 0), 5, 2.5), ((2, 2), 5, 2.5), ((0, 1), 5, 2.5)])
    search = MCTS("X", rng=np.random.default_rng(0))
    assert search._best_child(tree, 0) == tree.root.children[0]


def test_expansion_follows_legal_move_order() -> None:
    state = midgame_state(time_per_move=6)
    result = MCTS("O", rng=np.random.default_rng(0)).search(state)
    assert result.simulations == 3
    assert list(result.statistics) == state.legal_moves()[:3]
    assert all(visits == 1 for visits, _ in result.statistics.values())


def test_first_rollout_plies_sample_by_position_weight() -> None:
    state = midgame_state()
    moves = state.legal_moves()
    rng = RecordingRng()
    config = MCTSConfig(rollout_depth=3, weighted_rollout_plies=2)
    MCTS("O", config=config, rng=rng)._rollout(state.clone())

    assert len(rng.weighted) == 2
    assert rng.uniform == 1
    n, p = rng.weighted[0]
    weights = [position_weight(move) for move in moves]
    assert n == len(moves)
    assert p == pytest.approx([w / sum(weights) for w in weights])

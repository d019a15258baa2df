"""Monte Carlo Tree Search with UCT selection and weighted rollouts."""
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np

from .game import GameState, Move, Player
from .tactics import position_weight
from .utils import opponent, random_element, weighted_element

logger = logging.getLogger(__name__)

RootStatistics = Dict[Move, Tuple[int, float]]


@dataclass
class MCTSConfig:
    base_simulation_count: int = 500
    exploration_constant: float = 1.414
    rollout_depth: int = 15
    weighted_rollout_plies: int = 3
    respect_deadline: bool = False
    time_unit: float = 0.001

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Any]]) -> "MCTSConfig":
        mapping = mapping or {}
        defaults = cls()
        return cls(
            base_simulation_count=int(
                mapping.get("base_simulation_count", defaults.base_simulation_count)
            ),
            exploration_constant=float(
                mapping.get("exploration_constant", defaults.exploration_constant)
            ),
            rollout_depth=int(mapping.get("rollout_depth", defaults.rollout_depth)),
            weighted_rollout_plies=int(
                mapping.get("weighted_rollout_plies", defaults.weighted_rollout_plies)
            ),
            respect_deadline=bool(mapping.get("respect_deadline", defaults.respect_deadline)),
            time_unit=float(mapping.get("time_unit", defaults.time_unit)),
        )

    def simulation_count(self, time_per_move: int) -> int:
        return max(0, min(self.base_simulation_count, time_per_move // 2))


class Outcome(Enum):
    WIN = 1.0
    DRAW = 0.5
    LOSS = 0.0
    # Depth limit reached before the match was decided; scored like a draw.
    CUTOFF = -1.0

    @property
    def score(self) -> float:
        return 0.5 if self is Outcome.CUTOFF else self.value


@dataclass
class SearchNode:
    move: Optional[Move]
    parent: Optional[int]
    children: List[int] = field(default_factory=list)
    visits: int = 0
    score: float = 0.0


class SearchTree:
    """All nodes of one search, addressed by index; the root is node 0."""

    def __init__(self) -> None:
        self.nodes: List[SearchNode] = [SearchNode(move=None, parent=None)]

    @property
    def root(self) -> SearchNode:
        return self.nodes[0]

    def __len__(self) -> int:
        return len(self.nodes)

    def add_child(self, parent: int, move: Move) -> int:
        index = len(self.nodes)
        self.nodes.append(SearchNode(move=move, parent=parent))
        self.nodes[parent].children.append(index)
        return index

    def child_moves(self, index: int) -> List[Move]:
        return [self.nodes[child].move for child in self.nodes[index].children]  # type: ignore[misc]

    def root_statistics(self) -> RootStatistics:
        stats: RootStatistics = {}
        for child in self.root.children:
            node = self.nodes[child]
            assert node.move is not None
            stats[node.move] = (node.visits, node.score)
        return stats


@dataclass
class SearchResult:
    move: Optional[Move]
    simulations: int
    cutoffs: int
    statistics: RootStatistics


def merge_root_statistics(all_stats: Iterable[RootStatistics]) -> RootStatistics:
    """Sum visits and scores per first move over independently grown trees."""

    merged: RootStatistics = {}
    for stats in all_stats:
        for move, (visits, score) in stats.items():
            total_visits, total_score = merged.get(move, (0, 0.0))
            merged[move] = (total_visits + visits, total_score + score)
    return merged


def best_move_from_statistics(stats: RootStatistics) -> Optional[Move]:
    best_move: Optional[Move] = None
    most_visits = -1
    for move, (visits, _) in stats.items():
        if visits > most_visits:
            most_visits = visits
            best_move = move
    return best_move


class MCTS:
    """UCT tree search rebuilt from scratch on every call to :meth:`search`.

    Results are scored from the fixed perspective of ``player``: a match won by
    ``player`` is worth 1, a draw or an undecided cutoff 0.5, a loss 0.
    """

    def __init__(
        self,
        player: Player,
        config: Optional[MCTSConfig] = None,
        rng: Optional[np.random.Generator] = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.player = player
        self.opponent = opponent(player)
        self.config = config or MCTSConfig()
        self.rng = rng or np.random.default_rng()
        self.clock = clock

    def search(self, state: GameState) -> SearchResult:
        legal = state.legal_moves()
        budget = self.config.simulation_count(state.time_per_move)
        deadline = None
        if self.config.respect_deadline:
            deadline = self.clock() + state.time_per_move * self.config.time_unit

        tree = SearchTree()
        simulations = 0
        cutoffs = 0
        for _ in range(budget):
            if deadline is not None and simulations and self.clock() >= deadline:
                break
            scratch = state.clone()
            leaf = self._select(tree, scratch)
            outcome = self._rollout(scratch)
            if outcome is Outcome.CUTOFF:
                cutoffs += 1
            self._backpropagate(tree, leaf, outcome.score)
            simulations += 1

        move = best_move_from_statistics(tree.root_statistics())
        if move is None and legal:
            move = random_element(self.rng, legal)
        logger.debug(
            "MCTS ran %d/%d simulations (%d cutoffs, %d nodes); chose %s",
            simulations,
            budget,
            cutoffs,
            len(tree),
            move,
        )
        return SearchResult(
            move=move,
            simulations=simulations,
            cutoffs=cutoffs,
            statistics=tree.root_statistics(),
        )

    def run(self, state: GameState) -> Optional[Move]:
        return self.search(state).move

    # ------------------------------------------------------------------
    def _select(self, tree: SearchTree, scratch: GameState) -> int:
        index = 0
        while not scratch.is_terminal():
            untried = self._untried_moves(tree, index, scratch)
            if untried:
                move = untried[0]
                child = tree.add_child(index, move)
                scratch.apply_move(move)
                return child
            index = self._best_child(tree, index)
            scratch.apply_move(tree.nodes[index].move)  # type: ignore[arg-type]
        return index

    def _untried_moves(self, tree: SearchTree, index: int, scratch: GameState) -> List[Move]:
        tried = set(tree.child_moves(index))
        return [move for move in scratch.legal_moves() if move not in tried]

    def _best_child(self, tree: SearchTree, index: int) -> int:
        """UCT plus a positional bonus; every child has been backed up at least once."""

        node = tree.nodes[index]
        log_parent = math.log(node.visits)
        best_score = -math.inf
        best_child = node.children[0]
        for child_index in node.children:
            child = tree.nodes[child_index]
            exploitation = child.score / child.visits
            exploration = self.config.exploration_constant * math.sqrt(log_parent / child.visits)
            bonus = position_weight(child.move) / 10.0  # type: ignore[arg-type]
            score = exploitation + exploration + bonus
            if score > best_score:
                best_score = score
                best_child = child_index
        return best_child

    def _rollout(self, scratch: GameState) -> Outcome:
        depth = 0
        while depth < self.config.rollout_depth and not scratch.is_terminal():
            moves = scratch.legal_moves()
            if depth < self.config.weighted_rollout_plies:
                move = weighted_element(self.rng, moves, [position_weight(m) for m in moves])
            else:
                move = random_element(self.rng, moves)
            scratch.apply_move(move)
            depth += 1
        return self._outcome(scratch)

    def _outcome(self, scratch: GameState) -> Outcome:
        if scratch.has_won(self.player):
            return Outcome.WIN
        if scratch.has_won(self.opponent):
            return Outcome.LOSS
        if scratch.all_resolved():
            return Outcome.DRAW
        return Outcome.CUTOFF

    def _backpropagate(self, tree: SearchTree, index: Optional[int], score: float) -> None:
        while index is not None:
            node = tree.nodes[index]
            node.visits += 1
            node.score += score
            index = node.parent


__all__ = [
    "MCTS",
    "MCTSConfig",
    "Outcome",
    "SearchNode",
    "SearchResult",
    "SearchTree",
    "best_move_from_statistics",
    "merge_root_statistics",
]

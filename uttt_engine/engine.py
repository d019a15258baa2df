"""Move selection combining fixed tactics with a tree-search fallback."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

import numpy as np

from . import tactics
from .game import GameState, Move, Player, PLAYERS
from .mcts import MCTS, MCTSConfig
from .utils import make_rng, opponent

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    OPENING = "opening"
    IMMEDIATE_WIN = "immediate_win"
    IMMEDIATE_BLOCK = "immediate_block"
    EARLY_GAME = "early_game"
    PATTERN = "pattern"
    TACTICAL = "tactical"
    SEARCH = "search"


@dataclass(frozen=True)
class Decision:
    move: Move
    stage: Stage


def player_for_state(state: GameState) -> Player:
    """Identity of the side to move in ``state``: ``"X"`` on even move numbers."""

    return PLAYERS[state.move_number % 2]


class DecisionEngine:
    """One engine per match; its identity is fixed when it is created."""

    def __init__(
        self,
        player: Player,
        config: Optional[MCTSConfig] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        if player not in PLAYERS:
            raise ValueError("player must be 'X' or 'O'")
        self.player = player
        self.opponent = opponent(player)
        self.config = config or MCTSConfig()
        self.rng = rng or np.random.default_rng()

    @classmethod
    def for_first_state(
        cls,
        state: GameState,
        config: Optional[MCTSConfig] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> "DecisionEngine":
        return cls(player_for_state(state), config=config, rng=rng)

    @classmethod
    def from_config(
        cls, player: Player, engine_cfg: Optional[Mapping[str, Any]] = None
    ) -> "DecisionEngine":
        engine_cfg = engine_cfg or {}
        seed = engine_cfg.get("seed")
        return cls(
            player,
            config=MCTSConfig.from_mapping(engine_cfg),
            rng=make_rng(None if seed is None else int(seed)),
        )

    def select_move(self, state: GameState) -> Optional[Move]:
        decision = self.decide(state)
        return None if decision is None else decision.move

    def decide(self, state: GameState) -> Optional[Decision]:
        """Pick a move for ``state`` without touching it.

        Every stage works on one private copy; a state whose grids cannot be
        copied is played on the degraded copy instead.
        """

        working = state.clone()
        if not working.legal_moves():
            return None

        decision = self._heuristic_decision(working)
        if decision is None:
            search = MCTS(self.player, config=self.config, rng=self.rng)
            move = search.run(working)
            if move is None:
                return None
            decision = Decision(move, Stage.SEARCH)

        logger.debug(
            "%s at move %d plays %s (%s)",
            self.player,
            state.move_number,
            decision.move,
            decision.stage.value,
        )
        return decision

    def _heuristic_decision(self, state: GameState) -> Optional[Decision]:
        if state.move_number == 0:
            move = tactics.opening_move(state, self.rng)
            if move is not None:
                return Decision(move, Stage.OPENING)

        move = tactics.find_immediate_win_or_block(state, self.player)
        if move is not None:
            return Decision(move, Stage.IMMEDIATE_WIN)
        move = tactics.find_immediate_win_or_block(state, self.opponent)
        if move is not None:
            return Decision(move, Stage.IMMEDIATE_BLOCK)

        if state.move_number < 2:
            move = tactics.early_game_move(state, self.opponent, self.rng)
            if move is not None:
                return Decision(move, Stage.EARLY_GAME)

        move = tactics.find_pattern_move(state, self.player, self.opponent)
        if move is not None:
            return Decision(move, Stage.PATTERN)

        move = tactics.find_tactical_move(state, self.player, self.opponent)
        if move is not None:
            return Decision(move, Stage.TACTICAL)
        return None


__all__ = ["Decision", "DecisionEngine", "Stage", "player_for_state"]

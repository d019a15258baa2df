"""Ultimate Tic-Tac-Toe decision engine: tactics in front of a tree search."""
from .arena import Arena, ArenaResult, RandomPlayer
from .engine import Decision, DecisionEngine, Stage, player_for_state
from .game import GameState, InvalidMoveError, Move
from .mcts import MCTS, MCTSConfig, SearchResult

__all__ = [
    "Arena",
    "ArenaResult",
    "Decision",
    "DecisionEngine",
    "GameState",
    "InvalidMoveError",
    "MCTS",
    "MCTSConfig",
    "Move",
    "RandomPlayer",
    "SearchResult",
    "Stage",
    "player_for_state",
]

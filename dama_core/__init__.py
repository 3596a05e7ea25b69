"""Checkers rule engine: board model, move generation and game states."""

from .board import Board, UndoRecord, legal_moves
from .errors import DamaError, IllegalMove, InvalidMove, InvalidState, OutOfBounds
from .game import Game, GameState, apply_move
from .move import Coordinate, Move
from .pieces import King, Man, Piece, Rank, Side
from .player import PlayerController, PlayerKind

__all__ = [
	"Board",
	"UndoRecord",
	"Game",
	"GameState",
	"Move",
	"Coordinate",
	"Side",
	"Rank",
	"Piece",
	"Man",
	"King",
	"PlayerController",
	"PlayerKind",
	"legal_moves",
	"apply_move",
	"DamaError",
	"InvalidMove",
	"IllegalMove",
	"InvalidState",
	"OutOfBounds",
]

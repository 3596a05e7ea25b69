from __future__ import annotations

import random
from typing import Dict, Tuple, TYPE_CHECKING

from .pieces import BOARD_SIZE, Piece, Rank, Side

if TYPE_CHECKING:  # pragma: no cover
    from .board import Board

_RANDOM_SEED = 20241129
_PIECE_VARIANTS = tuple((side, rank) for side in Side for rank in Rank)

_rng = random.Random(_RANDOM_SEED)
_ZOBRIST_TABLE: Dict[Tuple[int, int, Side, Rank], int] = {
    (row, col, side, rank): _rng.getrandbits(64)
    for row in range(BOARD_SIZE)
    for col in range(BOARD_SIZE)
    for side, rank in _PIECE_VARIANTS
}
_TURN_KEYS = {side: _rng.getrandbits(64) for side in Side}


def zobrist_piece_key(row: int, col: int, piece: Piece) -> int:
    return _ZOBRIST_TABLE[(row, col, piece.side, piece.rank)]


def zobrist_turn_key(side: Side) -> int:
    return _TURN_KEYS[side]


def compute_board_hash(board: "Board") -> int:
    """Return a Zobrist hash for the current board layout and side to move."""

    result = zobrist_turn_key(board.turn)
    for row in range(BOARD_SIZE):
        for col in range(BOARD_SIZE):
            piece = board.board[row][col]
            if piece is None:
                continue
            result ^= zobrist_piece_key(row, col, piece)
    return result

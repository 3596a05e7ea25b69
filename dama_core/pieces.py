from __future__ import annotations

from enum import Enum
from itertools import count
from typing import TYPE_CHECKING, Optional

from .move import Coordinate, Move

if TYPE_CHECKING:
    from .board import Board


BOARD_SIZE = 8
MoveList = list[Move]
Direction = tuple[int, int]
_PIECE_ID_COUNTER = count()
_ALL_DIRECTIONS: tuple[Direction, ...] = ((-1, -1), (-1, 1), (1, -1), (1, 1))


class Side(Enum):
    LIGHT = "light"
    DARK = "dark"

    @property
    def opponent(self) -> "Side":
        return Side.DARK if self is Side.LIGHT else Side.LIGHT

    @property
    def forward(self) -> int:
        # Light starts on rows 5-7 and moves toward row 0.
        return -1 if self is Side.LIGHT else 1

    @property
    def promotion_row(self) -> int:
        return 0 if self is Side.LIGHT else BOARD_SIZE - 1

    @property
    def home_row(self) -> int:
        return BOARD_SIZE - 1 if self is Side.LIGHT else 0


class Rank(Enum):
    MAN = "man"
    KING = "king"


class Piece:
    rank = Rank.MAN

    def __init__(self, side: Side, row: int, col: int, *, identifier: Optional[int] = None) -> None:
        self.side = side
        self.row = row
        self.col = col
        self.id = identifier if identifier is not None else next(_PIECE_ID_COUNTER)

    @property
    def is_king(self) -> bool:
        return self.rank is Rank.KING

    @property
    def position(self) -> Coordinate:
        return (self.row, self.col)

    def move(self, new_row: int, new_col: int) -> None:
        self.row = new_row
        self.col = new_col

    def directions(self) -> tuple[Direction, ...]:
        return _ALL_DIRECTIONS

    def possibleMoves(self, board: "Board") -> MoveList:
        """Moves for this piece alone; captures win over steps within the piece."""
        directions = self.directions()
        captures = _capture_chains(self, board, directions)
        if captures:
            return captures
        return _simple_steps(self, board, directions)

    def getCopy(self) -> "Piece":
        return self.__class__(self.side, self.row, self.col, identifier=self.id)

    def __repr__(self) -> str:
        piece_type = "K" if self.is_king else "M"
        return f"{piece_type}({self.side.name},{self.row},{self.col})"


class King(Piece):
    rank = Rank.KING


class Man(Piece):
    rank = Rank.MAN

    def directions(self) -> tuple[Direction, ...]:
        dr = self.side.forward
        return ((dr, -1), (dr, 1))

    def promote(self) -> King:
        return King(self.side, self.row, self.col, identifier=self.id)


def make_piece(side: Side, rank: Rank, row: int, col: int, *, identifier: Optional[int] = None) -> Piece:
    cls = King if rank is Rank.KING else Man
    return cls(side, row, col, identifier=identifier)


def _simple_steps(piece: Piece, board: "Board", directions: tuple[Direction, ...]) -> MoveList:
    moves: MoveList = []
    for dr, dc in directions:
        new_r, new_c = piece.row + dr, piece.col + dc
        if board._is_within_bounds(new_r, new_c) and board.getPiece(new_r, new_c) is None:
            moves.append(Move(start=piece.position, steps=((new_r, new_c),)))
    return moves


def _capture_chains(piece: Piece, board: "Board", directions: tuple[Direction, ...]) -> MoveList:
    """Every maximal jump sequence the piece can make from where it stands.

    The board is not touched: the start square and already jumped pieces are
    treated as empty while the chain is extended.
    """
    origin = piece.position
    chains: MoveList = []

    def is_empty(r: int, c: int, captured: list[Coordinate]) -> bool:
        if (r, c) == origin or (r, c) in captured:
            return True
        return board.getPiece(r, c) is None

    def extend(r: int, c: int, path: list[Coordinate], captured: list[Coordinate]) -> None:
        extended = False
        for dr, dc in directions:
            mid_r, mid_c = r + dr, c + dc
            end_r, end_c = r + 2 * dr, c + 2 * dc
            if not board._is_within_bounds(end_r, end_c):
                continue
            if (mid_r, mid_c) in captured:
                continue
            target = board.getPiece(mid_r, mid_c)
            if target is None or target.side == piece.side:
                continue
            if not is_empty(end_r, end_c, captured):
                continue
            extended = True
            extend(end_r, end_c, path + [(end_r, end_c)], captured + [(mid_r, mid_c)])
        if not extended and captured:
            chains.append(Move(start=origin, steps=tuple(path), captures=tuple(captured)))

    extend(piece.row, piece.col, [], [])
    return chains

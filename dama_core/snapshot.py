"""Save and restore games as plain JSON-friendly data.

A snapshot is the 8x8 grid (``null`` or ``{"side", "rank"}`` per cell) plus
the side to move. Loading re-checks the placement rules so a hand-edited or
corrupted file cannot put the engine into a position it could never reach.
"""

from __future__ import annotations

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .board import PIECES_PER_SIDE, Board, is_dark_square
from .errors import InvalidState
from .game import GameState
from .pieces import BOARD_SIZE, Rank, Side, make_piece

SNAPSHOT_VERSION = 1


class CellSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    side: Literal["light", "dark"]
    rank: Literal["man", "king"] = "man"


Row = list[Optional[CellSnapshot]]


class GameSnapshot(BaseModel):
    version: int = SNAPSHOT_VERSION
    side_to_move: Literal["light", "dark"]
    board: list[Row] = Field(..., min_length=BOARD_SIZE, max_length=BOARD_SIZE)

    @model_validator(mode="after")
    def _check_placement(self) -> "GameSnapshot":
        counts = {"light": 0, "dark": 0}
        for row_idx, row in enumerate(self.board):
            if len(row) != BOARD_SIZE:
                raise ValueError(f"Row {row_idx} has {len(row)} cells, expected {BOARD_SIZE}.")
            for col_idx, cell in enumerate(row):
                if cell is None:
                    continue
                if not is_dark_square(row_idx, col_idx):
                    raise ValueError(f"Piece on light square ({row_idx}, {col_idx}).")
                side = Side(cell.side)
                if cell.rank == "man" and row_idx == side.promotion_row:
                    raise ValueError(
                        f"Unpromoted {cell.side} man on its promotion row at ({row_idx}, {col_idx})."
                    )
                counts[cell.side] += 1

        for side, total in counts.items():
            if total > PIECES_PER_SIDE:
                raise ValueError(f"{side} has {total} pieces, at most {PIECES_PER_SIDE} allowed.")
        if not any(counts.values()):
            raise ValueError("Board holds no pieces.")
        return self


def snapshot_state(state: GameState) -> GameSnapshot:
    grid: list[Row] = [[None for _ in range(BOARD_SIZE)] for _ in range(BOARD_SIZE)]
    for piece in state.board.getAllPieces():
        grid[piece.row][piece.col] = CellSnapshot(side=piece.side.value, rank=piece.rank.value)
    return GameSnapshot(side_to_move=state.side_to_move.value, board=grid)


def dump_state(state: GameState) -> dict[str, Any]:
    return snapshot_state(state).model_dump()


def dumps_state(state: GameState) -> str:
    return snapshot_state(state).model_dump_json()


def load_state(data: Union[str, bytes, dict[str, Any]]) -> GameState:
    """Rebuild a ``GameState``; raises ``InvalidState`` for anything unplayable."""
    try:
        if isinstance(data, (str, bytes)):
            snapshot = GameSnapshot.model_validate_json(data)
        else:
            snapshot = GameSnapshot.model_validate(data)
    except ValidationError as exc:
        raise InvalidState(f"Rejected saved game: {exc}") from exc

    if snapshot.version != SNAPSHOT_VERSION:
        raise InvalidState(f"Unsupported snapshot version {snapshot.version}.")

    board = Board.empty(turn=Side(snapshot.side_to_move))
    for row_idx, row in enumerate(snapshot.board):
        for col_idx, cell in enumerate(row):
            if cell is None:
                continue
            board.put(make_piece(Side(cell.side), Rank(cell.rank), row_idx, col_idx))
    return GameState.from_board(board)

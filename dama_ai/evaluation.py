from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from dama_core.board import Board
from dama_core.pieces import BOARD_SIZE, Piece, Side

_MAX_ROW = BOARD_SIZE - 1
# Largest Manhattan distance from the board centre a dark square can have.
_MAX_CENTER_DISTANCE = BOARD_SIZE - 1


class EvaluationWeights(BaseModel):
	"""Integer weights of the evaluation terms."""

	model_config = ConfigDict(frozen=True)

	man: int = Field(default=100, gt=0, description="Material value of a man")
	king: int = Field(default=250, gt=0, description="Material value of a king")
	advancement: int = Field(default=4, ge=0, description="Per row a man has advanced")
	center: int = Field(default=2, ge=0, description="Per step closer to the centre")
	mobility: int = Field(default=3, ge=0, description="Per legal move")

	@model_validator(mode="after")
	def _check_king_ratio(self) -> "EvaluationWeights":
		if not 2 * self.man <= self.king <= 3 * self.man:
			raise ValueError("King weight must be between two and three times the man weight.")
		return self


DEFAULT_WEIGHTS = EvaluationWeights()


# Top-level evaluator: material, advancement and central control per piece, plus mobility.
def evaluate_board(board: Board, perspective: Side, weights: EvaluationWeights = DEFAULT_WEIGHTS) -> int:
	"""Score the position for ``perspective``; positive means it is ahead.

	The score is antisymmetric: swapping the perspective negates it.
	"""
	totals = {Side.LIGHT: 0, Side.DARK: 0}

	for piece in board.getAllPieces():
		totals[piece.side] += (
			(weights.king if piece.is_king else weights.man)
			+ weights.advancement * _advancement(piece)
			+ weights.center * _center_control(piece)
		)

	mobility = _mobility_scores(board)
	for side in Side:
		totals[side] += weights.mobility * mobility[side]

	return totals[perspective] - totals[perspective.opponent]


# Rows a man has travelled from its home row; kings count as fully advanced.
def _advancement(piece: Piece) -> int:
	if piece.is_king:
		return _MAX_ROW
	return abs(piece.row - piece.side.home_row)


# Inverted Manhattan distance to the board centre (3.5, 3.5).
def _center_control(piece: Piece) -> int:
	distance = (abs(2 * piece.row - _MAX_ROW) + abs(2 * piece.col - _MAX_ROW)) // 2
	return _MAX_CENTER_DISTANCE - distance


def _mobility_scores(board: Board) -> dict[Side, int]:
	mobility = {}
	for side in Side:
		moves = board.getAllValidMoves(side)
		mobility[side] = sum(len(options) for options in moves.values())
	return mobility


evaluate = evaluate_board

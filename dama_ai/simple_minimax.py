from __future__ import annotations

import math
from typing import Optional, Tuple

from dama_core.board import Board
from dama_core.game import GameState
from dama_core.move import Move
from dama_core.pieces import Side

from .evaluation import DEFAULT_WEIGHTS, EvaluationWeights, evaluate_board
from .minimax import WIN_SCORE


def select_move(state: GameState, depth: int = 3) -> Optional[Move]:
	"""Return the best move found by a plain, unpruned minimax search."""
	if state.terminal:
		return None
	move, _ = search_root(state.board, state.side_to_move, depth)
	return move


def search_root(
	board: Board,
	side: Side,
	depth: int,
	weights: EvaluationWeights = DEFAULT_WEIGHTS,
) -> Tuple[Optional[Move], Optional[float]]:
	if depth <= 0:
		raise ValueError("Depth must be positive.")

	work = board.copy()
	work.set_turn(side)
	best_score = -math.inf
	best_choice: Optional[Move] = None

	for move in work.legal_moves(side):
		score = minimax_value(work.simulateMove(move), depth - 1, side, weights)
		if score > best_score:
			best_score = score
			best_choice = move

	if best_choice is None:
		return None, None
	return best_choice, best_score


def minimax_value(
	board: Board,
	depth: int,
	maximizing_side: Side,
	weights: EvaluationWeights = DEFAULT_WEIGHTS,
) -> float:
	winner = board.is_game_over()
	if winner is not None:
		if winner == maximizing_side:
			return WIN_SCORE + depth
		return -WIN_SCORE - depth

	if depth == 0:
		return evaluate_board(board, maximizing_side, weights)

	scores = [
		minimax_value(board.simulateMove(move), depth - 1, maximizing_side, weights)
		for move in board.legal_moves(board.turn)
	]
	if board.turn == maximizing_side:
		return max(scores)
	return min(scores)

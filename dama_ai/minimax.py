from __future__ import annotations

import logging
import math
import time
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum, auto
from threading import Event
from typing import DefaultDict, Dict, Iterable, List, Optional, Sequence, Tuple

from dama_core.board import Board
from dama_core.game import GameState
from dama_core.move import Move
from dama_core.pieces import Side

from .cancel import SearchCancelled, raise_if_cancelled
from .config import DEFAULT_TT_ENTRIES
from .evaluation import DEFAULT_WEIGHTS, EvaluationWeights, evaluate_board

logger = logging.getLogger(__name__)

WIN_SCORE = 1_000_000


@dataclass(frozen=True)
class MinimaxOptions:
	use_alpha_beta: bool = True
	use_transposition: bool = True
	use_move_ordering: bool = True
	use_iterative_deepening: bool = False
	weights: EvaluationWeights = DEFAULT_WEIGHTS


class Bound(Enum):
	EXACT = auto()
	LOWER = auto()
	UPPER = auto()


TTKey = Tuple[int, Side]


@dataclass
class TTEntry:
	key: TTKey
	depth: int
	score: float
	flag: Bound
	best_move: Optional[Move]


class TranspositionTable:
	"""Search results keyed on (Zobrist hash, maximizing side).

	The oldest entry is evicted once ``max_entries`` is reached. Not
	thread-safe: give each concurrent search its own table.
	"""

	def __init__(self, max_entries: int = DEFAULT_TT_ENTRIES) -> None:
		self.max_entries = max_entries
		self._entries: Dict[TTKey, TTEntry] = {}

	def __len__(self) -> int:
		return len(self._entries)

	def __contains__(self, key: object) -> bool:
		return key in self._entries

	def __getitem__(self, key: TTKey) -> TTEntry:
		return self._entries[key]

	def get(self, key: TTKey) -> Optional[TTEntry]:
		return self._entries.get(key)

	def store(
		self,
		key: TTKey,
		depth: int,
		score: float,
		alpha_orig: float,
		beta_orig: float,
		best_move: Optional[Move],
	) -> None:
		if key not in self._entries and len(self._entries) >= self.max_entries:
			self._entries.pop(next(iter(self._entries)))
		if score <= alpha_orig:
			flag = Bound.UPPER
		elif score >= beta_orig:
			flag = Bound.LOWER
		else:
			flag = Bound.EXACT
		self._entries[key] = TTEntry(key, depth, score, flag, best_move)

	def clear(self) -> None:
		self._entries.clear()


KillerTable = DefaultDict[int, List[Move]]


@dataclass(frozen=True)
class SearchResult:
	move: Optional[Move]
	score: Optional[float]
	depth: int
	nodes: int
	cancelled: bool = False


@dataclass
class _SearchContext:
	maximizing: Side
	options: MinimaxOptions
	table: Optional[TranspositionTable]
	cancel_event: Optional[Event] = None
	deadline: Optional[float] = None
	killer_moves: KillerTable = field(default_factory=lambda: defaultdict(list))
	nodes: int = 0
	partial: Optional[Tuple[Move, float]] = None


def search(
	board: Board,
	side: Side,
	depth: int = 4,
	*,
	use_alpha_beta: bool = True,
	use_transposition: bool = True,
	use_move_ordering: bool = True,
	use_iterative_deepening: bool = False,
	time_limit_ms: Optional[int] = None,
	weights: EvaluationWeights = DEFAULT_WEIGHTS,
	cancel_event: Optional[Event] = None,
	table: Optional[TranspositionTable] = None,
) -> SearchResult:
	"""Find the best move for ``side`` looking ``depth`` plies ahead.

	The search runs on a private copy of ``board``. Without an explicit
	``table`` each call gets a fresh transposition table; a table passed in
	must only be shared between searches that use the same weights.
	Cancellation and an exhausted time budget end it early: the deepest
	completed iteration's move is returned, else the best root move fully
	searched so far.
	"""
	if depth <= 0:
		raise ValueError("Depth must be positive.")

	options = MinimaxOptions(
		use_alpha_beta=use_alpha_beta,
		use_transposition=use_transposition,
		use_move_ordering=use_move_ordering,
		use_iterative_deepening=use_iterative_deepening,
		weights=weights,
	)

	work = board.copy()
	work.set_turn(side)
	root_moves = work.legal_moves(side)
	if not root_moves:
		return SearchResult(move=None, score=None, depth=0, nodes=0)

	if options.use_transposition and table is None:
		table = TranspositionTable()
	ctx = _SearchContext(
		maximizing=side,
		options=options,
		table=table if options.use_transposition else None,
		cancel_event=cancel_event,
	)

	deadline: Optional[float] = None
	if options.use_iterative_deepening and time_limit_ms is not None:
		deadline = time.perf_counter() + time_limit_ms / 1000.0
	depths: Iterable[int] = range(1, depth + 1) if options.use_iterative_deepening else (depth,)

	chosen: Optional[Move] = None
	best_score: Optional[float] = None
	completed = 0
	cancelled = False
	try:
		for current_depth in depths:
			# The first iteration always completes so a timed search has a move.
			ctx.deadline = deadline if completed else None
			ctx.partial = None
			chosen, best_score = _search_root(work, root_moves, current_depth, ctx, chosen)
			completed = current_depth
			logger.debug(
				"depth %d: best %s score %s (%d nodes)", current_depth, chosen, best_score, ctx.nodes
			)
	except SearchCancelled as exc:
		cancelled = True
		if completed == 0 and ctx.partial is not None:
			chosen, best_score = ctx.partial
		logger.debug("Search stopped after depth %d: %s", completed, exc.message)

	return SearchResult(move=chosen, score=best_score, depth=completed, nodes=ctx.nodes, cancelled=cancelled)


def best_move(
	board: Board,
	side: Side,
	depth: int = 4,
	cancel_event: Optional[Event] = None,
	**options,
) -> Optional[Move]:
	return search(board, side, depth, cancel_event=cancel_event, **options).move


def select_move(state: GameState, depth: int = 4, **options) -> Optional[Move]:
	if state.terminal:
		return None
	return search(state.board, state.side_to_move, depth, **options).move


def _search_root(
	board: Board,
	root_moves: Sequence[Move],
	depth: int,
	ctx: _SearchContext,
	previous_best: Optional[Move],
) -> Tuple[Optional[Move], float]:
	alpha = -math.inf
	beta = math.inf
	best_score = -math.inf
	best: Optional[Move] = None

	ordered = _order_moves(root_moves, board, ctx, previous_best, ply=0)
	for move in ordered:
		raise_if_cancelled(ctx.cancel_event, ctx.deadline)
		undo = board.make_move(move)
		try:
			score = _alphabeta(board, depth - 1, alpha, beta, ctx, ply=1)
		finally:
			board.unmake_move(undo)
		# Strict comparison: the first move reaching the best score is kept.
		if score > best_score:
			best_score = score
			best = move
			ctx.partial = (best, best_score)
		if ctx.options.use_alpha_beta:
			alpha = max(alpha, best_score)

	return best, best_score


def _alphabeta(
	board: Board,
	depth: int,
	alpha: float,
	beta: float,
	ctx: _SearchContext,
	ply: int,
) -> float:
	ctx.nodes += 1
	maximizing = ctx.maximizing

	winner = board.is_game_over()
	if winner is not None:
		if winner == maximizing:
			return WIN_SCORE + depth
		return -WIN_SCORE - depth

	if depth == 0:
		return evaluate_board(board, maximizing, ctx.options.weights)

	alpha_orig = alpha
	beta_orig = beta
	key: TTKey = (board.compute_hash(), maximizing)
	tt_entry: Optional[TTEntry] = None

	if ctx.table is not None:
		tt_entry = ctx.table.get(key)
		if tt_entry is not None and tt_entry.depth >= depth:
			if tt_entry.flag == Bound.EXACT:
				return tt_entry.score
			if ctx.options.use_alpha_beta:
				if tt_entry.flag == Bound.LOWER:
					alpha = max(alpha, tt_entry.score)
				elif tt_entry.flag == Bound.UPPER:
					beta = min(beta, tt_entry.score)
				if alpha >= beta:
					return tt_entry.score

	ordered = _order_moves(
		board.legal_moves(board.turn),
		board,
		ctx,
		tt_entry.best_move if tt_entry else None,
		ply,
	)

	best: Optional[Move] = None
	if board.turn == maximizing:
		value = -math.inf
		for move in ordered:
			raise_if_cancelled(ctx.cancel_event, ctx.deadline)
			undo = board.make_move(move)
			try:
				score = _alphabeta(board, depth - 1, alpha, beta, ctx, ply + 1)
			finally:
				board.unmake_move(undo)
			if score > value:
				value = score
				best = move
			if ctx.options.use_alpha_beta:
				alpha = max(alpha, value)
				if alpha >= beta:
					_register_killer_move(ctx, ply, move)
					break
	else:
		value = math.inf
		for move in ordered:
			raise_if_cancelled(ctx.cancel_event, ctx.deadline)
			undo = board.make_move(move)
			try:
				score = _alphabeta(board, depth - 1, alpha, beta, ctx, ply + 1)
			finally:
				board.unmake_move(undo)
			if score < value:
				value = score
				best = move
			if ctx.options.use_alpha_beta:
				beta = min(beta, value)
				if alpha >= beta:
					_register_killer_move(ctx, ply, move)
					break

	if ctx.table is not None:
		ctx.table.store(key, depth, value, alpha_orig, beta_orig, best)

	return value


def _order_moves(
	moves: Sequence[Move],
	board: Board,
	ctx: _SearchContext,
	tt_move: Optional[Move],
	ply: int,
) -> List[Move]:
	if not ctx.options.use_move_ordering:
		return list(moves)
	killers = ctx.killer_moves.get(ply, ())
	# sorted() is stable, so equal scores keep generation order.
	return sorted(
		moves,
		key=lambda move: _move_sort_score(board, move, tt_move, killers, ctx.options.weights),
		reverse=True,
	)


def _move_sort_score(
	board: Board,
	move: Move,
	tt_move: Optional[Move],
	killers: Iterable[Move],
	weights: EvaluationWeights,
) -> int:
	score = 0
	if move == tt_move:
		score += 100_000
	for row, col in move.captures:
		captured = board.board[row][col]
		score += weights.king if captured is not None and captured.is_king else weights.man
	if _would_promote(board, move):
		score += weights.king - weights.man
	if move in killers:
		score += 50
	return score


def _would_promote(board: Board, move: Move) -> bool:
	piece = board.board[move.start[0]][move.start[1]]
	if piece is None or piece.is_king:
		return False
	return move.end[0] == piece.side.promotion_row


def _register_killer_move(ctx: _SearchContext, ply: int, move: Move) -> None:
	if not ctx.options.use_move_ordering or move.is_capture:
		return
	moves = ctx.killer_moves[ply]
	if move in moves:
		return
	moves.append(move)
	if len(moves) > 2:
		moves.pop(0)

from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import Event
from typing import Optional

from .board import Board
from .errors import IllegalMove, InvalidMove
from .move import Move
from .pieces import Side
from .player import PlayerController

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GameState:
    """One turn of a game. Never mutated: ``apply_move`` returns the next one."""

    board: Board
    side_to_move: Side
    terminal: bool = False
    winner: Optional[Side] = None
    ply: int = 0

    @classmethod
    def initial(cls) -> "GameState":
        return cls.from_board(Board())

    @classmethod
    def from_board(cls, board: Board, *, ply: int = 0) -> "GameState":
        winner = board.is_game_over()
        return cls(
            board=board,
            side_to_move=board.turn,
            terminal=winner is not None,
            winner=winner,
            ply=ply,
        )

    def legal_moves(self) -> list[Move]:
        if self.terminal:
            return []
        return self.board.legal_moves(self.side_to_move)


def apply_move(state: GameState, move: Move) -> GameState:
    """Play ``move`` for the side to move and return the resulting state.

    Raises ``IllegalMove`` when the move is not one of the legal moves of the
    position; ``state`` is never modified.
    """
    if state.terminal:
        raise IllegalMove("The game is over.")

    legal = state.legal_moves()
    if move not in legal:
        reason = _rejection_reason(state, move, legal)
        logger.debug("Rejected %s: %s", move, reason)
        raise IllegalMove(reason)

    try:
        board = state.board.apply(move, state.side_to_move)
    except InvalidMove as exc:
        raise IllegalMove(str(exc)) from exc

    next_state = GameState.from_board(board, ply=state.ply + 1)
    logger.debug("%s played %s", state.side_to_move.value, move)
    if next_state.terminal:
        logger.info("Game over after %d plies, %s wins", next_state.ply, next_state.winner.value)
    return next_state


def _rejection_reason(state: GameState, move: Move, legal: list[Move]) -> str:
    board = state.board
    if board._is_within_bounds(*move.start):
        piece = board.getPiece(*move.start)
        if piece is not None and piece.side != state.side_to_move:
            return f"Piece at {move.start} belongs to the opponent."
    if not move.is_capture and any(candidate.is_capture for candidate in legal):
        return "A capture is available and must be played."
    return f"Move {move} is not legal for {state.side_to_move.value}."


@dataclass
class MoveRecord:
    state_before: GameState
    move: Move


class Game:
    """Mutable session around a sequence of immutable game states."""

    def __init__(self, state: Optional[GameState] = None) -> None:
        self.state = state if state is not None else GameState.initial()
        self.move_history: list[MoveRecord] = []
        self.players: dict[Side, PlayerController] = {
            Side.LIGHT: PlayerController.human("Light Human"),
            Side.DARK: PlayerController.human("Dark Human"),
        }

    @property
    def board(self) -> Board:
        return self.state.board

    @property
    def current_player(self) -> Side:
        return self.state.side_to_move

    @property
    def winner(self) -> Optional[Side]:
        return self.state.winner

    def reset(self) -> None:
        self.load(GameState.initial())

    def load(self, state: GameState) -> None:
        self.state = state
        self.move_history.clear()

    def getValidMoves(self) -> list[Move]:
        return self.state.legal_moves()

    def setPlayer(self, side: Side, controller: PlayerController) -> None:
        self.players[side] = controller

    def getPlayer(self, side: Side) -> PlayerController:
        return self.players[side]

    def currentController(self) -> PlayerController:
        return self.getPlayer(self.current_player)

    def isAITurn(self) -> bool:
        return not self.currentController().is_human

    def requestAIMove(self, cancel_event: Optional[Event] = None) -> Optional[Move]:
        controller = self.currentController()
        if controller.is_human or self.state.terminal:
            return None
        move = controller.select_move(self.state, cancel_event)
        if move is None:
            return None
        self.makeMove(move)
        return move

    def makeMove(self, move: Move) -> GameState:
        before = self.state
        self.state = apply_move(before, move)
        self.move_history.append(MoveRecord(state_before=before, move=move))
        return self.state

    def undoMove(self) -> Optional[Move]:
        if not self.move_history:
            logger.debug("No moves to undo.")
            return None
        record = self.move_history.pop()
        self.state = record.state_before
        return record.move

    def lastMove(self) -> Optional[Move]:
        return self.move_history[-1].move if self.move_history else None

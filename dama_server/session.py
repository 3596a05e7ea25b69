from __future__ import annotations

import logging
from copy import deepcopy
from threading import Event, Lock
from typing import Any, Iterable, Optional

from dama_ai.agents import create_minimax_controller, create_simple_minimax_controller
from dama_ai.config import SearchSettings
from dama_ai.evaluation import evaluate_board
from dama_ai.worker import SearchWorker
from dama_core.game import Game
from dama_core.move import Move
from dama_core.pieces import Side
from dama_core.player import PlayerController
from dama_core.snapshot import dump_state, load_state

from .config import ServerSettings
from .schemas import AIMoveRequest, ConfigRequest, MoveRequest
from .serializers import serialize_game, serialize_move, serialize_search_result

logger = logging.getLogger(__name__)


def _default_player_settings(search: SearchSettings) -> dict[str, Any]:
    return {
        "type": "human",
        "depth": search.depth,
        "alphaBeta": search.use_alpha_beta,
        "transposition": search.use_transposition,
        "moveOrdering": search.use_move_ordering,
        "iterativeDeepening": search.use_iterative_deepening,
        "timeLimitMs": search.time_limit_ms,
    }


def _search_settings(settings: dict[str, Any], base: SearchSettings) -> SearchSettings:
    return base.model_copy(
        update={
            "depth": int(settings.get("depth") or base.depth),
            "use_alpha_beta": settings.get("alphaBeta", base.use_alpha_beta),
            "use_transposition": settings.get("transposition", base.use_transposition),
            "use_move_ordering": settings.get("moveOrdering", base.use_move_ordering),
            "use_iterative_deepening": settings.get("iterativeDeepening", base.use_iterative_deepening),
            "time_limit_ms": settings.get("timeLimitMs", base.time_limit_ms),
        }
    )


def _side_from_label(label: str) -> Side:
    try:
        return Side(label.lower())
    except ValueError as exc:
        raise ValueError(f"Unsupported side '{label}'.") from exc


class GameSession:
    """Thread-safe orchestrator around a single Game instance."""

    def __init__(self, settings: Optional[ServerSettings] = None, worker: Optional[SearchWorker] = None) -> None:
        self.lock = Lock()
        self.settings = settings or ServerSettings()
        self.game = Game()
        self.worker = worker or SearchWorker()
        self._cancel_event: Optional[Event] = None
        self.player_settings: dict[Side, dict[str, Any]] = {
            side: _default_player_settings(self.settings.search) for side in Side
        }
        self._apply_player_controllers()

    # public API ---------------------------------------------------------

    def serialize(self) -> dict[str, Any]:
        with self.lock:
            return self._serialize_locked()

    def reset(self) -> dict[str, Any]:
        with self.lock:
            self.game.reset()
            self._apply_player_controllers()
            return self._serialize_locked()

    def configure_players(self, payload: ConfigRequest) -> dict[str, Any]:
        with self.lock:
            config = payload.model_dump(exclude_unset=True)
            for side_label, overrides in config.items():
                if overrides is None:
                    continue
                side = _side_from_label(side_label)
                merged = deepcopy(self.player_settings[side])
                for key, value in overrides.items():
                    if value is not None:
                        merged[key] = value
                controller = self._controller_from_settings(side, merged)
                self.player_settings[side] = merged
                self.game.setPlayer(side, controller)
            return self._serialize_locked()

    def legal_moves(self, row: Optional[int] = None, col: Optional[int] = None) -> dict[str, Any]:
        with self.lock:
            moves = self.game.getValidMoves()
            if row is not None and col is not None:
                moves = [move for move in moves if move.start == (row, col)]
            return {
                "turn": self.game.current_player.value,
                "moves": [serialize_move(move) for move in moves],
            }

    def make_move(self, payload: MoveRequest) -> dict[str, Any]:
        with self.lock:
            start = (payload.start.row, payload.start.col)
            steps = tuple((node.row, node.col) for node in payload.steps)
            move = self._locate_matching_move(start, steps)
            if move is None:
                # Not a legal path; let the rule engine explain why.
                move = Move(start=start, steps=steps)
            self.game.makeMove(move)
            return self._serialize_locked()

    def evaluate(self, side_label: Optional[str] = None) -> dict[str, Any]:
        with self.lock:
            side = self.game.current_player if side_label is None else _side_from_label(side_label)
            score = evaluate_board(self.game.board, side, self.settings.search.weights)
            return {"side": side.value, "score": score}

    def suggest_move(self, payload: AIMoveRequest) -> dict[str, Any]:
        with self.lock:
            side = self._requested_side(payload)
            settings = _search_settings(self._request_overrides(side, payload), self.settings.search)
            cancel_event = self._begin_search()
            try:
                result = self.worker.run(self.game.board, side, settings, cancel_event)
            finally:
                self._cancel_event = None
            return serialize_search_result(result)

    def run_ai_move(self, payload: AIMoveRequest) -> dict[str, Any]:
        with self.lock:
            if self.game.state.terminal:
                raise RuntimeError("The game is over.")
            side = self._requested_side(payload)
            if side != self.game.current_player:
                raise ValueError("AI move requested for a side that is not on turn.")
            overrides = self._request_overrides(side, payload)
            overrides["type"] = payload.algorithm
            controller = self._controller_from_settings(side, overrides)
            previous = self.game.getPlayer(side)
            self.game.setPlayer(side, controller)
            if payload.persist:
                self.player_settings[side] = overrides

            cancel_event = self._begin_search()
            try:
                move = self.game.requestAIMove(cancel_event)
            finally:
                self._cancel_event = None
                if not payload.persist:
                    self.game.setPlayer(side, previous)
            if move is None:
                raise RuntimeError("AI could not choose a move.")
            logger.info("%s played %s for %s", controller.name, move, side.value)
            return self._serialize_locked()

    def cancel_search(self) -> dict[str, bool]:
        # Lock-free: the running search holds the lock.
        cancel_event = self._cancel_event
        if cancel_event is None:
            return {"cancelled": False}
        cancel_event.set()
        return {"cancelled": True}

    def undo_move(self) -> dict[str, Any]:
        with self.lock:
            if self.game.undoMove() is None:
                raise ValueError("No moves to undo.")
            return self._serialize_locked()

    def export_snapshot(self) -> dict[str, Any]:
        with self.lock:
            return dump_state(self.game.state)

    def import_snapshot(self, data: dict[str, Any]) -> dict[str, Any]:
        with self.lock:
            state = load_state(data)
            self.game.load(state)
            logger.info("Loaded saved game, %s to move", state.side_to_move.value)
            return self._serialize_locked()

    def close(self) -> None:
        self.worker.shutdown(wait=False)

    # helpers ------------------------------------------------------------

    def _serialize_locked(self) -> dict[str, Any]:
        return serialize_game(self.game, self.player_settings)

    def _requested_side(self, payload: AIMoveRequest) -> Side:
        if payload.side is None:
            return self.game.current_player
        return _side_from_label(payload.side)

    def _request_overrides(self, side: Side, payload: AIMoveRequest) -> dict[str, Any]:
        overrides = deepcopy(self.player_settings[side])
        if payload.depth is not None:
            overrides["depth"] = payload.depth
        if payload.timeLimitMs is not None:
            overrides["timeLimitMs"] = payload.timeLimitMs
            overrides["iterativeDeepening"] = True
        return overrides

    def _begin_search(self) -> Event:
        self._cancel_event = Event()
        return self._cancel_event

    def _locate_matching_move(self, start: tuple[int, int], steps: Iterable[tuple[int, int]]) -> Optional[Move]:
        candidate = tuple(steps)
        for move in self.game.getValidMoves():
            if move.start == start and move.steps == candidate:
                return move
        return None

    def _apply_player_controllers(self) -> None:
        for side in Side:
            controller = self._controller_from_settings(side, self.player_settings[side])
            self.game.setPlayer(side, controller)

    def _controller_from_settings(self, side: Side, settings: dict[str, Any]) -> PlayerController:
        label = side.value.capitalize()
        player_type = settings.get("type", "human")
        if player_type == "human":
            return PlayerController.human(f"{label} Human")
        if player_type == "minimax":
            search = _search_settings(settings, self.settings.search)
            return create_minimax_controller(label, search, worker=self.worker)
        if player_type == "minimax_simple":
            return create_simple_minimax_controller(label, depth=int(settings.get("depth") or 3))
        raise ValueError(f"Player type '{player_type}' not implemented yet.")

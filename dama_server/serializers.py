from __future__ import annotations

from collections import Counter
from typing import Any, Optional

from dama_ai.minimax import SearchResult
from dama_core.game import Game
from dama_core.move import Move
from dama_core.pieces import Piece, Side
from dama_core.player import PlayerController


def _coord_tuple_to_dict(coord: tuple[int, int]) -> dict[str, int]:
    row, col = coord
    return {"row": row, "col": col}


def serialize_piece(piece: Piece) -> dict[str, Any]:
    return {
        "id": piece.id,
        "row": piece.row,
        "col": piece.col,
        "side": piece.side.value,
        "isKing": piece.is_king,
    }


def serialize_move(move: Move) -> dict[str, Any]:
    return {
        "start": _coord_tuple_to_dict(move.start),
        "end": _coord_tuple_to_dict(move.end),
        "steps": [_coord_tuple_to_dict(step) for step in move.steps],
        "captures": [_coord_tuple_to_dict(capture) for capture in move.captures],
        "isCapture": move.is_capture,
    }


def serialize_optional_move(move: Optional[Move]) -> Optional[dict[str, Any]]:
    return serialize_move(move) if move is not None else None


def serialize_controller(controller: PlayerController) -> dict[str, str]:
    return {"kind": controller.kind.value, "name": controller.name}


def serialize_search_result(result: SearchResult) -> dict[str, Any]:
    return {
        "move": serialize_optional_move(result.move),
        "score": result.score,
        "depth": result.depth,
        "nodes": result.nodes,
        "cancelled": result.cancelled,
    }


def serialize_game(game: Game, player_settings: dict[Side, dict[str, Any]]) -> dict[str, Any]:
    pieces = [serialize_piece(piece) for piece in game.board.getAllPieces()]
    total_counts = Counter(piece["side"] for piece in pieces)
    king_counts = Counter(piece["side"] for piece in pieces if piece["isKing"])

    legal = game.getValidMoves()
    capture_required = any(move.is_capture for move in legal)

    return {
        "turn": game.current_player.value,
        "terminal": game.state.terminal,
        "winner": game.winner.value if game.winner else None,
        "pieces": pieces,
        "pieceCounts": {
            side.value: {
                "total": total_counts.get(side.value, 0),
                "kings": king_counts.get(side.value, 0),
            }
            for side in Side
        },
        "mandatoryCapture": capture_required,
        "moveCount": len(game.move_history),
        "canUndo": bool(game.move_history),
        "lastMove": serialize_optional_move(game.lastMove()),
        "players": {side.value: serialize_controller(game.getPlayer(side)) for side in Side},
        "playerConfig": {side.value: player_settings[side].copy() for side in Side},
    }

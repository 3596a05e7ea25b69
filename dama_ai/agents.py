from __future__ import annotations

import logging
from threading import Event
from typing import TYPE_CHECKING, Optional

from dama_core.game import GameState
from dama_core.player import PlayerController, PlayerKind

from .config import SearchSettings
from .minimax import TranspositionTable, select_move as minimax_select
from .simple_minimax import select_move as simple_minimax_select

if TYPE_CHECKING:
    from .worker import SearchWorker

__all__ = ["create_minimax_controller", "create_simple_minimax_controller"]

logger = logging.getLogger(__name__)


def create_minimax_controller(
    name: str,
    settings: Optional[SearchSettings] = None,
    worker: Optional["SearchWorker"] = None,
) -> PlayerController:
    """Minimax player; with a ``worker`` the search runs on the worker's thread."""
    settings = settings or SearchSettings()

    if worker is not None:
        def _policy(state: GameState, cancel_event: Optional[Event] = None):
            if state.terminal:
                return None
            result = worker.run(state.board, state.side_to_move, settings, cancel_event)
            logger.debug(
                "%s searched depth %d (%d nodes, cancelled=%s)",
                name,
                result.depth,
                result.nodes,
                result.cancelled,
            )
            return result.move
    else:
        # One table per player, reused across its moves.
        table = TranspositionTable(settings.tt_max_entries) if settings.use_transposition else None

        def _policy(state: GameState, cancel_event: Optional[Event] = None):
            return minimax_select(
                state,
                depth=settings.depth,
                cancel_event=cancel_event,
                table=table,
                **settings.as_options(),
            )

    flags = []
    if settings.use_alpha_beta:
        flags.append("AB")
    if settings.use_transposition:
        flags.append("TT")
    if settings.use_move_ordering:
        flags.append("MO")
    if settings.use_iterative_deepening:
        flags.append("ID")
    suffix = f" (d={settings.depth}{', ' + '/'.join(flags) if flags else ''})"

    return PlayerController(
        kind=PlayerKind.MINIMAX,
        name=f"{name} Minimax{suffix}",
        policy=_policy,
    )


def create_simple_minimax_controller(name: str, depth: int = 3) -> PlayerController:
    depth = max(1, depth)

    def _policy(state: GameState, cancel_event: Optional[Event] = None):
        return simple_minimax_select(state, depth=depth)

    return PlayerController(
        kind=PlayerKind.MINIMAX_SIMPLE,
        name=f"{name} Minimax (baseline d={depth})",
        policy=_policy,
    )

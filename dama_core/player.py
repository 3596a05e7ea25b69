from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from threading import Event
from typing import Callable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .game import GameState
    from .move import Move

MovePolicy = Callable[["GameState", Optional[Event]], Optional["Move"]]


class PlayerKind(str, Enum):
    HUMAN = "human"
    MINIMAX = "minimax"
    MINIMAX_SIMPLE = "minimax_simple"


@dataclass
class PlayerController:
    kind: PlayerKind
    name: str
    policy: Optional[MovePolicy] = None

    @property
    def is_human(self) -> bool:
        return self.policy is None or self.kind == PlayerKind.HUMAN

    def select_move(self, state: "GameState", cancel_event: Optional[Event] = None) -> Optional["Move"]:
        if self.policy is None:
            return None
        return self.policy(state, cancel_event)

    @classmethod
    def human(cls, name: str) -> "PlayerController":
        return cls(kind=PlayerKind.HUMAN, name=name)

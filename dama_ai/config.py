"""
Search tunables as pydantic settings, overridable from the environment.
"""
from __future__ import annotations

import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from .evaluation import DEFAULT_WEIGHTS, EvaluationWeights

DEFAULT_TT_ENTRIES = 500_000


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class SearchSettings(BaseModel):
    """Minimax configuration for one side or one request."""

    depth: int = Field(default=4, ge=1, le=12, description="Search depth in plies")
    use_alpha_beta: bool = Field(default=True, description="Prune with alpha-beta bounds")
    use_transposition: bool = Field(default=True, description="Reuse results through the transposition table")
    use_move_ordering: bool = Field(default=True, description="Search captures, promotions and killers first")
    use_iterative_deepening: bool = Field(default=False, description="Search depths 1..depth in turn")
    time_limit_ms: Optional[int] = Field(default=None, ge=1, description="Budget, honoured with iterative deepening")
    tt_max_entries: int = Field(default=DEFAULT_TT_ENTRIES, ge=1_000, description="Transposition table capacity")
    weights: EvaluationWeights = Field(default=DEFAULT_WEIGHTS)

    @field_validator("depth", "tt_max_entries", mode="before")
    @classmethod
    def _coerce_int(cls, v):
        return int(v)

    @classmethod
    def from_env(cls) -> "SearchSettings":
        time_limit = os.getenv("DAMA_TIME_LIMIT_MS")
        return cls(
            depth=int(os.getenv("DAMA_SEARCH_DEPTH", "4")),
            use_iterative_deepening=_env_flag("DAMA_ITERATIVE_DEEPENING", False),
            use_transposition=_env_flag("DAMA_TRANSPOSITION", True),
            time_limit_ms=int(time_limit) if time_limit else None,
        )

    def as_options(self) -> Dict[str, Any]:
        """Keyword arguments accepted by ``dama_ai.minimax.search`` (besides depth)."""
        return {
            "use_alpha_beta": self.use_alpha_beta,
            "use_transposition": self.use_transposition,
            "use_move_ordering": self.use_move_ordering,
            "use_iterative_deepening": self.use_iterative_deepening,
            "time_limit_ms": self.time_limit_ms,
            "weights": self.weights,
        }

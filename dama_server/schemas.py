from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field


class CoordinateModel(BaseModel):
    row: int = Field(..., ge=0, le=7)
    col: int = Field(..., ge=0, le=7)


class MoveRequest(BaseModel):
    start: CoordinateModel
    steps: list[CoordinateModel] = Field(
        ..., min_length=1, description="Ordered path after the starting square."
    )


class PlayerConfigPayload(BaseModel):
    type: Optional[Literal["human", "minimax", "minimax_simple"]] = None
    depth: Optional[int] = Field(default=None, ge=1, le=12)
    alphaBeta: Optional[bool] = None
    transposition: Optional[bool] = None
    moveOrdering: Optional[bool] = None
    iterativeDeepening: Optional[bool] = None
    timeLimitMs: Optional[int] = Field(default=None, ge=1)


class ConfigRequest(BaseModel):
    light: Optional[PlayerConfigPayload] = None
    dark: Optional[PlayerConfigPayload] = None


class AIMoveRequest(BaseModel):
    side: Optional[Literal["light", "dark"]] = None
    algorithm: Literal["minimax", "minimax_simple"] = "minimax"
    depth: Optional[int] = Field(default=None, ge=1, le=12)
    timeLimitMs: Optional[int] = Field(default=None, ge=1)
    persist: bool = False

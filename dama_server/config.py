"""
Server configuration and logging setup.
"""
from __future__ import annotations

import logging
import os

from pydantic import BaseModel, Field, field_validator

from dama_ai.config import SearchSettings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


class ServerSettings(BaseModel):
    host: str = Field(default="0.0.0.0", description="Bind host for the API server")
    port: int = Field(default=8000, ge=1, le=65535, description="Port for the API server")
    log_level: str = Field(default="info", description="Log level for the app and uvicorn")
    search: SearchSettings = Field(default_factory=SearchSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_level(cls, v):
        level = str(v).lower()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level '{v}'.")
        return level

    @classmethod
    def from_env(cls) -> "ServerSettings":
        return cls(
            host=os.getenv("DAMA_HOST", "0.0.0.0"),
            port=int(os.getenv("DAMA_PORT", "8000")),
            log_level=os.getenv("DAMA_LOG_LEVEL", "info"),
            search=SearchSettings.from_env(),
        )


def setup_logging(level: str = "info") -> None:
    """Configure root logging once."""
    if getattr(setup_logging, "_configured", False):
        return
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    setup_logging._configured = True  # type: ignore[attr-defined]

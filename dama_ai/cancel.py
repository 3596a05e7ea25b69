from __future__ import annotations

import time
from threading import Event
from typing import Optional

from dama_core.errors import DamaError


class SearchCancelled(DamaError):
    def __init__(self, message: str = "Search cancelled.") -> None:
        super().__init__(message)
        self.message = message


class SearchTimeout(SearchCancelled):
    def __init__(self) -> None:
        super().__init__("Search time budget exhausted.")


def raise_if_cancelled(cancel_event: Optional[Event], deadline: Optional[float] = None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise SearchCancelled()
    if deadline is not None and time.perf_counter() >= deadline:
        raise SearchTimeout()

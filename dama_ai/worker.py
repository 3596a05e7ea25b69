from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from threading import Event, Lock
from typing import Any, Dict, Optional

from dama_core.board import Board, BoardState
from dama_core.pieces import Side

from .config import SearchSettings
from .minimax import SearchResult, TranspositionTable, search

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchRequest:
    """Everything a worker needs; the board travels as an immutable snapshot."""

    state: BoardState
    side: Side
    depth: int
    options: Dict[str, Any] = field(default_factory=dict)
    tt_max_entries: Optional[int] = None


class SearchJob:
    def __init__(self, request: SearchRequest, future: "Future[SearchResult]", cancel_event: Event) -> None:
        self.request = request
        self._future = future
        self._cancel_event = cancel_event

    def cancel(self) -> None:
        """Ask the search to stop; it still resolves with its best move so far."""
        self._cancel_event.set()

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_event.is_set()

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> SearchResult:
        return self._future.result(timeout)


class SearchWorker:
    """Runs searches off the caller's thread.

    Requests carry a board snapshot, so the authoritative game state is never
    shared with the search.
    """

    def __init__(self, max_workers: int = 1) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="dama-search")
        self._jobs: set[SearchJob] = set()
        self._lock = Lock()

    def submit(self, board: Board, side: Side, settings: Optional[SearchSettings] = None) -> SearchJob:
        settings = settings or SearchSettings()
        request = SearchRequest(
            state=board.to_state(),
            side=side,
            depth=settings.depth,
            options=settings.as_options(),
            tt_max_entries=settings.tt_max_entries if settings.use_transposition else None,
        )
        return self.submit_request(request)

    def submit_request(self, request: SearchRequest) -> SearchJob:
        cancel_event = Event()
        future = self._executor.submit(_run_request, request, cancel_event)
        job = SearchJob(request, future, cancel_event)
        with self._lock:
            self._jobs.add(job)
        future.add_done_callback(lambda _: self._forget(job))
        logger.debug("Queued %s search at depth %d", request.side.value, request.depth)
        return job

    def run(
        self,
        board: Board,
        side: Side,
        settings: Optional[SearchSettings] = None,
        cancel_event: Optional[Event] = None,
        poll_interval: float = 0.05,
    ) -> SearchResult:
        """Submit a search and block until it resolves.

        Setting ``cancel_event`` stops the job; the result then carries the
        best move found so far.
        """
        job = self.submit(board, side, settings)
        while True:
            try:
                return job.result(timeout=poll_interval)
            except FutureTimeout:
                if cancel_event is not None and cancel_event.is_set():
                    job.cancel()

    def cancel_all(self) -> None:
        with self._lock:
            jobs = list(self._jobs)
        for job in jobs:
            job.cancel()

    def shutdown(self, wait: bool = True) -> None:
        self.cancel_all()
        self._executor.shutdown(wait=wait, cancel_futures=True)

    def _forget(self, job: SearchJob) -> None:
        with self._lock:
            self._jobs.discard(job)

    def __enter__(self) -> "SearchWorker":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()


def _run_request(request: SearchRequest, cancel_event: Event) -> SearchResult:
    board = Board.from_state(request.state)
    table = TranspositionTable(request.tt_max_entries) if request.tt_max_entries else None
    return search(
        board,
        request.side,
        request.depth,
        cancel_event=cancel_event,
        table=table,
        **request.options,
    )

from __future__ import annotations

import sys
import time
import unittest
from pathlib import Path
from threading import Event


REPO_DIR = Path(__file__).resolve().parents[1]
if str(REPO_DIR) not in sys.path:
    sys.path.insert(0, str(REPO_DIR))


from dama_ai.agents import create_minimax_controller  # noqa: E402
from dama_ai.cancel import SearchCancelled, SearchTimeout, raise_if_cancelled  # noqa: E402
from dama_ai.config import SearchSettings  # noqa: E402
from dama_ai.minimax import TranspositionTable, search  # noqa: E402
from dama_ai.worker import SearchWorker  # noqa: E402
from dama_core.board import Board  # noqa: E402
from dama_core.game import GameState  # noqa: E402
from dama_core.pieces import Side  # noqa: E402
from dama_core.player import PlayerKind  # noqa: E402


class CancelPrimitiveTests(unittest.TestCase):
    def test_nothing_raised_without_signal(self) -> None:
        raise_if_cancelled(None)
        raise_if_cancelled(Event(), deadline=time.perf_counter() + 60)

    def test_set_event_raises(self) -> None:
        event = Event()
        event.set()
        with self.assertRaises(SearchCancelled):
            raise_if_cancelled(event)

    def test_past_deadline_raises_timeout(self) -> None:
        with self.assertRaises(SearchTimeout):
            raise_if_cancelled(None, deadline=time.perf_counter() - 1)


class SearchCancellationTests(unittest.TestCase):
    def test_cancelled_before_start_returns_no_move(self) -> None:
        event = Event()
        event.set()

        result = search(Board(), Side.LIGHT, depth=4, cancel_event=event, table=TranspositionTable())

        self.assertTrue(result.cancelled)
        self.assertIsNone(result.move)
        self.assertEqual(result.depth, 0)

    def test_time_limit_keeps_the_last_completed_depth(self) -> None:
        board = Board()
        started = time.perf_counter()
        result = search(
            board,
            Side.LIGHT,
            depth=12,
            use_iterative_deepening=True,
            time_limit_ms=1,
            table=TranspositionTable(),
        )
        elapsed = time.perf_counter() - started

        self.assertTrue(result.cancelled)
        self.assertGreaterEqual(result.depth, 1)
        self.assertLess(result.depth, 12)
        self.assertIn(result.move, board.legal_moves(Side.LIGHT))
        self.assertLess(elapsed, 10.0)

    def test_time_limit_ignored_without_iterative_deepening(self) -> None:
        result = search(Board(), Side.LIGHT, depth=2, time_limit_ms=1, table=TranspositionTable())

        self.assertFalse(result.cancelled)
        self.assertEqual(result.depth, 2)


class SearchWorkerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.worker = SearchWorker()

    def tearDown(self) -> None:
        self.worker.shutdown()

    def test_worker_matches_direct_search(self) -> None:
        settings = SearchSettings(depth=2, use_transposition=False)
        board = Board()

        job = self.worker.submit(board, Side.LIGHT, settings)
        result = job.result(timeout=30)
        direct = search(board, Side.LIGHT, 2, **settings.as_options())

        self.assertEqual(result.move, direct.move)
        self.assertEqual(result.score, direct.score)
        self.assertTrue(job.done())

    def test_worker_does_not_touch_caller_board(self) -> None:
        board = Board()
        before = board.to_state()

        self.worker.submit(board, Side.DARK, SearchSettings(depth=2)).result(timeout=30)

        self.assertEqual(board.to_state(), before)

    def test_cancel_running_search(self) -> None:
        settings = SearchSettings(depth=12, use_iterative_deepening=True)
        job = self.worker.submit(Board(), Side.LIGHT, settings)
        time.sleep(0.2)
        job.cancel()

        result = job.result(timeout=30)
        self.assertTrue(job.cancel_requested)
        self.assertTrue(result.cancelled)
        self.assertLess(result.depth, 12)
        self.assertIsNotNone(result.move)

    def test_run_forwards_cancel_event(self) -> None:
        event = Event()
        event.set()
        started = time.perf_counter()

        result = self.worker.run(
            Board(), Side.LIGHT, SearchSettings(depth=12, use_iterative_deepening=True), cancel_event=event
        )

        self.assertTrue(result.cancelled)
        self.assertLess(time.perf_counter() - started, 10.0)

    def test_run_returns_completed_result(self) -> None:
        result = self.worker.run(Board(), Side.DARK, SearchSettings(depth=2))

        self.assertFalse(result.cancelled)
        self.assertEqual(result.depth, 2)
        self.assertIn(result.move, Board().legal_moves(Side.DARK))

    def test_controller_backed_by_worker(self) -> None:
        controller = create_minimax_controller("Light", SearchSettings(depth=2), worker=self.worker)
        state = GameState.initial()

        move = controller.select_move(state)

        self.assertIn(move, state.legal_moves())
        self.assertEqual(controller.kind, PlayerKind.MINIMAX)

    def test_cancel_all(self) -> None:
        settings = SearchSettings(depth=12, use_iterative_deepening=True)
        job = self.worker.submit(Board(), Side.DARK, settings)
        time.sleep(0.1)
        self.worker.cancel_all()

        self.assertTrue(job.result(timeout=30).cancelled)


if __name__ == "__main__":
    unittest.main()

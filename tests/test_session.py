from __future__ import annotations

import sys
import threading
import time
import unittest
from contextlib import contextmanager
from pathlib import Path


REPO_DIR = Path(__file__).resolve().parents[1]
if str(REPO_DIR) not in sys.path:
    sys.path.insert(0, str(REPO_DIR))


from dama_ai.config import SearchSettings  # noqa: E402
from dama_core.errors import IllegalMove, InvalidState  # noqa: E402
from dama_core.player import PlayerController, PlayerKind  # noqa: E402
from dama_server import session as session_module  # noqa: E402
from dama_server.app import create_app  # noqa: E402
from dama_server.config import ServerSettings  # noqa: E402
from dama_server.schemas import AIMoveRequest, ConfigRequest, MoveRequest, PlayerConfigPayload  # noqa: E402


@contextmanager
def _patch_attr(obj, name: str, value):
    old = getattr(obj, name)
    setattr(obj, name, value)
    try:
        yield
    finally:
        setattr(obj, name, old)


def _move_request(start, *steps) -> MoveRequest:
    return MoveRequest(
        start={"row": start[0], "col": start[1]},
        steps=[{"row": row, "col": col} for row, col in steps],
    )


class GameSessionTests(unittest.TestCase):
    def setUp(self) -> None:
        settings = ServerSettings(search=SearchSettings(depth=2))
        self.session = session_module.GameSession(settings)

    def tearDown(self) -> None:
        self.session.close()

    def test_initial_payload(self) -> None:
        payload = self.session.serialize()

        self.assertEqual(payload["turn"], "light")
        self.assertFalse(payload["terminal"])
        self.assertIsNone(payload["winner"])
        self.assertEqual(payload["pieceCounts"]["light"], {"total": 12, "kings": 0})
        self.assertEqual(payload["pieceCounts"]["dark"], {"total": 12, "kings": 0})
        self.assertFalse(payload["canUndo"])
        self.assertEqual(payload["players"]["light"]["kind"], "human")

    def test_legal_moves_filtered_by_square(self) -> None:
        everything = self.session.legal_moves()
        single = self.session.legal_moves(5, 2)

        self.assertEqual(len(everything["moves"]), 7)
        self.assertEqual(len(single["moves"]), 2)
        self.assertTrue(all(move["start"] == {"row": 5, "col": 2} for move in single["moves"]))

    def test_make_move_and_undo(self) -> None:
        payload = self.session.make_move(_move_request((5, 2), (4, 3)))

        self.assertEqual(payload["turn"], "dark")
        self.assertEqual(payload["moveCount"], 1)
        self.assertEqual(payload["lastMove"]["end"], {"row": 4, "col": 3})

        payload = self.session.undo_move()
        self.assertEqual(payload["turn"], "light")
        self.assertEqual(payload["moveCount"], 0)

        with self.assertRaises(ValueError):
            self.session.undo_move()

    def test_illegal_move_rejected(self) -> None:
        with self.assertRaises(IllegalMove):
            self.session.make_move(_move_request((5, 2), (3, 4)))
        with self.assertRaises(IllegalMove):
            self.session.make_move(_move_request((2, 1), (3, 2)))
        self.assertEqual(self.session.serialize()["moveCount"], 0)

    def test_evaluate_initial_position(self) -> None:
        self.assertEqual(self.session.evaluate(), {"side": "light", "score": 0})
        self.assertEqual(self.session.evaluate("dark")["score"], 0)
        with self.assertRaises(ValueError):
            self.session.evaluate("blue")

    def test_suggest_move_does_not_play(self) -> None:
        result = self.session.suggest_move(AIMoveRequest(depth=1))

        self.assertIsNotNone(result["move"])
        self.assertEqual(result["depth"], 1)
        self.assertEqual(self.session.serialize()["moveCount"], 0)

    def test_run_ai_move_plays_for_side_on_turn(self) -> None:
        payload = self.session.run_ai_move(AIMoveRequest())

        self.assertEqual(payload["turn"], "dark")
        self.assertEqual(payload["moveCount"], 1)
        self.assertEqual(payload["players"]["light"]["kind"], "human")

        with self.assertRaises(ValueError):
            self.session.run_ai_move(AIMoveRequest(side="light"))

    def test_run_ai_move_with_time_limit(self) -> None:
        payload = self.session.run_ai_move(AIMoveRequest(depth=3, timeLimitMs=5_000))
        self.assertEqual(payload["moveCount"], 1)
        self.assertEqual(payload["turn"], "dark")

    def test_run_ai_move_after_game_over(self) -> None:
        grid = [[None] * 8 for _ in range(8)]
        grid[4][3] = {"side": "light", "rank": "king"}
        self.session.import_snapshot({"side_to_move": "dark", "board": grid})

        with self.assertRaises(RuntimeError):
            self.session.run_ai_move(AIMoveRequest())

    def test_snapshot_round_trip_through_session(self) -> None:
        self.session.make_move(_move_request((5, 0), (4, 1)))
        saved = self.session.export_snapshot()
        self.session.reset()

        payload = self.session.import_snapshot(saved)
        self.assertEqual(payload["turn"], "dark")
        self.assertEqual(payload["moveCount"], 0)
        self.assertTrue(any(p["row"] == 4 and p["col"] == 1 for p in payload["pieces"]))

        with self.assertRaises(InvalidState):
            self.session.import_snapshot({"side_to_move": "light", "board": []})

    def test_configure_players(self) -> None:
        payload = self.session.configure_players(
            ConfigRequest(dark=PlayerConfigPayload(type="minimax", depth=3, transposition=False))
        )

        self.assertEqual(payload["players"]["dark"]["kind"], "minimax")
        self.assertEqual(payload["players"]["light"]["kind"], "human")
        self.assertEqual(payload["playerConfig"]["dark"]["depth"], 3)
        self.assertFalse(payload["playerConfig"]["dark"]["transposition"])

    def test_configure_players_passes_search_settings(self) -> None:
        captured = {}

        def fake_create_minimax_controller(name: str, settings: SearchSettings, worker=None):
            captured["name"] = name
            captured["settings"] = settings
            captured["worker"] = worker
            return PlayerController(kind=PlayerKind.MINIMAX, name="Fake", policy=lambda state, event=None: None)

        with _patch_attr(session_module, "create_minimax_controller", fake_create_minimax_controller):
            self.session.configure_players(
                ConfigRequest(
                    light=PlayerConfigPayload(
                        type="minimax",
                        depth=5,
                        alphaBeta=False,
                        moveOrdering=False,
                        iterativeDeepening=True,
                        timeLimitMs=250,
                    )
                )
            )

        settings = captured["settings"]
        self.assertEqual(captured["name"], "Light")
        self.assertEqual(settings.depth, 5)
        self.assertFalse(settings.use_alpha_beta)
        self.assertFalse(settings.use_move_ordering)
        self.assertTrue(settings.use_iterative_deepening)
        self.assertEqual(settings.time_limit_ms, 250)
        self.assertIs(captured["worker"], self.session.worker)

    def test_run_ai_move_plays_through_the_controller(self) -> None:
        calls = []

        def policy(state, cancel_event=None):
            calls.append((state.side_to_move, cancel_event))
            return state.legal_moves()[0]

        def fake_create_minimax_controller(name: str, settings: SearchSettings, worker=None):
            return PlayerController(kind=PlayerKind.MINIMAX, name="Fake", policy=policy)

        with _patch_attr(session_module, "create_minimax_controller", fake_create_minimax_controller):
            payload = self.session.run_ai_move(AIMoveRequest(depth=3))

        self.assertEqual(len(calls), 1)
        side, cancel_event = calls[0]
        self.assertEqual(side.value, "light")
        self.assertIsNotNone(cancel_event)
        self.assertEqual(payload["moveCount"], 1)
        # Without persist the configured human player is restored.
        self.assertEqual(payload["players"]["light"]["kind"], "human")
        self.assertIsNone(self.session._cancel_event)

    def test_run_ai_move_persist_keeps_the_controller(self) -> None:
        payload = self.session.run_ai_move(AIMoveRequest(algorithm="minimax_simple", depth=1, persist=True))

        self.assertEqual(payload["moveCount"], 1)
        self.assertEqual(payload["players"]["light"]["kind"], "minimax_simple")
        self.assertEqual(payload["playerConfig"]["light"]["type"], "minimax_simple")
        self.assertEqual(payload["playerConfig"]["light"]["depth"], 1)

    def test_configure_baseline_player(self) -> None:
        payload = self.session.configure_players(
            ConfigRequest(dark=PlayerConfigPayload(type="minimax_simple", depth=2))
        )

        self.assertEqual(payload["players"]["dark"]["kind"], "minimax_simple")
        self.session.make_move(_move_request((5, 2), (4, 3)))
        self.assertTrue(self.session.game.isAITurn())
        self.assertIsNotNone(self.session.game.requestAIMove())
        self.assertEqual(self.session.serialize()["turn"], "light")

    def test_configured_minimax_player_searches_on_the_worker(self) -> None:
        self.session.configure_players(ConfigRequest(light=PlayerConfigPayload(type="minimax", depth=1)))
        submitted = []
        original_submit = self.session.worker.submit

        def recording_submit(board, side, settings=None):
            submitted.append((side, settings.depth))
            return original_submit(board, side, settings)

        with _patch_attr(self.session.worker, "submit", recording_submit):
            move = self.session.game.requestAIMove()

        self.assertIsNotNone(move)
        self.assertEqual([(side.value, depth) for side, depth in submitted], [("light", 1)])

    def test_cancel_without_search(self) -> None:
        self.assertEqual(self.session.cancel_search(), {"cancelled": False})

    def test_cancel_running_search(self) -> None:
        outcome = {}

        def run() -> None:
            outcome["payload"] = self.session.suggest_move(AIMoveRequest(depth=12, timeLimitMs=600_000))

        thread = threading.Thread(target=run)
        thread.start()
        deadline = time.time() + 10
        while self.session._cancel_event is None and time.time() < deadline:
            time.sleep(0.01)
        time.sleep(0.2)

        self.assertEqual(self.session.cancel_search(), {"cancelled": True})
        thread.join(timeout=30)

        self.assertFalse(thread.is_alive())
        self.assertTrue(outcome["payload"]["cancelled"])
        self.assertIsNotNone(outcome["payload"]["move"])


class AppRoutesTests(unittest.TestCase):
    def test_routes_registered(self) -> None:
        app = create_app(ServerSettings(log_level="warning"))
        try:
            routes = {(route.path, method) for route in app.routes for method in getattr(route, "methods", ())}
        finally:
            app.state.session.close()

        expected = {
            ("/health", "GET"),
            ("/board", "GET"),
            ("/legal-moves", "GET"),
            ("/move", "POST"),
            ("/evaluate", "GET"),
            ("/best-move", "POST"),
            ("/ai-move", "POST"),
            ("/ai-cancel", "POST"),
            ("/undo", "POST"),
            ("/reset", "POST"),
            ("/snapshot", "GET"),
            ("/snapshot", "POST"),
            ("/config", "POST"),
        }
        self.assertTrue(expected.issubset(routes))


if __name__ == "__main__":
    unittest.main()

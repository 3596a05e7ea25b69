from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from dama_core.errors import DamaError

from .config import ServerSettings, setup_logging
from .schemas import AIMoveRequest, ConfigRequest, MoveRequest
from .session import GameSession


def create_app(settings: Optional[ServerSettings] = None) -> FastAPI:
    settings = settings or ServerSettings.from_env()
    setup_logging(settings.log_level)
    session = GameSession(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        session.close()

    app = FastAPI(title="Dama Engine", version="1.0.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )
    app.state.session = session

    def get_session() -> GameSession:
        return session

    @app.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/board")
    def read_board(session: GameSession = Depends(get_session)):
        return session.serialize()

    @app.get("/legal-moves")
    def read_legal_moves(
        row: Optional[int] = Query(None, ge=0, le=7),
        col: Optional[int] = Query(None, ge=0, le=7),
        session: GameSession = Depends(get_session),
    ):
        return session.legal_moves(row, col)

    @app.post("/move")
    def play_move(payload: MoveRequest, session: GameSession = Depends(get_session)):
        try:
            return session.make_move(payload)
        except (DamaError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.get("/evaluate")
    def evaluate(
        side: Optional[str] = Query(None, pattern="^(light|dark)$"),
        session: GameSession = Depends(get_session),
    ):
        return session.evaluate(side)

    @app.post("/best-move")
    def best_move(payload: Optional[AIMoveRequest] = None, session: GameSession = Depends(get_session)):
        try:
            return session.suggest_move(payload or AIMoveRequest())
        except (DamaError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.post("/ai-move")
    def ai_move(payload: Optional[AIMoveRequest] = None, session: GameSession = Depends(get_session)):
        try:
            return session.run_ai_move(payload or AIMoveRequest())
        except (DamaError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except RuntimeError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc

    @app.post("/ai-cancel")
    def ai_cancel(session: GameSession = Depends(get_session)):
        return session.cancel_search()

    @app.post("/undo")
    def undo_move(session: GameSession = Depends(get_session)):
        try:
            return session.undo_move()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.post("/reset")
    def reset_game(session: GameSession = Depends(get_session)):
        return session.reset()

    @app.get("/snapshot")
    def export_snapshot(session: GameSession = Depends(get_session)):
        return session.export_snapshot()

    @app.post("/snapshot")
    def import_snapshot(data: dict[str, Any] = Body(...), session: GameSession = Depends(get_session)):
        try:
            return session.import_snapshot(data)
        except DamaError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.post("/config")
    def configure_players(payload: ConfigRequest, session: GameSession = Depends(get_session)):
        try:
            return session.configure_players(payload)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    return app

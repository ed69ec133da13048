from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from game.logic.enums import GameErrorCode
from game.logic.exceptions import GameRuleError
from game.messaging.hub import ConnectionHub
from game.messaging.router import MessageRouter
from game.server.settings import GameServerSettings
from game.server.types import StartGameRequest
from game.server.websocket import websocket_endpoint
from game.session.registry import SessionRegistry
from game.session.results import InMemoryGameArchive, InMemoryStatsRecorder
from game.words.http_source import HttpWordSource
from game.words.source import FallbackWordSource, ResilientWordSource
from shared.build_info import APP_VERSION, GIT_COMMIT
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request
    from starlette.websockets import WebSocket

    from game.logic.settings import GameSettings
    from game.words.source import WordSource


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "version": APP_VERSION, "commit": GIT_COMMIT})


async def status(request: Request) -> JSONResponse:
    registry: SessionRegistry = request.app.state.registry
    hub: ConnectionHub = request.app.state.hub
    settings: GameServerSettings = request.app.state.settings
    return JSONResponse(
        {
            "status": "ok",
            "version": APP_VERSION,
            "commit": GIT_COMMIT,
            "active_sessions": registry.session_count,
            "connections": hub.connection_count,
            "max_sessions": settings.max_sessions,
        },
    )


async def leaderboard(request: Request) -> JSONResponse:
    stats: InMemoryStatsRecorder = request.app.state.stats
    period = request.query_params.get("period", "all-time")
    if period not in ("all-time", "weekly", "monthly"):
        return JSONResponse({"error": "Invalid period"}, status_code=400)
    entries = stats.leaderboard(period)
    return JSONResponse(
        {
            "period": period,
            "entries": [
                {
                    "rank": i + 1,
                    "participant_id": e.participant_id,
                    "score": e.score_for(period),
                    "games_played": e.games_played,
                    "games_won": e.games_won,
                    "win_rate": e.win_rate,
                    "words_guessed": e.words_guessed,
                    "perfect_rounds": e.perfect_rounds,
                }
                for i, e in enumerate(entries)
            ],
        },
    )


_MAX_REQUEST_BODY_SIZE = 4096

_CONFLICT_CODES = {GameErrorCode.ALREADY_IN_PROGRESS}


def _game_settings_for(request: StartGameRequest, defaults: GameSettings) -> GameSettings:
    if request.rules is None:
        return defaults
    overrides = request.rules.model_dump(exclude_none=True)
    return defaults.model_validate({**defaults.model_dump(), **overrides})


async def start_game(request: Request) -> JSONResponse:
    registry: SessionRegistry = request.app.state.registry
    settings: GameServerSettings = request.app.state.settings

    try:
        raw_body = await request.body()
        if len(raw_body) > _MAX_REQUEST_BODY_SIZE:
            return JSONResponse({"error": "Request body too large"}, status_code=413)
        body = json.loads(raw_body)
        game_request = StartGameRequest(**body)
        game_settings = _game_settings_for(game_request, settings.to_game_settings())
    except (ValueError, TypeError, json.JSONDecodeError, UnicodeDecodeError, ValidationError):  # fmt: skip
        return JSONResponse({"error": "Invalid request body"}, status_code=400)

    if registry.session_count >= settings.max_sessions:
        return JSONResponse({"error": "Server at capacity"}, status_code=503)

    try:
        session_id = await registry.start_game(
            game_request.room_id,
            game_request.participant_ids,
            settings=game_settings,
            session_id=game_request.session_id,
        )
    except GameRuleError as e:
        status_code = 409 if e.code in _CONFLICT_CODES else 400
        return JSONResponse({"error": e.message, "code": e.code.value}, status_code=status_code)

    return JSONResponse(
        {"session_id": session_id, "room_id": game_request.room_id, "status": "word_selection"},
        status_code=201,
    )


def build_word_source(settings: GameServerSettings) -> WordSource:
    if not settings.use_word_apis:
        return FallbackWordSource()
    return ResilientWordSource(
        HttpWordSource(
            dictionary_url=settings.dictionary_api_url,
            random_word_url=settings.random_word_api_url,
            timeout=settings.word_api_timeout_seconds,
        ),
    )


def create_app(
    settings: GameServerSettings | None = None,
    registry: SessionRegistry | None = None,
    hub: ConnectionHub | None = None,
    word_source: WordSource | None = None,
    stats: InMemoryStatsRecorder | None = None,
    archive: InMemoryGameArchive | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = GameServerSettings()

    hub = hub or ConnectionHub()
    stats = stats or InMemoryStatsRecorder()
    archive = archive or InMemoryGameArchive()

    if registry is None:
        registry = SessionRegistry(
            sink=hub,
            word_source=word_source or build_word_source(settings),
            stats=stats,
            archive=archive,
        )

    message_router = MessageRouter(registry, hub)

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        Route("/leaderboard", leaderboard, methods=["GET"]),
        Route("/games", start_game, methods=["POST"]),
        WebSocketRoute("/ws/{session_id}", ws_endpoint),
    ]

    @asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        yield
        await registry.shutdown()

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.hub = hub
    app.state.stats = stats
    app.state.archive = archive

    logger.info("game server ready", word_apis=settings.use_word_apis)
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    _settings = GameServerSettings()
    setup_logging()
    return create_app(settings=_settings)

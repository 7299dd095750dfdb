from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from tortoise.contrib.fastapi import register_tortoise

from .config import Settings, get_settings
from .errors import GameError
from .routers import game as game_router
from .routers import rooms as rooms_router
from .routers import users as users_router
from .routers import websockets as ws_router

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.LOG_LEVEL.upper(), format=settings.LOG_FORMAT)
    # Tortoise logs every query at DEBUG.
    logging.getLogger("tortoise").setLevel(logging.WARNING)


# -----------------------------
# Error responses
# -----------------------------

async def game_error_handler(request: Request, exc: GameError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.debug("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Invalid request data"})


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal Server Error"},
    )


# -----------------------------
# FastAPI app instance
# -----------------------------

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(title="Truth or Meme Backend", debug=settings.DEBUG)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(GameError, game_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    app.include_router(users_router.router)
    app.include_router(rooms_router.router)
    app.include_router(game_router.router)
    app.include_router(ws_router.router)

    # -----------------------------
    # Database (Tortoise ORM)
    # -----------------------------

    register_tortoise(
        app,
        db_url=settings.DATABASE_URL,
        modules={"models": ["truthmeme.models"]},
        generate_schemas=settings.GENERATE_SCHEMAS,
        add_exception_handlers=True,
    )
    return app


app = create_app()

__all__ = ["app", "create_app", "configure_logging"]

from __future__ import annotations

from contextlib import asynccontextmanager
import json
import logging
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from voice_agent.api.config import get_settings
from voice_agent.api.exception_handlers import register_exception_handlers
from voice_agent.api.middleware import setup_middlewares
from voice_agent.api.routes import router
from voice_agent.api.deps import get_orchestrator

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: ARG001
    # fail fast on bad config
    logging.info(json.dumps({"event": "startup", "message": "Building turn graph..."}, ensure_ascii=False))
    orchestrator = get_orchestrator()
    logging.info(
        json.dumps(
            {"event": "startup", "message": "Turn graph ready", "graph": orchestrator.graph_name},
            ensure_ascii=False,
        )
    )
    yield


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="voice-agent",
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    if settings.allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.allowed_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    setup_middlewares(app)
    register_exception_handlers(app)
    app.include_router(router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run("voice_agent.main:app", host=settings.host, port=settings.port, log_level=settings.log_level)

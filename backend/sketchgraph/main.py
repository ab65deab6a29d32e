"""FastAPI app factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sketchgraph.config import settings

load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.sketchgraph_log_level.upper(), logging.DEBUG),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    from sketchgraph.dependencies import shutdown_worker

    shutdown_worker()


def create_app() -> FastAPI:
    app = FastAPI(
        title="SketchGraph",
        description="Semantic component extraction for hand-drawn wireframes — shapes in, UI components out",
        version="0.1.0",
        lifespan=_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Import all transform modules to trigger registration
    from sketchgraph.engine.registry import load_transforms

    load_transforms()

    from sketchgraph.api.errors import register_error_handlers
    from sketchgraph.api.router import api_router

    register_error_handlers(app)
    app.include_router(api_router)

    return app


app = create_app()

from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import router
from logging_config import configure_logging
from services.runtime import build_default_runtime


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    runtime = build_default_runtime()
    runtime.start()
    try:
        yield
    finally:
        runtime.shutdown()
        build_default_runtime.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Rainwater Hydro API",
        description="Ridge-regression model and simulated readings for a rainwater hydro-power rig.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app

app = create_app()

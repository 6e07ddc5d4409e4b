from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kitchen.api.v1.ingredients import router as ingredients_router
from kitchen.api.v1.intake import router as intake_router
from kitchen.config import Settings
from kitchen.core.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Ensure data dir exists so repos can write
    settings = Settings()
    os.makedirs(settings.data_dir, exist_ok=True)
    logger.info("Kitchen inventory API ready (data dir: %s)", settings.data_dir)
    yield

def create_app() -> FastAPI:
    settings = Settings()
    configure_logging(settings)
    app = FastAPI(title="Kitchen Inventory API", version="1.0", lifespan=lifespan)

    # CORS (narrow it down in .env via CORS_ALLOW_ORIGINS if you want)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(ingredients_router)
    app.include_router(intake_router)

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.get("/readyz")
    def readyz():
        return {"status": "ready"}

    return app

app = create_app()

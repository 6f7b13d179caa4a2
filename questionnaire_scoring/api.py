"""
Questionnaire Scoring API application.

Mounts the scoring router on a FastAPI app. On startup the
engine configuration is read from the environment, logging
is configured and the scoring tables are created.

Run with:
    python run_api.py
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from database.engine import initialize_database

from .config import ScoringEngineConfig, configure_logging
from .router import router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = ScoringEngineConfig.from_env()
    errors = config.validate()
    if errors:
        raise RuntimeError(f"Invalid scoring configuration: {errors}")

    configure_logging(config)
    initialize_database()
    logger.info(f"Scoring API ready (engine {config.engine_version})")
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="Questionnaire Scoring API",
        description="Scoring configurations, risk classification and score analytics.",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    @app.get("/")
    def root():
        return {"status": "ok", "message": "Questionnaire Scoring API is running"}

    return app


app = create_app()

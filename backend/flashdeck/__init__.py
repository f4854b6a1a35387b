import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from flashdeck.config import settings
from flashdeck.db import init_all_databases

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_all_databases(settings.data_dir)
    logger.info("Database ready in %s", settings.data_dir)
    yield


def create_app() -> FastAPI:
    application = FastAPI(
        title="Flashdeck Backend", version="0.1.0", lifespan=lifespan
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from flashdeck.routers import (
        collections_,
        health,
        progress,
        quiz,
        quiz_attempts,
        study,
    )

    application.include_router(health.router)
    application.include_router(
        collections_.router, prefix="/collections", tags=["collections"]
    )
    application.include_router(study.router, prefix="/study", tags=["study"])
    application.include_router(quiz.router, prefix="/quiz", tags=["quiz"])
    application.include_router(
        quiz_attempts.router, prefix="/quiz-attempts", tags=["quiz"]
    )
    application.include_router(
        progress.router, prefix="/progress", tags=["progress"]
    )

    return application


app = create_app()

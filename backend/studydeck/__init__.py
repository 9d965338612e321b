from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from studydeck.config import settings
from studydeck.db import init_all_databases
from studydeck.services import task_registry


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_all_databases(settings.data_dir)
    yield
    # Let pending orphan cleanups finish before the process exits
    await task_registry.drain()


def create_app() -> FastAPI:
    application = FastAPI(
        title="StudyDeck Backend", version="0.1.0", lifespan=lifespan
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from studydeck.routers import card_sets, health, study

    application.include_router(health.router)
    application.include_router(
        card_sets.router, prefix="/card-sets", tags=["card-sets"]
    )
    application.include_router(
        study.router, prefix="/study", tags=["study"]
    )

    return application


app = create_app()

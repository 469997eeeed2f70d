"""Emotion Story Trainer - FastAPI app entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from emotrain.core.config import get_settings
from emotrain.core.errors import (
    CatalogUnavailable,
    DomainError,
    InvalidSelection,
    InvalidTransition,
    MalformedScenarioData,
    NotAuthorized,
    PatientNotFound,
    PlaythroughNotFound,
    ScenarioNotFound,
)
from emotrain.db.base import Base
from emotrain.db.session import AsyncSessionLocal, engine
from emotrain.routers import api, caregiver
from emotrain.services.playthroughs import PlaythroughRegistry
from emotrain.services.seeding import seed_scenarios

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

STATUS_BY_ERROR = {
    ScenarioNotFound: 404,
    PatientNotFound: 404,
    PlaythroughNotFound: 404,
    InvalidTransition: 409,
    InvalidSelection: 400,
    MalformedScenarioData: 422,
    CatalogUnavailable: 503,
    NotAuthorized: 403,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if settings.seed_on_startup:
        async with AsyncSessionLocal() as db:
            await seed_scenarios(db, settings.catalog_path)

    logger.info("%s started", settings.app_name)
    yield


app = FastAPI(
    title=settings.app_name,
    description="Story scenarios for practising emotion recognition and healthy responses",
    lifespan=lifespan,
)
app.state.playthroughs = PlaythroughRegistry(
    idle_ttl=settings.playthrough_idle_ttl,
    restart_window=settings.playthrough_restart_window,
    maxsize=settings.playthrough_max_live,
)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    status_code = 500
    for error_type, code in STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            status_code = code
            break
    if status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    content = {"detail": exc.message}
    if isinstance(exc, MalformedScenarioData) and exc.anomalies:
        content["anomalies"] = exc.anomalies
    return JSONResponse(status_code=status_code, content=content)


app.include_router(api.router)
app.include_router(caregiver.router)


@app.get("/health")
async def health():
    return {"status": "ok"}

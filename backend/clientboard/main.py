import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clientboard.api.v1.api import api_router
from clientboard.core.config import settings
from clientboard.db.session import AsyncSessionLocal, run_migrations
from clientboard.services import app_settings as app_settings_service

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    docs_url=f"{settings.API_V1_STR}/docs",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    redoc_url=None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.API_V1_STR)


@app.on_event("startup")
async def on_startup() -> None:
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        await run_migrations()
    async with AsyncSessionLocal() as session:
        await app_settings_service.ensure_defaults(session)
    logger.info("%s started", settings.PROJECT_NAME)

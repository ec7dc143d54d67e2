import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from delivery_bot.core.config import ENV
from delivery_bot.core.database import engine
from delivery_bot.core.logging_setup import configure_logging
from delivery_bot.core.startup_checks import ensure_schema, validate_database_environment
import delivery_bot.models  # noqa: F401  (models registrados antes do create_all)
from delivery_bot.routers.chats import router as chats_router
from delivery_bot.routers.simulator import router as simulator_router
from delivery_bot.routers.webhook import router as webhook_router

configure_logging()

logger = logging.getLogger(__name__)


def _startup_tasks() -> None:
    validate_database_environment()
    ensure_schema(engine)
    logger.info("[STARTUP] delivery bot pronto env=%s", ENV)


@asynccontextmanager
async def lifespan(_: FastAPI):
    _startup_tasks()
    yield


app = FastAPI(
    title="Delivery Bot API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.include_router(webhook_router)
app.include_router(simulator_router)
app.include_router(chats_router)


@app.get("/")
def root():
    return {"status": "ok"}


@app.get("/health")
def health():
    return {"status": "ok", "env": ENV}

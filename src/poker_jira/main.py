"""FastAPI application entrypoint."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from poker_jira.config import Settings
from poker_jira.errors import EINVALID, EUNAUTHORIZED, AppError
from poker_jira.instance_store import create_instance_store
from poker_jira.jira_client import jira_client_factory
from poker_jira.responses import failure
from poker_jira.routes import router as jira_router
from poker_jira.telemetry import configure_logging, init_telemetry, shutdown_telemetry

log = structlog.get_logger()

_STATUS_BY_CODE = {EINVALID: 400, EUNAUTHORIZED: 401}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = Settings()
    configure_logging(settings.log_level)
    init_telemetry()
    app.state.settings = settings
    app.state.instance_store = create_instance_store(settings)
    app.state.jira_client_factory = jira_client_factory(settings.jira_timeout)

    await log.ainfo("service started", state_backend=settings.state_backend)
    yield

    await app.state.instance_store.aclose()
    await log.ainfo("service stopped")
    shutdown_telemetry()


app = FastAPI(title="Planning Poker Jira Instances", lifespan=lifespan)
app.include_router(jira_router)
FastAPIInstrumentor.instrument_app(app)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return failure(_STATUS_BY_CODE.get(exc.code, 500), exc)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


def run() -> None:
    """Serve the app with uvicorn using HOST/PORT/LOG_LEVEL from the environment."""
    settings = Settings()
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level)

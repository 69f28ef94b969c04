"""FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from feedhub import __version__
from feedhub.api.deps import close_deps, init_deps
from feedhub.api.routers import fetch, health, platforms
from feedhub.config import get_settings
from feedhub.errors import ConfigurationError, ValidationError

logging.basicConfig(
    level=getattr(logging, get_settings().log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_deps()
    yield
    await close_deps()


app = FastAPI(
    title="feedhub API",
    description="Social content acquisition and normalization pipeline",
    version=__version__,
    lifespan=lifespan,
)


@app.exception_handler(ValidationError)
@app.exception_handler(ConfigurationError)
async def rejected_job_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


app.include_router(health.router)
app.include_router(fetch.router, prefix="/api")
app.include_router(platforms.router, prefix="/api")

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.database import close_db, init_db
from app.core.exceptions import (
    AmbiguousTimeError,
    AvailabilityError,
    InvalidRequestError,
    SourceUnavailableError,
    StaffNotFoundError,
)
from app.schemas.scheduling import ErrorResponse

logging.basicConfig(level=settings.LOG_LEVEL)
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield
    await close_db()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)


def _error_status(exc: AvailabilityError) -> int:
    # Unknown staff is a client error, but a distinct one from a bad request
    if isinstance(exc, StaffNotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, (InvalidRequestError, AmbiguousTimeError)):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, SourceUnavailableError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(AvailabilityError)
async def availability_error_handler(request: Request, exc: AvailabilityError):
    status_code = _error_status(exc)
    log = logger.error if status_code >= 500 else logger.warning
    log(
        "Availability request failed",
        path=request.url.path,
        error=type(exc).__name__,
        detail=exc.message,
        **exc.details,
    )
    body = ErrorResponse(
        error=type(exc).__name__, detail=exc.message, details=exc.details
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.get("/health")
async def health():
    return {"status": "ok", "version": settings.VERSION}


app.include_router(api_router, prefix="/api/v1")

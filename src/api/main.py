"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from api.routers import bookmarks, data, folders, health, moves, snapshot, tags, views
from core.config import get_settings
from db.session import engine
from models.base import Base
from services.exceptions import TransportError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    if get_settings().create_tables_on_startup:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    yield

    await engine.dispose()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request and add security headers to response."""
        response = await call_next(request)
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response


app_settings = get_settings()

app = FastAPI(
    title="Auramark API",
    description="Personal bookmarks organised in folders, tags and smart views.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(DBAPIError)
@app.exception_handler(TransportError)
async def transport_exception_handler(
    _request: Request, exc: Exception,
) -> JSONResponse:
    """Database failures roll the request back and surface a generic message."""
    logger.error("Storage failure: %s", exc, exc_info=exc)
    return JSONResponse(
        status_code=503,
        content={"detail": str(TransportError())},
    )


app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(bookmarks.router)
app.include_router(folders.router)
app.include_router(tags.router)
app.include_router(views.router)
app.include_router(snapshot.router)
app.include_router(moves.router)
app.include_router(data.router)

"""FastAPI application entrypoint for DocVault."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from docvault.api.dependencies import ServiceContainer
from docvault.api.middleware.logging import LoggingMiddleware
from docvault.api.routes import documents, groups
from docvault.core.config import settings
from docvault.core.exceptions import ApplicationError, DatastoreError, StorageError


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build shared services on startup and release them on shutdown."""

    container = ServiceContainer.build(settings)
    await container.startup()
    app.state.container = container

    try:
        yield
    finally:
        await container.shutdown()


app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)

# Routers
app.include_router(documents.router, prefix="/api")
app.include_router(groups.router, prefix="/api")


@app.get("/health")
async def health() -> dict:
    return {"status": "ok", "version": settings.API_VERSION}


@app.get("/metrics")
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.exception_handler(ApplicationError)
async def handle_application_error(_: Request, exc: ApplicationError):
    """Return standardized responses for application layer exceptions."""

    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})


@app.exception_handler(StorageError)
async def handle_storage_error(_: Request, exc: StorageError):
    return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content={"detail": exc.message, "code": exc.error_code})


@app.exception_handler(DatastoreError)
async def handle_datastore_error(_: Request, exc: DatastoreError):
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": exc.message, "code": exc.error_code}
    )

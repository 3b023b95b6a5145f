"""FastAPI application."""

import asyncio
import logging
import traceback
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from espresso_gallery.auth.password import hash_password_async
from espresso_gallery.config import settings
from espresso_gallery.db import get_session, repository
from espresso_gallery.errors import AppError
from espresso_gallery.logging_config import setup_dev_logging, setup_production_logging
from espresso_gallery.media import get_artifact_store
from espresso_gallery.routes import create_api_router
from espresso_gallery.tracing import get_current_trace_id, setup_tracing
from espresso_gallery.types import Role

if settings.dev_mode:
    setup_dev_logging()
else:
    setup_production_logging()

logger = logging.getLogger(__name__)

MIN_SECRET_LENGTH = 32


async def run_migrations() -> None:
    """Run database migrations on startup."""
    from alembic.config import Config

    from alembic import command

    alembic_cfg = Config("alembic.ini")
    await asyncio.to_thread(command.upgrade, alembic_cfg, "head")
    logger.info("Database migrations completed")


async def seed_admin() -> None:
    """Create the bootstrap admin account once, if ADMIN_PASSWORD is configured."""
    if not settings.admin_password:
        return
    async with get_session() as session:
        if await repository.get_user_by_email(session, settings.admin_email):
            return
        await repository.create_user(
            session,
            email=settings.admin_email,
            password_hash=await hash_password_async(settings.admin_password),
            role=Role.ADMIN,
            username=settings.admin_username,
            display_name="Administrator",
        )
    logger.info(f"Seeded admin account {settings.admin_email}")


@asynccontextmanager
async def lifespan(_app: FastAPI):  # type: ignore[no-untyped-def]
    """Application lifespan handler."""
    logger.info("=== Server startup initiated ===")

    if not settings.session_secret:
        raise RuntimeError("SESSION_SECRET environment variable must be set")
    if len(settings.session_secret) < MIN_SECRET_LENGTH:
        raise RuntimeError(f"SESSION_SECRET must be at least {MIN_SECRET_LENGTH} characters")

    await run_migrations()
    await get_artifact_store().ensure_dirs()
    await seed_admin()

    async with get_session() as session:
        purged = await repository.cleanup_expired_sessions(session)
    if purged:
        logger.info(f"Purged {purged} expired sessions")

    logger.info("=== Server startup completed ===")
    yield
    logger.info("=== Server shutdown ===")


app = FastAPI(
    title="Espresso Gallery",
    description="Creator galleries, premium content and subscriptions",
    version="0.1.0",
    lifespan=lifespan,
)

# Initialize OpenTelemetry tracing
setup_tracing(app)

# Session cookies need credentials; a wildcard origin cannot be combined with them
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(create_api_router())

# Processed uploads are served from the public mirror
app.mount(
    settings.uploads_url_prefix,
    StaticFiles(directory=settings.public_uploads_dir, check_dir=False),
    name="uploads",
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    content: dict[str, Any] = exc.to_dict()
    if exc.status_code >= 500:
        logger.error(
            f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message} "
            f"detail={exc.detail!r} trace_id={get_current_trace_id()}"
        )
        if settings.dev_mode and exc.detail is not None:
            content["error"] = str(exc.detail)
    else:
        logger.info(
            f"{exc.status_code} {exc.code} on {request.method} {request.url.path}: {exc.message}"
        )
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = jsonable_encoder(exc.errors())
    logger.info(f"Invalid request on {request.method} {request.url.path}: {errors}")
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid request", "code": "VALIDATION_ERROR", "errors": errors},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


# Global exception handler to log all unhandled errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch all unhandled exceptions and log them with full traceback."""
    trace_id = get_current_trace_id()
    tb = traceback.format_exception(type(exc), exc, exc.__traceback__)
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}: {exc}\n"
        f"trace_id={trace_id}\n"
        f"{''.join(tb)}"
    )
    content: dict[str, Any] = {"message": "Internal Server Error", "code": "INTERNAL_ERROR"}
    if trace_id:
        content["trace_id"] = trace_id
    if settings.dev_mode:
        content["error"] = str(exc)
        content["stack"] = "".join(tb)
    return JSONResponse(status_code=500, content=content)


def main() -> None:
    """Run the server."""
    uvicorn.run(
        "espresso_gallery.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.dev_mode,
        log_config=None,
    )


if __name__ == "__main__":
    main()

"""Trust engine FastAPI application."""

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trust_engine.config import get_settings
from trust_engine.database import close_db, init_db
from trust_engine.exceptions import (
    AuthenticationRequiredError,
    AuthorizationError,
    NotFoundError,
    ReputationRecomputeError,
    TrustEngineError,
    ValidationError,
    VouchTargetIneligibleError,
)
from trust_engine.logging_config import (
    bind_actor_context,
    clear_actor_context,
    configure_logging,
    get_logger,
)
from trust_engine.redis import close_redis, init_redis
from trust_engine.services.scheduler_service import start_scheduler, stop_scheduler

logger = get_logger(__name__)

# Most specific family first
ERROR_STATUS: list[tuple[type[TrustEngineError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (AuthenticationRequiredError, status.HTTP_401_UNAUTHORIZED),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (VouchTargetIneligibleError, status.HTTP_409_CONFLICT),
    (ReputationRecomputeError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_for(exc: TrustEngineError) -> int:
    for family, code in ERROR_STATUS:
        if isinstance(exc, family):
            return code
    return status.HTTP_400_BAD_REQUEST


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: init DB + Redis + sweep on startup, cleanup on shutdown."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_format == "json")

    logger.info("starting_database_init")
    await init_db()

    await init_redis(settings.redis_url)
    logger.info("redis_connected")

    if settings.scheduler_enabled:
        await start_scheduler()

    logger.info("application_started")
    yield

    logger.info("shutting_down")
    if settings.scheduler_enabled:
        await stop_scheduler()
    await close_redis()
    await close_db()
    logger.info("shutdown_complete")


app = FastAPI(
    title="Trust Engine",
    description="Reputation, vouching, moderation and role gating for community content",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    bind_actor_context(request_id=request_id)
    try:
        response = await call_next(request)
    finally:
        clear_actor_context()
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(TrustEngineError)
async def trust_engine_error_handler(request: Request, exc: TrustEngineError):
    code = status_for(exc)
    log = logger.warning if code < 500 else logger.error
    log("request_rejected", error_type=exc.error_type, status=code, path=request.url.path)
    return JSONResponse(
        status_code=code,
        content={"error": exc.error_type, "detail": exc.message},
    )


# --- Routers ---
from trust_engine.routes.admin import router as admin_router  # noqa: E402
from trust_engine.routes.citations import router as citations_router  # noqa: E402
from trust_engine.routes.moderation import router as moderation_router  # noqa: E402
from trust_engine.routes.reports import router as reports_router  # noqa: E402
from trust_engine.routes.reputation import router as reputation_router  # noqa: E402
from trust_engine.routes.reviews import router as reviews_router  # noqa: E402
from trust_engine.routes.vouches import router as vouches_router  # noqa: E402

app.include_router(vouches_router)
app.include_router(reputation_router)
app.include_router(moderation_router)
app.include_router(citations_router)
app.include_router(reviews_router)
app.include_router(reports_router)
app.include_router(admin_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "service": "trust-engine"}

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from driver_portal.config import settings
from driver_portal.db.postgres import engine
from driver_portal.errors import AuthenticationError, PortalError
from driver_portal.models.sql_models import Base
from driver_portal.routes.driver import router as drivers_router
from driver_portal.routes.reference import router as reference_router

# readiness flags set at startup
_ready = {"postgres": False}

logger = logging.getLogger("driver_portal")
logging.basicConfig(level=logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    # ===== STARTUP =====
    try:
        Base.metadata.create_all(bind=engine)
        _ready["postgres"] = True
        logger.info("Postgres: schemas verified / created.")
    except Exception as e:
        _ready["postgres"] = False
        logger.exception("Postgres: failed to verify/create schemas: %s", e)

    yield

    # ===== SHUTDOWN =====
    engine.dispose()
    logger.info("Database engine disposed.")


async def portal_error_handler(request: Request, exc: PortalError):
    """Maps core errors to HTTP responses."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) and exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
        headers=headers,
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(title="Driver Portal API", version="1.0.0", lifespan=lifespan)

    # CORS for the portal frontend (restrict origins in production)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(PortalError, portal_error_handler)

    app.include_router(drivers_router, prefix=settings.api_prefix)
    app.include_router(reference_router, prefix=settings.api_prefix)

    @app.get("/health", tags=["Health"])
    def health():
        """Overall status and per-component readiness flags."""
        overall = "ok" if all(_ready.values()) else "degraded"
        return {"status": overall, "components": _ready, "environment": settings.environment}

    return app


app = create_app()

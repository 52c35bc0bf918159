from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from portfolio_api.api.routes import health
from portfolio_api.api.v1 import admin_submissions, contact
from portfolio_api.core.config import settings
from portfolio_api.core.errors import register_exception_handlers
from portfolio_api.core.logging import setup_logging
from portfolio_api.core.middleware import RequestIdMiddleware
from portfolio_api.core.rate_limiter import build_rate_limiter, parse_trusted_networks
from portfolio_api.core.security import require_admin
from portfolio_api.services.adapters import build_adapters
from portfolio_api.services.adapters.appwrite import create_databases
from portfolio_api.services.notification_service import NotificationService
from portfolio_api.services.submission_pipeline import build_pipeline
from portfolio_api.services.submissions_service import SubmissionsService

# Setup logging
logger = setup_logging()


# =============================================================================
# OpenAPI Tags Metadata
# =============================================================================
tags_metadata = [
    {
        "name": "contact",
        "description": "**Contact** - Public contact form submission with rate limiting, spam filtering and a mailto fallback.",
    },
    {
        "name": "admin",
        "description": "**Submissions** - Review and triage stored contact submissions. **Requires API key.**",
    },
    {
        "name": "health",
        "description": "**Health** - Liveness and dependency checks.",
    },
]


def init_services(app: FastAPI) -> None:
    """Build the long-lived collaborators and store them on app.state."""
    rate_limiter = build_rate_limiter(settings)
    adapters = build_adapters(settings)
    notifier = NotificationService(settings)

    app.state.rate_limiter = rate_limiter
    app.state.adapters = adapters
    app.state.trusted_networks = parse_trusted_networks(settings.TRUSTED_PROXIES)
    app.state.pipeline = build_pipeline(settings, rate_limiter, adapters, notifier)
    app.state.submissions_service = None
    if settings.appwrite_configured:
        app.state.submissions_service = SubmissionsService(
            create_databases(settings),
            settings.APPWRITE_DATABASE_ID,
            settings.APPWRITE_CONTACT_COLLECTION_ID,
        )

    if settings.SUBMISSION_BACKEND not in adapters:
        logger.warning(
            f"Default submission backend '{settings.SUBMISSION_BACKEND}' is not configured; "
            "requests without an explicit method will fail"
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup
    logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")
    init_services(app)

    yield

    # Shutdown
    logger.info("Shutting down...")


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description="""
## Portfolio Contact API

Receives contact form submissions from the portfolio site and stores them in
Appwrite or Firebase, or hands back a pre-filled `mailto:` link.
        """,
        openapi_tags=tags_metadata,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/api/openapi.json",
    )

    # Request ID Tracing
    app.add_middleware(RequestIdMiddleware)

    # Register global exception handlers
    register_exception_handlers(app)

    # Contact endpoints set their own CORS headers
    app.include_router(contact.router, prefix="/api", tags=["contact"])

    app.include_router(
        admin_submissions.router,
        prefix="/api/admin/submissions",
        tags=["admin"],
        dependencies=[Depends(require_admin)],
    )

    app.include_router(health.router, prefix="/api")

    return app


app = create_app()

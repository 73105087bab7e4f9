"""FastAPI application factory."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Response, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from vibe.api.routes import webhooks
from vibe.core.config import Settings, configure_logging
from vibe.core.database import setup_db_session
from vibe.services.blockchain.alchemy_notify import AlchemyNotifyClient
from vibe.services.blockchain.factory_events import make_web3_factory
from vibe.services.blockchain.webhook_registry import WebhookRegistry
from vibe.services.reconciler import NftReconciler
from vibe.uow import create_uow_factory

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Startup: configure logging, create the database session factory and the
    services used by the webhook routes, then make sure the factory contracts
    are watched by Alchemy. Webhook registration failures do not block startup.
    """
    settings = Settings()  # type: ignore[call-arg]

    configure_logging(settings)

    session_factory = setup_db_session(settings.database_url, settings.db_pool_size)
    uow_factory = create_uow_factory(session_factory)

    notify_client = (
        AlchemyNotifyClient(settings.alchemy_auth_token) if settings.alchemy_auth_token else None
    )
    webhook_registry = WebhookRegistry(
        uow_factory=uow_factory,
        notify_client=notify_client,
        domain=settings.alchemy_domain,
        factory_contracts=settings.factory_contracts,
    )

    # Store in app.state for access in routes
    app.state.session_factory = session_factory
    app.state.uow_factory = uow_factory
    app.state.reconciler = NftReconciler(
        uow_factory,
        referral_code_length=settings.referral_code_length,
        call_timeout_seconds=settings.persistence_timeout_seconds,
    )
    app.state.webhook_registry = webhook_registry
    app.state.web3_factory = make_web3_factory(settings.alchemy_api_key)

    try:
        registered = await webhook_registry.ensure_factory_webhooks()
        logger.info("startup.factory_webhooks_checked", registered=registered)
    except Exception as e:
        logger.error(
            "startup.factory_webhooks_failed",
            error=str(e),
            error_type=type(e).__name__,
            message="Factory webhook registration failed - NFT webhooks are still served",
        )

    logger.info("application.startup", db_url=settings.database_url.split("@")[-1])

    yield

    logger.info("application.shutdown")


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    settings = Settings()  # type: ignore[call-arg]

    app = FastAPI(
        title="Vibe NFT Backend API",
        description="NFT state reconciliation from Alchemy webhooks",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(webhooks.router, prefix="/v1/alchemy/webhook", tags=["webhooks"])

    @app.get("/health")
    async def health_check(response: Response):
        """Health check endpoint with database connectivity test.

        Returns:
            200: {"status": "healthy"} if database connection succeeds
            503: {"status": "unhealthy", "error": {...}} if database connection fails
        """
        try:
            async with app.state.session_factory() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()

            logger.debug("health_check.success")
            return {"status": "healthy"}

        except Exception as e:
            logger.error(
                "health_check.failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            return {
                "status": "unhealthy",
                "error": {
                    "type": type(e).__name__,
                    "message": str(e),
                },
            }

    return app


# Create app instance for uvicorn
app = create_app()

"""
Shipwatch - Main Application
============================

Webhook-driven shipment status monitor.

monday.com notifies us of board changes; carrier update texts are
classified, timed for staleness, de-duplicated and routed to Slack and,
for failed deliveries, to the customer by e-mail.

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Monitor pipeline, classifiers, router
- Domain: Issues, rules, tracker records, board configuration
- Infrastructure: monday.com, Slack, SMTP, HubSpot, LLM providers
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request

from shipwatch.alerts.application import NotificationRouter
from shipwatch.alerts.infrastructure import HubSpotContactLookup, SlackClient, SMTPMailer
from shipwatch.classification.application import build_classifier
from shipwatch.classification.interfaces import router as classification_router
from shipwatch.config import Settings, settings
from shipwatch.core import BoardAPIException, ConfigurationException
from shipwatch.infrastructure.board import MondayBoardClient
from shipwatch.infrastructure.llm import create_llm_client
from shipwatch.shared.api import CorrelationIDMiddleware, LoggingMiddleware, global_exception_handler
from shipwatch.shared.infrastructure.logging import get_logger, setup_logging
from shipwatch.tracking.application import ShipmentMonitor, create_monitor
from shipwatch.tracking.infrastructure import BoardConfigManager, SweepScheduler
from shipwatch.tracking.interfaces import debug_router, router as webhook_router

logger = get_logger(__name__)


class ServiceContainer:
    """Collaborators built at startup and torn down at shutdown."""

    def __init__(self, config: Settings):
        self.config = config
        self.config_manager: Optional[BoardConfigManager] = None
        self.board_client: Optional[MondayBoardClient] = None
        self.slack_client: Optional[SlackClient] = None
        self.scheduler: Optional[SweepScheduler] = None
        self.monitor: Optional[ShipmentMonitor] = None

    async def start(self) -> ShipmentMonitor:
        """
        STARTUP:
        1. Check mandatory credentials (fatal when missing)
        2. Load board configuration and watch it
        3. Build board, Slack, SMTP, HubSpot and LLM clients
        4. Wire the monitor
        5. Start the state sweep scheduler
        """
        config = self.config
        missing = config.missing_core_credentials()
        if missing:
            raise ConfigurationException(
                f"Missing required configuration: {', '.join(missing)}",
                details={"missing": missing}
            )

        self.config_manager = BoardConfigManager()
        self.config_manager.load(config.board_config_path)
        self.config_manager.start_watching()
        config_provider = lambda: self.config_manager.config

        self.board_client = MondayBoardClient(
            config.monday_token,
            api_url=config.monday_api_url,
            timeout_seconds=config.monday_timeout_seconds
        )
        try:
            me = await self.board_client.check_connection()
            logger.info("monday.com connection verified", extra={"account_user": me.get("name")})
        except BoardAPIException as e:
            logger.warning("monday.com connection check failed", extra={"error": e.message})

        self.slack_client = SlackClient(
            config.slack_bot_token,
            api_url=config.slack_api_url,
            timeout_seconds=config.slack_timeout_seconds
        )

        mailer = SMTPMailer(
            config.smtp_host,
            port=config.smtp_port,
            secure=config.smtp_secure,
            user=config.smtp_user,
            password=config.smtp_pass
        )

        contact_lookup = None
        if config.hubspot_api_key:
            contact_lookup = HubSpotContactLookup(
                config.hubspot_api_key,
                api_url=config.hubspot_api_url,
                timeout_seconds=config.hubspot_timeout_seconds
            )
        else:
            logger.info("HubSpot not configured, customer contact lookup disabled")

        classifier = build_classifier(create_llm_client(config), config)

        router = NotificationRouter(
            self.slack_client,
            config.slack_channel_id,
            config_provider,
            mailer=mailer,
            contact_lookup=contact_lookup,
            from_address=config.email_from,
            from_name=config.email_from_name,
            reply_to=config.email_reply_to,
            bcc=config.hubspot_bcc_address
        )

        self.monitor = create_monitor(config, self.board_client, classifier, router, config_provider)

        async def sweep_job():
            self.monitor.sweeper.sweep()

        self.scheduler = SweepScheduler(interval_seconds=config.sweep_interval_seconds)
        await self.scheduler.start(sweep_job)

        return self.monitor

    async def stop(self) -> None:
        if self.scheduler:
            await self.scheduler.stop()
        if self.config_manager:
            self.config_manager.stop_watching()
        if self.slack_client:
            await self.slack_client.close()
        if self.board_client:
            await self.board_client.close()


def create_app(monitor: Optional[ShipmentMonitor] = None, config: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    When ``monitor`` is given it is used as is and no collaborators are
    created; otherwise the lifespan builds everything from ``config``.
    """
    config = config or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        setup_logging(config.log_level, config.environment)
        logger.info("Starting Shipwatch", extra={
            "version": config.app_version,
            "environment": config.environment
        })

        app.state.settings = config
        container = None

        if monitor is not None:
            app.state.monitor = monitor
        else:
            container = ServiceContainer(config)
            app.state.monitor = await container.start()
        app.state.container = container

        logger.info("Shipwatch started", extra={"classifier": app.state.monitor.classifier.name})

        yield  # Application runs here

        logger.info("Shutting down Shipwatch")
        if container:
            await container.stop()
        logger.info("Shipwatch shutdown complete")

    app = FastAPI(
        title="Shipwatch API",
        description="""
    ## Shipment Status Monitor

    Receives monday.com board change webhooks, classifies carrier updates,
    detects stale and stuck shipments and alerts the logistics team on Slack.

    **Endpoints:**
    - `POST /monday-webhook` - Board change notifications (always acknowledged)
    - `POST /debug/classify` - Run the classifier on a text
    - `GET /debug/entities/{id}` - Show a board item's fields
    - `GET /debug/state` - Sizes of the in-process tables
    """,
        version=config.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # === Middleware ===
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CorrelationIDMiddleware)
    app.add_exception_handler(Exception, global_exception_handler)

    # === Routers ===
    app.include_router(webhook_router)
    app.include_router(classification_router)
    app.include_router(debug_router)

    @app.get("/health", tags=["Health"], responses={
        200: {
            "description": "Service is healthy",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "version": "1.0.0",
                        "environment": "development",
                        "checks": {
                            "board_config": "loaded (3 boards)",
                            "sweep_scheduler": "running",
                            "classifier": "model"
                        }
                    }
                }
            }
        }
    })
    async def health_check(request: Request):
        """Health check endpoint for load balancers and orchestrators."""
        current = request.app.state.monitor
        container = getattr(request.app.state, "container", None)
        scheduler = container.scheduler if container else None

        return {
            "status": "healthy",
            "version": config.app_version,
            "environment": config.environment,
            "checks": {
                "board_config": f"loaded ({len(current.config.boards)} boards)",
                "sweep_scheduler": "running" if scheduler and scheduler.is_running else "stopped",
                "classifier": current.classifier.name,
            }
        }

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "service": "Shipwatch",
            "version": config.app_version,
            "docs": "/docs",
            "health": "/health",
            "webhook": "POST /monday-webhook"
        }

    return app


app = create_app()


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "shipwatch.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower()
    )

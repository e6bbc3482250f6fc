"""FastAPI application for CivicTrack.

Wires the report lifecycle engine (stores, auto-assignment, guard,
notifications, audit and metrics) and exposes it over REST.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from civictrack.auth.middleware import ActorMiddleware
from civictrack.classification.classifier import Classifier, create_classifier
from civictrack.core.config import Settings
from civictrack.core.types import HealthStatus
from civictrack.directory.store import DirectoryStore
from civictrack.governance.audit import AuditLogger
from civictrack.llm.health import check_llm_health
from civictrack.metrics import LifecycleMetrics
from civictrack.notifications.dispatcher import NotificationDispatcher
from civictrack.notifications.engine import NotificationEngine
from civictrack.notifications.service import NotificationSink, StoreNotificationSink
from civictrack.notifications.store import NotificationStore
from civictrack.reports.service import ReportService
from civictrack.reports.store import ReportStore
from civictrack.web.admin_router import router as admin_router
from civictrack.web.errors import install_error_handlers
from civictrack.web.notification_router import router as notification_router
from civictrack.web.officer_router import router as officer_router
from civictrack.web.report_router import router as report_router

_UNSET: Any = object()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
    version: str = "0.1.0"


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    # Queued notification deliveries finish before the engine goes away
    await app.state.dispatcher.flush()
    db_manager = getattr(app.state, "db_manager", None)
    if db_manager is not None:
        await db_manager.close()


def create_app(
    settings: Settings | None = None,
    audit_logger: AuditLogger | None = None,
    classifier: Classifier | None = _UNSET,
    notification_sink: NotificationSink | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Uses the factory pattern so tests can create isolated app instances
    with their own stores and collaborators.

    Args:
        settings: Application settings. Defaults to Settings().
        audit_logger: Optional pre-built audit logger.
        classifier: Category classifier; built from settings when omitted,
            ``None`` disables classification.
        notification_sink: Optional sink replacing the store-backed one.

    Returns:
        A configured FastAPI instance.
    """
    if settings is None:
        settings = Settings()

    logging.getLogger("civictrack").setLevel(settings.log_level.upper())

    app = FastAPI(
        title="CivicTrack",
        description="Civic issue reporting and resolution backend",
        version="0.1.0",
        lifespan=_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(ActorMiddleware)
    install_error_handlers(app)

    # Storage: Postgres when a database URL is configured, in-memory otherwise
    if settings.db.database_url:
        from civictrack.db.engine import DatabaseManager
        from civictrack.repositories.postgres.audit import PostgresAuditRepository
        from civictrack.repositories.postgres.directory import PostgresDirectoryRepository
        from civictrack.repositories.postgres.notifications import (
            PostgresNotificationRepository,
        )
        from civictrack.repositories.postgres.reports import PostgresReportRepository

        db_manager = DatabaseManager.from_config(settings.db)
        app.state.db_manager = db_manager
        report_store = PostgresReportRepository(db_manager)
        directory = PostgresDirectoryRepository(db_manager)
        notification_store = PostgresNotificationRepository(db_manager)
        if audit_logger is None:
            audit_logger = PostgresAuditRepository(db_manager, config=settings.audit)
    else:
        report_store = ReportStore()
        directory = DirectoryStore()
        notification_store = NotificationStore()
        if audit_logger is None:
            audit_logger = AuditLogger(config=settings.audit)

    if classifier is _UNSET:
        classifier = create_classifier(settings.classifier, settings.llm)

    notification_engine = NotificationEngine(settings.notification.templates_path)
    if notification_sink is None:
        notification_sink = StoreNotificationSink(store=notification_store, engine=notification_engine)
    dispatcher = NotificationDispatcher(notification_sink, directory)
    metrics = LifecycleMetrics()

    report_service = ReportService(
        report_store,
        directory,
        classifier=classifier,
        dispatcher=dispatcher,
        audit_logger=audit_logger,
        metrics=metrics,
        config=settings.lifecycle,
    )

    # Store on app state for access in route handlers
    app.state.settings = settings
    app.state.report_store = report_store
    app.state.directory = directory
    app.state.notification_store = notification_store
    app.state.notification_engine = notification_engine
    app.state.dispatcher = dispatcher
    app.state.audit_logger = audit_logger
    app.state.classifier = classifier
    app.state.metrics = metrics
    app.state.report_service = report_service

    app.include_router(report_router)
    app.include_router(officer_router)
    app.include_router(admin_router)
    app.include_router(notification_router)

    @app.get("/api/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="healthy", service="civictrack")

    @app.get("/api/health/llm", response_model=HealthStatus)
    async def llm_health() -> HealthStatus:
        """Reachability of the LLM behind the category classifier."""
        return await check_llm_health(settings.llm)

    return app

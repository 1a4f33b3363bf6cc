from __future__ import annotations

import logging
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.activities.repository import ActivityRepository
from app.activities.router import create_activities_router
from app.activities.service import ActivityService
from app.analytics.router import create_overview_router
from app.analytics.service import AnalyticsService
from app.api.contracts import HealthResponse
from app.api.http_setup import register_exception_handlers, register_http_middleware
from app.auth.middleware import create_auth_middleware
from app.auth.router import create_auth_router
from app.auth.service import AuthService
from app.clients.repository import ClientRepository
from app.clients.router import ClientsRouter
from app.clients.service import ClientService
from app.core.config import AppConfig
from app.core.logging import setup_logging
from app.core.mongo import (
    ACTIVITIES_COLLECTION,
    CLIENTS_COLLECTION,
    COUNTERS_COLLECTION,
    SALE_ORDER_DETAILS_COLLECTION,
    SALE_ORDERS_COLLECTION,
    USERS_COLLECTION,
    connect_database,
    run_blocking,
)
from app.core.mongo_migrations import apply_mongo_migrations
from app.reporting.tokens import LabelAllocator
from app.sales.repository import SaleOrderDetailRepository, SaleOrderRepository
from app.sales.router import create_sale_order_details_router, create_sales_router
from app.sales.service import SaleOrderDetailService, SaleOrderService
from app.users.repository import UserRepository
from app.users.router import create_users_router
from app.users.service import UserService

LOGGER = logging.getLogger(__name__)


def create_app(config: AppConfig | None = None, database: Any = None) -> FastAPI:
    """Assemble the CRM API; ``database`` defaults to a live MongoDB connection."""
    if config is None:
        load_dotenv()
        config = AppConfig.from_env()
        setup_logging(config.logging.level)
    db = database if database is not None else connect_database(config.mongo)
    apply_mongo_migrations(db)

    app = FastAPI(title="RebelX CRM API", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.security.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )
    register_http_middleware(app, config=config, logger=LOGGER)
    register_exception_handlers(app, logger=LOGGER)

    users_repo = UserRepository(db[USERS_COLLECTION])
    clients_repo = ClientRepository(db[CLIENTS_COLLECTION])
    activities_repo = ActivityRepository(db[ACTIVITIES_COLLECTION])
    orders_repo = SaleOrderRepository(db[SALE_ORDERS_COLLECTION])
    details_repo = SaleOrderDetailRepository(db[SALE_ORDER_DETAILS_COLLECTION])
    labels = LabelAllocator(
        db[COUNTERS_COLLECTION], base=config.reporting.order_label_base
    )

    auth_service = AuthService(users_repo, config.auth)
    app.include_router(create_auth_router(auth_service))
    app.middleware("http")(create_auth_middleware(auth_service))

    user_service = UserService(
        repo=users_repo, run_blocking=run_blocking, logger=LOGGER
    )
    activity_service = ActivityService(
        repo=activities_repo,
        clients=clients_repo,
        users=users_repo,
        reporting=config.reporting,
        run_blocking=run_blocking,
        logger=LOGGER,
    )
    client_service = ClientService(
        repo=clients_repo,
        users=users_repo,
        activities=activity_service,
        reporting=config.reporting,
        run_blocking=run_blocking,
        logger=LOGGER,
    )
    order_service = SaleOrderService(
        repo=orders_repo,
        details=details_repo,
        clients=clients_repo,
        users=users_repo,
        labels=labels,
        reporting=config.reporting,
        run_blocking=run_blocking,
        logger=LOGGER,
    )
    detail_service = SaleOrderDetailService(
        repo=details_repo,
        orders=orders_repo,
        reporting=config.reporting,
        run_blocking=run_blocking,
        logger=LOGGER,
    )
    analytics_service = AnalyticsService(
        users=users_repo,
        clients=clients_repo,
        activities=activities_repo,
        orders=orders_repo,
        details=details_repo,
        reporting=config.reporting,
        run_blocking=run_blocking,
        logger=LOGGER,
    )

    app.include_router(create_users_router(user_service))
    app.include_router(ClientsRouter(client_service).build())
    app.include_router(create_activities_router(activity_service))
    app.include_router(create_sales_router(order_service))
    app.include_router(create_sale_order_details_router(detail_service))
    app.include_router(create_overview_router(analytics_service))

    @app.get("/api/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok")

    return app

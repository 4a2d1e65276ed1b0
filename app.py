"""
FastAPI application factory.

create_app() is the single entry point for building the production app.
configure_app() and install_services() are split out so tests can wire the
same middleware, routes and services around in-memory stores.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx
import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.email.console import ConsoleEmailProvider
from infrastructure.email.protocol import EmailProvider
from infrastructure.email.zeptomail import ZeptoMailProvider
from middleware.request_logging import RequestLoggingMiddleware
from middleware.route_guard import RouteGuardMiddleware
from repositories import MongoOtpRepository, MongoUserRepository, ensure_indexes
from repositories.protocol import OtpRepository, UserRepository
from routes.auth_routes import router as auth_router
from routes.health_routes import router as health_router
from routes.page_routes import router as page_router
from routes.session_routes import router as session_router
from services.auth_service import AuthService
from services.otp_service import OtpService
from services.session_manager import SessionManager
from services.token_codec import TokenCodec
from shared.datetime_utils import Clock, utc_now
from shared.logging import get_logger, setup_logging

log = get_logger(__name__)


def build_email_provider(settings: AppSettings, http_client: httpx.AsyncClient) -> EmailProvider:
    if settings.email.zepto_api_token:
        return ZeptoMailProvider(
            settings.email,
            http_client,
            app_url=settings.app_url,
            otp_ttl_minutes=settings.otp.otp_ttl_seconds // 60,
        )
    if settings.is_production:
        raise RuntimeError("ZEPTO_API_TOKEN must be set in production")
    log.warning("email_provider_console", reason="zepto_token_not_configured")
    return ConsoleEmailProvider()


def install_services(
    app: FastAPI,
    settings: AppSettings,
    *,
    users: UserRepository,
    otps: OtpRepository,
    email_provider: EmailProvider,
    now: Clock = utc_now,
) -> None:
    """Build the auth components around the given stores and put them on app.state."""
    codec = TokenCodec(settings.session, now)
    otp_service = OtpService(otps, users, email_provider, settings.otp, settings.email, now)

    app.state.settings = settings
    app.state.otp_service = otp_service
    app.state.session_manager = SessionManager(codec, users, settings, now)
    app.state.auth_service = AuthService(users, otp_service, settings, now)


def configure_app(app: FastAPI, settings: AppSettings) -> None:
    """Register middleware, error handlers and routers."""
    # Starlette runs the last-added middleware first: logging wraps the guard
    app.add_middleware(RouteGuardMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(session_router)
    app.include_router(page_router)


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(settings.logging)

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            profiles_sample_rate=settings.sentry.sentry_profile_sample_rate,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(
            settings.db.mongodb_uri, tz_aware=True
        )
        db = mongo_client[settings.db.db_name]
        app.state.mongo_client = mongo_client
        app.state.db = db
        await ensure_indexes(db)

        http_client = httpx.AsyncClient(timeout=5.0)
        install_services(
            app,
            settings,
            users=MongoUserRepository(db),
            otps=MongoOtpRepository(db),
            email_provider=build_email_provider(settings, http_client),
        )
        log.info("app_started", env=settings.env, db_name=settings.db.db_name)

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        await app.state.otp_service.drain()
        await http_client.aclose()
        await mongo_client.close()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )
    configure_app(app, settings)
    return app

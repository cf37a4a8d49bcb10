"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import redis.asyncio as aioredis
import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.http_client import HttpClient
from infrastructure.messaging.whatsapp import WhatsAppMessageSender
from repositories.indexes import ensure_indexes
from repositories.otp_repository import OTP_COLLECTION, MongoOTPRepository
from repositories.profile_repository import USERS_COLLECTION, MongoProfileRepository
from routes.health_routes import router as health_router
from routes.phone_auth_routes import router as phone_auth_router
from services.auth.otp_issuer import OTPIssuer
from services.auth.otp_verifier import OTPVerifier
from services.auth.phone_profile_service import PhoneProfileService
from shared.logging import get_logger, setup_logging

log = get_logger(__name__)


def build_services(app: FastAPI, settings: AppSettings, db, sender) -> None:
    """Wire repositories and auth services onto app.state."""
    otp_repo = MongoOTPRepository(db[OTP_COLLECTION])
    profile_repo = MongoProfileRepository(db[USERS_COLLECTION])

    app.state.otp_repository = otp_repo
    app.state.profile_repository = profile_repo
    app.state.otp_issuer = OTPIssuer(otp_repo, profile_repo, sender, settings.otp)
    app.state.otp_verifier = OTPVerifier(otp_repo, profile_repo, settings.otp, sender=sender)
    app.state.phone_profile_service = PhoneProfileService(otp_repo, profile_repo, settings.otp)


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging()

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
        mongo_client: AsyncMongoClient = AsyncMongoClient(settings.db.mongodb_uri)
        app.state.mongo_client = mongo_client
        app.state.db = mongo_client[settings.db.db_name]
        app.state.settings = settings

        # Redis is optional; the server only uses it for health reporting
        redis_client = None
        if settings.redis.redis_uri:
            redis_client = aioredis.from_url(
                settings.redis.redis_uri,
                encoding="utf-8",
                decode_responses=True,
            )
        app.state.redis = redis_client

        whatsapp_http = HttpClient(timeout=settings.messaging.whatsapp_timeout_seconds)
        sender = WhatsAppMessageSender(
            settings.messaging,
            whatsapp_http,
            app_url=settings.app_url,
            otp_ttl_minutes=max(1, settings.otp.otp_ttl_seconds // 60),
        )
        app.state.message_sender = sender
        build_services(app, settings, app.state.db, sender)

        try:
            await ensure_indexes(app.state.db)
        except Exception as e:
            # Serving without indexes is slower, not broken
            log.error("ensure_indexes_failed", error=str(e), error_type=type(e).__name__)

        # Expired challenges are dead weight; sweep them once per boot
        await app.state.otp_issuer.cleanup_expired()

        log.info("app_started", env=settings.env, db_name=settings.db.db_name)

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        await whatsapp_http.aclose()
        await mongo_client.close()
        if redis_client is not None:
            await redis_client.aclose()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(phone_auth_router)

    return app

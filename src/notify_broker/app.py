from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from functools import partial
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from notify_broker.api.deps import build_decoder
from notify_broker.api.ingress import dispatch_event
from notify_broker.api.v1.routers import diagnostics, health, ws
from notify_broker.application.exceptions import (
    AuthenticationError,
    InvalidOperation,
    ValidationError,
)
from notify_broker.application.ports.audit import AckRecorder
from notify_broker.config import Settings, settings
from notify_broker.infrastructure.audit.ack_recorders import (
    LoggingAckRecorder,
    RedisStreamAckRecorder,
)
from notify_broker.infrastructure.bus.redis_pubsub import RedisPubSubSubscriber
from notify_broker.services.broker import Broker

logger = logging.getLogger(__name__)


def _build_broker(cfg: Settings, ack_recorder: AckRecorder) -> Broker:
    return Broker(
        build_decoder(cfg),
        ack_recorder=ack_recorder,
        queue_capacity=cfg.DELIVERY_QUEUE_CAPACITY,
        flush_timeout=cfg.DELIVERY_FLUSH_TIMEOUT,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    cfg: Settings = app.state.settings
    broker: Broker = app.state.broker
    subscriber: RedisPubSubSubscriber | None = None

    if app.state.redis is not None:
        subscriber = RedisPubSubSubscriber(
            app.state.redis,
            cfg.REDIS_PUBSUB_CHANNEL,
            partial(dispatch_event, broker, registrar_role=cfg.REGISTRAR_ROLE),
        )

    await broker.start()
    if subscriber is not None:
        await subscriber.start()

    yield

    if subscriber is not None:
        await subscriber.stop()
    await broker.stop()
    if app.state.redis is not None:
        await app.state.redis.aclose()
        logger.info("Redis connection pool closed")


def create_app(cfg: Settings = settings) -> FastAPI:
    app = FastAPI(
        title="HealthFlow Notification Broker",
        version="0.1.0",
        lifespan=lifespan,
    )

    ack_recorder: AckRecorder
    if cfg.REDIS_ENABLED:
        app.state.redis = aioredis.from_url(cfg.REDIS_URL, decode_responses=True)
        ack_recorder = RedisStreamAckRecorder(
            app.state.redis, cfg.ACK_AUDIT_STREAM, maxlen=cfg.ACK_AUDIT_MAXLEN,
        )
        logger.info("Redis connection pool created")
    else:
        app.state.redis = None
        ack_recorder = LoggingAckRecorder()

    app.state.settings = cfg
    app.state.broker = _build_broker(cfg, ack_recorder)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(diagnostics.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthenticationError)
    async def _unauthenticated(_req: Request, exc: AuthenticationError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"detail": exc.detail})

    @app.exception_handler(InvalidOperation)
    async def _invalid_operation(_req: Request, exc: InvalidOperation) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

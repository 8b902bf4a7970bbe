from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError

from notify_broker.application.exceptions import (
    AuthenticationError,
    InvalidOperation,
    TransportFailure,
)
from notify_broker.config import settings
from notify_broker.infrastructure.ws.protocol import AckData, EntityRef, WsInbound
from notify_broker.infrastructure.ws.transport import WebSocketTransport
from notify_broker.services.broker import Broker
from notify_broker.services.connection import Connection

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

CLOSE_AUTH_FAILED = 4001


def _credential(websocket: WebSocket, token: str | None) -> str | None:
    if token:
        return token
    return websocket.headers.get("authorization")


@router.websocket("/ws/notifications")
async def ws_notifications(
    websocket: WebSocket,
    token: str | None = Query(None),
) -> None:
    broker: Broker = websocket.app.state.broker
    transport = WebSocketTransport(websocket)

    try:
        conn = await broker.connect(transport, _credential(websocket, token))
    except AuthenticationError as exc:
        logger.info("WS handshake rejected: %s", exc.detail)
        await websocket.close(code=CLOSE_AUTH_FAILED, reason="Invalid authentication token")
        return
    except Exception:
        logger.exception("WS handshake failed")
        return

    heartbeat_task = asyncio.create_task(
        _heartbeat(transport), name=f"ws-heartbeat-{conn.id}",
    )
    try:
        await _read_loop(broker, transport, websocket, conn)
    except WebSocketDisconnect as exc:
        logger.debug("WS %s disconnected (code=%s)", conn.id, exc.code)
    except TransportFailure as exc:
        logger.debug("WS %s transport failed: %s", conn.id, exc.detail)
    except Exception:
        logger.exception("WS error for %s", conn.id)
    finally:
        heartbeat_task.cancel()
        try:
            await heartbeat_task
        except asyncio.CancelledError:
            pass
        await broker.disconnect(conn.id)


async def _heartbeat(transport: WebSocketTransport) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await transport.send_control("heartbeat")
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("Heartbeat stopped", exc_info=True)


async def _read_loop(
    broker: Broker,
    transport: WebSocketTransport,
    ws: WebSocket,
    conn: Connection,
) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except PydanticValidationError:
            await transport.send_control("error", {"code": "invalid_payload"})
            continue

        if msg.type == "ping":
            await transport.send_control("pong")

        elif msg.type in ("subscribe-entity", "unsubscribe-entity"):
            await _handle_entity_request(broker, transport, conn, msg)

        elif msg.type == "ack":
            try:
                ack = AckData.model_validate(msg.data)
            except PydanticValidationError:
                await transport.send_control("error", {"code": "invalid_data", "type": msg.type})
                continue
            await broker.handle_ack(conn.id, ack.message_id)

        else:
            await transport.send_control("error", {"code": "unknown_type", "type": msg.type})


async def _handle_entity_request(
    broker: Broker,
    transport: WebSocketTransport,
    conn: Connection,
    msg: WsInbound,
) -> None:
    try:
        ref = EntityRef.model_validate(msg.data)
    except PydanticValidationError:
        await transport.send_control("error", {"code": "invalid_data", "type": msg.type})
        return

    try:
        if msg.type == "subscribe-entity":
            applied = broker.handle_subscribe(conn.id, ref.entity_type, ref.entity_id)
        else:
            applied = broker.handle_unsubscribe(conn.id, ref.entity_type, ref.entity_id)
    except InvalidOperation as exc:
        await transport.send_control(
            "error", {"code": "invalid_operation", "type": msg.type, "detail": exc.detail},
        )
        return

    if applied:
        logger.info(
            "User %s %s entity:%s:%s",
            conn.identity.subject_id,
            "subscribed to" if msg.type == "subscribe-entity" else "unsubscribed from",
            ref.entity_type,
            ref.entity_id,
        )

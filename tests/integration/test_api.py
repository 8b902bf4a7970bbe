"""Integration tests for the WebSocket and HTTP surfaces (Redis disabled)."""
from __future__ import annotations

import asyncio
import time
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from notify_broker.app import create_app
from notify_broker.domain.entities.target import TargetDescriptor
from notify_broker.domain.value_objects.enums import NotificationKind
from notify_broker.services import notifications
from tests.conftest import make_message, make_token


@pytest.fixture
def client() -> Iterator[TestClient]:
    with TestClient(create_app(), raise_server_exceptions=False) as c:
        yield c


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _sync(ws) -> None:
    """Round-trip a ping so earlier requests on this socket are processed."""
    ws.send_json({"type": "ping"})
    assert ws.receive_json()["type"] == "pong"


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_readyz_without_redis(client):
    resp = client.get("/readyz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ready"}


def test_anonymous_connection_receives_welcome(client):
    with client.websocket_connect("/ws/notifications") as ws:
        frame = ws.receive_json()

    assert frame["type"] == "notification"
    assert frame["data"]["kind"] == "system_alert"
    assert frame["data"]["priority"] == "low"
    assert frame["data"]["title"] == "Connected"


def test_malformed_token_is_refused(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws/notifications?token=abc") as ws:
            ws.receive_json()
    assert exc_info.value.code == 4001


def test_entity_subscription_over_the_wire(client):
    broker = client.app.state.broker
    target = TargetDescriptor(entity_type="Doctor", entity_id="abc123")

    with client.websocket_connect(f"/ws/notifications?token={make_token('u1')}") as ws:
        ws.receive_json()  # welcome
        ws.send_json({"type": "subscribe-entity", "data": {"entityType": "Doctor", "entityId": "abc123"}})
        _sync(ws)

        report = client.portal.call(broker.publish, target, make_message(id="doc-1"))
        assert report.delivered == 1
        frame = ws.receive_json()
        assert frame["data"]["id"] == "doc-1"

        ws.send_json({"type": "unsubscribe-entity", "data": {"entityType": "Doctor", "entityId": "abc123"}})
        _sync(ws)
        report = client.portal.call(broker.publish, target, make_message(id="doc-2"))
        assert report.attempted == 0


def test_header_credential_and_role_fanout(client):
    broker = client.app.state.broker
    token = make_token("staff-1", realm_roles=["registrar"])

    with client.websocket_connect("/ws/notifications", headers=_auth(token)) as ws:
        ws.receive_json()
        reports = client.portal.call(
            notifications.publish_registration_status, broker, "u9", "submitted", "Doctor",
        )
        frame = ws.receive_json()

    assert [r.delivered for r in reports] == [0, 1]
    assert frame["data"]["kind"] == NotificationKind.REGISTRATION_SUBMITTED.value
    assert frame["data"]["actionRef"] == "/admin/pending"


def test_bad_requests_get_error_frames(client):
    with client.websocket_connect("/ws/notifications") as ws:
        ws.receive_json()

        ws.send_text("not json")
        assert ws.receive_json()["data"]["code"] == "invalid_payload"

        ws.send_json({"type": "teleport", "data": {}})
        assert ws.receive_json()["data"]["code"] == "unknown_type"

        ws.send_json({"type": "subscribe-entity", "data": {"entityType": "Doctor"}})
        assert ws.receive_json()["data"]["code"] == "invalid_data"

        ws.send_json({"type": "subscribe-entity", "data": {"entityType": "Doc:tor", "entityId": "x"}})
        assert ws.receive_json()["data"]["code"] == "invalid_operation"

        # connection is still usable
        _sync(ws)


def test_ack_is_accepted_without_reply(client):
    with client.websocket_connect("/ws/notifications") as ws:
        welcome = ws.receive_json()
        ws.send_json({"type": "ack", "data": {"messageId": welcome["data"]["id"]}})
        _sync(ws)


def test_disconnect_deregisters(client):
    broker = client.app.state.broker
    with client.websocket_connect("/ws/notifications") as ws:
        ws.receive_json()
        assert client.portal.call(broker.connected_count) == 1
    _wait_for(lambda: client.portal.call(broker.connected_count) == 0)


def _wait_for(predicate, attempts: int = 100) -> None:
    for _ in range(attempts):
        if predicate():
            return
        time.sleep(0.01)
    raise AssertionError("condition not reached")


def test_diagnostics_require_operator(client):
    assert client.get("/api/v1/notifications/connections/count").status_code == 401

    user_token = make_token("u1", roles=["doctor"])
    resp = client.get("/api/v1/notifications/connections/count", headers=_auth(user_token))
    assert resp.status_code == 403

    resp = client.get("/api/v1/notifications/connections/count", headers=_auth("garbage"))
    assert resp.status_code == 401


def test_diagnostics_report_connections_and_members(client):
    admin = _auth(make_token("ops", roles=["admin"]))

    with client.websocket_connect(f"/ws/notifications?token={make_token('u1', roles=['doctor'])}") as ws:
        ws.receive_json()

        resp = client.get("/api/v1/notifications/connections/count", headers=admin)
        assert resp.json() == {"connected": 1}

        resp = client.get("/api/v1/notifications/groups/role:doctor/members", headers=admin)
        assert resp.json() == {"group": "role:doctor", "members": ["u1"]}

    resp = client.get("/api/v1/notifications/groups/team:x/members", headers=admin)
    assert resp.status_code == 422


def test_colon_subject_connects_and_closes_cleanly(client):
    broker = client.app.state.broker
    token = make_token("urn:user:1", roles=["realm:admin"])

    with client.websocket_connect(f"/ws/notifications?token={token}") as ws:
        assert ws.receive_json()["data"]["title"] == "Connected"
        assert client.portal.call(broker.members_of, "role:realm:admin") == ["urn:user:1"]
    _wait_for(lambda: client.portal.call(broker.connected_count) == 0)


def test_handshake_failure_after_accept_closes_socket(client, monkeypatch):
    def _reject(connection):
        raise RuntimeError("registry unavailable")

    monkeypatch.setattr(client.app.state.broker.registry, "register", _reject)

    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws/notifications") as ws:
            ws.receive_json()
    assert exc_info.value.code == 1011


async def _heartbeat_tasks() -> list[asyncio.Task]:
    return [t for t in asyncio.all_tasks() if t.get_name().startswith("ws-heartbeat-")]


def test_heartbeat_task_is_finished_after_disconnect(client):
    broker = client.app.state.broker
    with client.websocket_connect("/ws/notifications") as ws:
        ws.receive_json()
        assert len(client.portal.call(_heartbeat_tasks)) == 1
    _wait_for(lambda: client.portal.call(broker.connected_count) == 0)

    assert client.portal.call(_heartbeat_tasks) == []

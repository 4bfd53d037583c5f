import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from server.connection_manager import ConnectionManager, feed_room
from server.dummy_data import live_feed_generator
from server.main import create_app


@pytest.fixture
def client():
    # Long tick so the background runner stays out of the way
    app = create_app(manager=ConnectionManager(), tick_interval_ms=60_000)
    with TestClient(app) as c:
        yield c


def send(ws, event, data=None):
    ws.send_text(json.dumps({"event": event, "data": data or {}}))


def receive(ws, event):
    frame = ws.receive_json()
    assert frame["event"] == event, frame
    return frame["data"]


def open_socket(client, restaurant="rest-1", user="user-1"):
    return client.websocket_connect(f"/ws?restaurantId={restaurant}&userId={user}")


def settle(ws):
    # A ping round trip guarantees the handshake (and room join) has finished
    send(ws, "ping")
    receive(ws, "pong")


# ==========================
# HTTP
# ==========================
def test_healthz_is_timed(client):
    resp = client.get("/healthz")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert "X-Process-Time-Ms" in resp.headers


def test_stats_use_camel_case(client):
    with open_socket(client) as ws:
        receive(ws, "connected")
        settle(ws)
        stats = client.get("/stats").json()

    assert stats["activeConnections"] == 1
    assert stats["totalFramesSent"] >= 2
    assert "uptimeS" in stats


def test_unknown_feed_is_404(client):
    assert client.get("/feed/nowhere").status_code == 404


# ==========================
# HANDSHAKE
# ==========================
def test_connected_greeting(client):
    with open_socket(client, user="chef-7") as ws:
        hello = receive(ws, "connected")

    assert hello["userId"] == "chef-7"
    assert "timestamp" in hello


def test_ping_pong(client):
    with open_socket(client) as ws:
        receive(ws, "connected")
        send(ws, "ping")

        assert "timestamp" in receive(ws, "pong")


def test_join_and_leave_restaurant(client):
    with open_socket(client) as ws:
        receive(ws, "connected")

        send(ws, "join-restaurant", {"restaurantId": "rest-2"})
        assert receive(ws, "joined-restaurant")["restaurantId"] == "rest-2"

        send(ws, "leave-restaurant", {"restaurantId": "rest-2"})
        assert receive(ws, "left-restaurant")["restaurantId"] == "rest-2"


# ==========================
# LIVE FEED
# ==========================
def test_subscribe_sends_ack_then_current_state(client):
    with open_socket(client) as ws:
        receive(ws, "connected")
        send(ws, "subscribe-live-feed", {"restaurantId": "rest-1", "feedTypes": ["metrics", "alerts"]})

        ack = receive(ws, "live-feed-subscribed")
        metrics = receive(ws, "live-feed-data")
        alerts = receive(ws, "live-feed-data")

    assert ack["feedTypes"] == ["metrics", "alerts"]
    assert metrics["feedType"] == "metrics"
    assert metrics["data"]["ordersToday"] == 87
    assert alerts["feedType"] == "alerts"
    assert alerts["data"][0]["type"] == "critical"


def test_unknown_feed_type_is_rejected(client):
    with open_socket(client) as ws:
        receive(ws, "connected")
        send(ws, "subscribe-live-feed", {"feedTypes": ["gossip"]})

        error = receive(ws, "error")

    assert "gossip" in error["message"]


def test_acknowledge_alert_updates_the_restaurant_feed(client):
    with open_socket(client) as ws:
        receive(ws, "connected")
        send(ws, "subscribe-live-feed", {"feedTypes": ["metrics"]})
        receive(ws, "live-feed-subscribed")
        receive(ws, "live-feed-data")

        send(ws, "acknowledge_alert", {"alertId": 1})
        note = receive(ws, "notification")

    assert note["acknowledged"] is True
    assert note["alertId"] == 1
    feed = client.get("/feed/rest-1").json()
    assert feed["alerts"][0]["acknowledged"] is True
    assert feed["unacknowledgedAlerts"] == 2


# ==========================
# ERRORS
# ==========================
def test_unknown_event_gets_error_frame(client):
    with open_socket(client) as ws:
        receive(ws, "connected")
        send(ws, "reservation:created", {"id": 1})

        error = receive(ws, "error")
        # Socket is still usable
        settle(ws)

    assert "Unknown event" in error["message"]


def test_malformed_frame_gets_error_frame(client):
    with open_socket(client) as ws:
        receive(ws, "connected")
        ws.send_text("not json")

        assert "Malformed" in receive(ws, "error")["message"]


def test_invalid_payload_gets_error_frame(client):
    with open_socket(client) as ws:
        receive(ws, "connected")
        send(ws, "table-status-update", {"status": "occupied"})

        error = receive(ws, "error")

    assert error["message"] == "Invalid payload for table-status-update"
    assert error["details"]


def test_command_without_restaurant_is_rejected(client):
    with client.websocket_connect("/ws") as ws:
        receive(ws, "connected")
        send(ws, "join-restaurant", {})

        assert receive(ws, "error")["message"] == "restaurantId is required"


# ==========================
# BROADCAST
# ==========================
def test_table_status_reaches_everyone_in_the_restaurant(client):
    with open_socket(client, user="host") as host, open_socket(client, user="server") as server:
        receive(host, "connected")
        receive(server, "connected")
        settle(host)
        settle(server)

        send(host, "table-status-update", {"tableId": "T4", "status": "cleaning"})

        for ws in (host, server):
            change = receive(ws, "table-status-changed")
            assert change["tableId"] == "T4"
            assert change["updatedBy"] == "host"


def test_broadcast_stays_inside_the_restaurant(client):
    with open_socket(client, restaurant="rest-1") as near, open_socket(client, restaurant="rest-2") as far:
        receive(near, "connected")
        receive(far, "connected")
        settle(near)
        settle(far)

        send(near, "order-status-update", {"orderId": "ORD-1", "status": "ready"})
        receive(near, "order-status-changed")

        # The next frame `far` sees is its own pong, not the order change
        send(far, "ping")
        receive(far, "pong")


def test_http_responses_carry_hub_telemetry(client):
    with open_socket(client) as ws:
        receive(ws, "connected")
        send(ws, "subscribe-live-feed", {"feedTypes": ["metrics"]})
        receive(ws, "live-feed-subscribed")
        receive(ws, "live-feed-data")

        resp = client.get("/feed/rest-1")

    assert float(resp.headers["X-Process-Time-Ms"]) >= 0
    assert resp.headers["X-Live-Connections"] == "1"
    assert resp.headers["X-Live-Restaurants"] == "1"


# ==========================
# FEED RUNNER
# ==========================
def test_only_watched_restaurants_are_ticked():
    manager = ConnectionManager()
    watched = manager.feed_for("rest-1")
    idle = manager.feed_for("rest-2")
    manager.join("client-a", feed_room("rest-1", "metrics"))

    async def first_tick():
        frames = live_feed_generator(manager, 0, ["metrics", "alerts"])
        got = [await frames.__anext__() for _ in range(2)]
        await frames.aclose()
        return got

    frames = asyncio.run(first_tick())

    assert [(rid, feed) for rid, feed, _ in frames] == [("rest-1", "metrics"), ("rest-1", "alerts")]
    assert watched.ticks == 1
    assert idle.ticks == 0
    assert manager.has_feed_subscribers("rest-1")
    assert not manager.has_feed_subscribers("rest-2")


def test_last_subscriber_leaving_stops_the_ticks():
    manager = ConnectionManager()
    manager.feed_for("rest-1")
    manager.join("client-a", feed_room("rest-1", "kitchen"))

    manager.disconnect("client-a")

    assert manager.watched_feeds() == {}
    assert "rest-1" in manager.feeds

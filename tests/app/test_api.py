"""HTTP and WebSocket tests for the FastAPI application."""

from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from bidhouse.app.api import WS_AUCTION_NOT_FOUND, create_app
from bidhouse.app.config import BiddingSettings
from bidhouse.app.dependencies import Runtime


@pytest.fixture
def client(tmp_path, clock):
    settings = BiddingSettings(
        db_path=tmp_path / "api.db", notification_retry_backoff_seconds=0.001
    )
    runtime = Runtime.from_settings(settings, clock=clock)
    with TestClient(create_app(settings, runtime=runtime)) as test_client:
        yield test_client


@pytest.fixture
def auction_id(client, clock):
    response = client.post(
        "/auctions",
        json={
            "seller_id": "seller",
            "title": "Lamp",
            "starting_price": "100",
            "bid_increment": "10",
            "start_time": (clock.now() - timedelta(hours=1)).isoformat(),
            "duration_hours": 2,
        },
    )
    assert response.status_code == 201
    return response.json()["id"]


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_create_and_get_auction(client, auction_id):
    body = client.get(f"/auctions/{auction_id}").json()

    assert body["state"] == "active"
    assert body["starting_price"] == "100.00"
    assert body["minimum_bid"] == "100.00"
    assert body["current_highest_bid"] is None
    assert body["seller_decision"] == "undecided"


def test_create_rejects_bad_input(client, clock):
    response = client.post(
        "/auctions",
        json={
            "seller_id": "seller",
            "title": "Lamp",
            "starting_price": "100",
            "bid_increment": "0",
            "start_time": clock.now().isoformat(),
            "duration_hours": 2,
        },
    )
    missing = client.post("/auctions", json={"seller_id": "seller"})

    assert response.status_code == 400
    assert response.json()["error"] == "validation"
    assert missing.status_code == 400
    assert missing.json()["error"] == "validation"


def test_unknown_auction_is_404(client):
    response = client.get("/auctions/missing")

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_place_bid_and_list(client, auction_id):
    placed = client.post(
        f"/auctions/{auction_id}/bids", json={"bidder_id": "u1", "amount": "100"}
    )
    bids = client.get(f"/auctions/{auction_id}/bids")

    assert placed.status_code == 201
    assert placed.json()["bid"]["amount"] == "100.00"
    assert placed.json()["auction"]["minimum_bid"] == "110.00"
    assert [b["bidder_id"] for b in bids.json()] == ["u1"]


@pytest.mark.parametrize(
    "bidder, amount, status_code, kind",
    [
        ("u1", "90", 400, "bid_too_low"),
        ("seller", "500", 403, "seller_cannot_bid"),
        ("u1", "-5", 400, "validation"),
    ],
)
def test_bid_rejections(client, auction_id, bidder, amount, status_code, kind):
    response = client.post(
        f"/auctions/{auction_id}/bids", json={"bidder_id": bidder, "amount": amount}
    )

    assert response.status_code == status_code
    assert response.json()["error"] == kind


def test_bid_too_low_reports_minimum(client, auction_id):
    response = client.post(
        f"/auctions/{auction_id}/bids", json={"bidder_id": "u1", "amount": "99.99"}
    )

    assert response.json()["minimum_bid"] == "100.00"
    assert response.json()["message"] == "Bid must be at least $100.00"


def test_decision_flow(client, auction_id, clock):
    client.post(f"/auctions/{auction_id}/bids", json={"bidder_id": "u1", "amount": "100"})
    early = client.post(f"/auctions/{auction_id}/decision", json={"accepted": True})
    clock.advance(hours=2)
    decided = client.post(f"/auctions/{auction_id}/decision", json={"accepted": True})
    again = client.post(f"/auctions/{auction_id}/decision", json={"accepted": False})

    assert early.status_code == 409
    assert early.json()["error"] == "auction_not_ended"
    assert decided.status_code == 200
    assert decided.json()["accepted"] is True
    assert again.status_code == 409
    assert again.json() == {
        "error": "already_decided",
        "message": "Seller decision already recorded (accepted)",
        "decision": "accepted",
    }


def test_list_auctions_by_status(client, auction_id, clock):
    active = client.get("/auctions").json()
    clock.advance(hours=2)
    still_active = client.get("/auctions", params={"status": "active"}).json()
    ended = client.get("/auctions", params={"status": "ended"}).json()
    bad = client.get("/auctions", params={"status": "sold"})

    assert [a["id"] for a in active] == [auction_id]
    assert still_active == []
    assert [a["id"] for a in ended] == [auction_id]
    assert bad.status_code == 400


def test_notifications_listing_and_mark_read(client, auction_id):
    client.post(f"/auctions/{auction_id}/bids", json={"bidder_id": "u1", "amount": "100"})
    client.post(f"/auctions/{auction_id}/bids", json={"bidder_id": "u2", "amount": "110"})

    inbox = client.get("/notifications", params={"user_id": "u1"}).json()
    assert [n["type"] for n in inbox] == ["outbid"]
    assert inbox[0]["read"] is False

    marked = client.patch("/notifications", json={"ids": [inbox[0]["id"]]})
    unread = client.get("/notifications", params={"user_id": "u1", "unread_only": True})

    assert marked.json() == {"updated": 1}
    assert unread.json() == []


def test_notifications_require_user(client):
    assert client.get("/notifications").status_code == 400
    assert client.patch("/notifications", json={"ids": []}).status_code == 400


def test_metrics_exposes_request_counts(client):
    client.get("/health")

    body = client.get("/metrics").text

    assert "# TYPE api_requests_total counter" in body
    assert 'endpoint="/health"' in body


def test_websocket_snapshot_then_live_bids(client, auction_id):
    with client.websocket_connect(f"/ws/auctions/{auction_id}") as ws:
        ready = ws.receive_json()
        snapshot = ws.receive_json()
        client.post(
            f"/auctions/{auction_id}/bids", json={"bidder_id": "u1", "amount": "100"}
        )
        placed = ws.receive_json()

    assert ready["type"] == "connection_ready"
    assert ready["payload"]["auction_id"] == auction_id
    assert snapshot["type"] == "auction_snapshot"
    assert snapshot["payload"]["auction"]["current_highest_bid"] is None
    assert snapshot["payload"]["bids"] == []
    assert placed["type"] == "bid_placed"
    assert placed["payload"]["bid"]["amount"] == "100.00"
    assert [b["bidder_id"] for b in placed["payload"]["bids"]] == ["u1"]


def test_websocket_unknown_auction_is_closed(client):
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect("/ws/auctions/missing") as ws:
            ws.receive_json()

    assert excinfo.value.code == WS_AUCTION_NOT_FOUND


def test_oversized_bid_amount_is_rejected(client, auction_id):
    as_number = client.post(
        f"/auctions/{auction_id}/bids", json={"bidder_id": "u1", "amount": 1e30}
    )
    as_text = client.post(
        f"/auctions/{auction_id}/bids", json={"bidder_id": "u1", "amount": "1e30"}
    )

    assert as_number.status_code == 400
    assert as_number.json()["error"] == "validation"
    assert as_text.status_code == 400
    assert client.get(f"/auctions/{auction_id}/bids").json() == []


def test_oversized_duration_is_rejected(client, clock):
    response = client.post(
        "/auctions",
        json={
            "seller_id": "seller",
            "title": "Lamp",
            "starting_price": "100",
            "bid_increment": "10",
            "start_time": clock.now().isoformat(),
            "duration_hours": 1e12,
        },
    )

    assert response.status_code == 400
    assert response.json() == {
        "error": "validation",
        "message": "duration_hours is too large",
    }


def test_tracing_is_configured_at_startup_when_enabled(tmp_path, clock, monkeypatch):
    calls: list[dict] = []
    monkeypatch.setattr(
        "bidhouse.app.api.configure_tracing", lambda **kwargs: calls.append(kwargs)
    )
    settings = BiddingSettings(
        db_path=tmp_path / "traced.db",
        tracing_enabled=True,
        tracing_endpoint="http://collector:4317",
        tracing_sample_rate=0.5,
    )
    runtime = Runtime.from_settings(settings, clock=clock)

    with TestClient(create_app(settings, runtime=runtime)) as test_client:
        assert test_client.get("/health").status_code == 200

    assert calls == [
        {
            "service_name": "bidhouse-api",
            "endpoint": "http://collector:4317",
            "sample_rate": 0.5,
        }
    ]


def test_tracing_stays_off_by_default(tmp_path, clock, monkeypatch):
    calls: list[dict] = []
    monkeypatch.setattr(
        "bidhouse.app.api.configure_tracing", lambda **kwargs: calls.append(kwargs)
    )
    settings = BiddingSettings(db_path=tmp_path / "untraced.db")
    runtime = Runtime.from_settings(settings, clock=clock)

    with TestClient(create_app(settings, runtime=runtime)) as test_client:
        assert test_client.get("/health").status_code == 200

    assert calls == []

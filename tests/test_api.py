import pytest
from fastapi.testclient import TestClient

from lucky_draw.api.deps import get_hub, get_roster_cache, get_write_back
from lucky_draw.main import app
from lucky_draw.realtime import messages
from lucky_draw.schemas.sheets import WriteResult
from lucky_draw.sheets.writeback import WriteBackClient


@pytest.fixture
def client(hub, roster, write_back):
    app.dependency_overrides[get_hub] = lambda: hub
    app.dependency_overrides[get_roster_cache] = lambda: roster
    app.dependency_overrides[get_write_back] = lambda: write_back
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    resp = client.get("/api/health")

    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["clients"] == 0
    assert "now" in body


def test_state_snapshot(client):
    resp = client.get("/api/state")

    assert resp.status_code == 200
    assert resp.json()["mode"] == "exclude"


def test_read_participants(client):
    resp = client.get("/api/sheets/participants")

    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["columns"] == ["id", "name", "team", "dept"]
    assert body["rows"][0]["name"] == "Ann"
    assert body["stale"] is False
    assert "error" not in body


def test_unknown_sheet(client):
    assert client.get("/api/sheets/teams").status_code == 404


def test_upstream_failure_is_structured(client, loader):
    loader.fail = True

    resp = client.get("/api/sheets/prizes")

    assert resp.status_code == 500
    body = resp.json()
    assert body["ok"] is False
    assert "503" in body["error"]


def test_stale_copy_served_on_failure(client, loader, roster):
    assert client.get("/api/sheets/prizes").status_code == 200
    roster.invalidate("prizes")
    loader.fail = True

    resp = client.get("/api/sheets/prizes")

    assert resp.status_code == 200
    assert resp.json()["stale"] is True
    assert resp.json()["rows"] == [{"prize_id": "P1", "prize_name": "TV"}]


def test_add_prize_forwards_and_invalidates(client, write_back, roster, loader):
    client.get("/api/sheets/prizes")

    resp = client.post("/api/write/add-prize", json={"row": {"prize_name": "Bike"}})

    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "json": {"ok": True}}
    assert write_back.calls == [("add_prize", {"row": {"prize_name": "Bike"}})]
    assert not roster.is_fresh("prizes")


def test_append_winner_failure_is_400(client, write_back):
    write_back.result = WriteResult(ok=False, status=502, body={"error": "boom"})

    resp = client.post("/api/write/append-winner", json={"row": {}})

    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "status": 502, "json": {"error": "boom"}}


def test_unconfigured_write_back(client):
    app.dependency_overrides[get_write_back] = lambda: WriteBackClient(url="")

    resp = client.post("/api/write/add-prize", json={"row": {"prize_name": "Bike"}})

    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "reason": "WRITE_WEBAPP_URL not set"}


def test_websocket_hydration_and_commands(client, hub):
    with client.websocket_connect("/ws") as ws:
        assert ws.receive_json()["type"] == messages.CONNECTED
        state = ws.receive_json()
        assert state["type"] == messages.STATE
        assert state["payload"]["spinning"] is False

        ws.send_json({"type": messages.SET_MODE, "payload": {"mode": "repeat"}})
        msg = ws.receive_json()
        assert msg["type"] == messages.STATE
        assert msg["payload"]["mode"] == "repeat"

        ws.send_text("garbage")
        ws.send_bytes(b'{"no": "type"}')
        ws.send_json({"type": messages.PING})
        assert ws.receive_json()["type"] == messages.PONG

        ws.send_json({"type": messages.START_SPIN})
        started = ws.receive_json()
        assert started["type"] == messages.STARTED
        assert started["payload"]["spinning"] is True

    assert hub.client_count == 0


def test_websocket_broadcast_reaches_every_client(client):
    with client.websocket_connect("/ws") as admin, client.websocket_connect("/ws") as presenter:
        for ws in (admin, presenter):
            ws.receive_json()
            ws.receive_json()

        admin.send_json({"type": messages.STOP_SPIN, "payload": {"mapping": {}, "operator": "Admin"}})

        for ws in (admin, presenter):
            msg = ws.receive_json()
            assert msg["type"] == messages.STOPPING
            assert msg["payload"]["winner"]["participant_id"] in {"1", "2", "3"}

"""
End-to-end tests of the relay through the ASGI application.

These run the full application, lifespan included, and talk to it over the
test client's WebSocket transport.
"""

# pylint: disable=redefined-outer-name

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from flightrelay.app.factory import create_app
from flightrelay.config import AppConfig, RelayConfig


@pytest.fixture
def client():
    """Provide a test client with the application started."""
    with TestClient(create_app(AppConfig())) as test_client:
        yield test_client


def test_status_and_health(client):
    """Test both HTTP endpoints once the application has started."""
    assert client.get("/health").json() == {"status": "ok"}
    status = client.get("/").json()
    assert status["status"] == "running"
    assert status["connectedClients"] == 0


def test_two_pilot_session(client):
    """Test connect, join, position, chat and departure between two pilots."""
    with client.websocket_connect("/") as x:
        connected_x = x.receive_json()
        assert connected_x["type"] == "connected"
        assert connected_x["totalClients"] == 1
        x_id = connected_x["clientId"]

        with client.websocket_connect("/ws") as y:
            connected_y = y.receive_json()
            assert connected_y["totalClients"] == 2
            y_id = connected_y["clientId"]
            assert y_id != x_id

            x.send_json({"type": "join", "callsign": "X1", "aircraft": "C172"})
            assert x.receive_json() == {"type": "player_list", "players": []}
            assert y.receive_json() == {"type": "player_joined", "clientId": x_id, "callsign": "X1", "aircraft": "C172"}

            y.send_json({"type": "join", "callsign": "Y1", "aircraft": "A320"})
            assert y.receive_json() == {
                "type": "player_list",
                "players": [{"clientId": x_id, "callsign": "X1", "aircraft": "C172"}],
            }
            assert x.receive_json() == {"type": "player_joined", "clientId": y_id, "callsign": "Y1", "aircraft": "A320"}

            x.send_text("this is not json")
            x.send_json({"type": "position", "position": {"lat": 47.45, "lon": -122.31, "alt": 3500}})
            assert y.receive_json() == {
                "type": "position",
                "clientId": x_id,
                "callsign": "X1",
                "lat": 47.45,
                "lon": -122.31,
                "alt": 3500,
            }

            x.send_json({"type": "chat", "message": "hi"})
            chat_x = x.receive_json()
            chat_y = y.receive_json()
            assert chat_x == chat_y
            assert chat_x["callsign"] == "X1"
            assert chat_x["message"] == "hi"
            assert isinstance(chat_x["timestamp"], int)

            assert client.get("/").json()["connectedClients"] == 2

        assert x.receive_json() == {"type": "player_left", "clientId": y_id, "callsign": "Y1"}
        assert client.get("/").json()["connectedClients"] == 1


def test_idle_client_is_evicted():
    """Test a client that stops sending positions is hard-closed by the sweeper."""
    config = AppConfig(relay=RelayConfig(sweep_interval=0.05, stale_timeout=0.2))

    with TestClient(create_app(config)) as client:
        with client.websocket_connect("/") as websocket:
            assert websocket.receive_json()["type"] == "connected"

            with pytest.raises(WebSocketDisconnect) as exc_info:
                websocket.receive_json()

            assert exc_info.value.code == 1001
        assert client.get("/").json()["connectedClients"] == 0

"""
Tests for the per-connection WebSocket handler.
"""

# pylint: disable=redefined-outer-name

from unittest.mock import AsyncMock, Mock, patch

import pytest
from fastapi import WebSocket

from flightrelay.exceptions import DuplicateConnectionError
from flightrelay.realtime.websocket_handler import handle_websocket_connection


@pytest.fixture
def mock_websocket():
    """Provide a mock WebSocket that sends one frame and then disconnects."""
    websocket = Mock(spec=WebSocket)
    websocket.accept = AsyncMock()
    websocket.receive = AsyncMock(
        side_effect=[
            {"type": "websocket.receive", "text": '{"type": "chat", "message": "hi"}'},
            {"type": "websocket.disconnect", "code": 1000},
        ]
    )
    return websocket


@pytest.fixture
def mock_manager():
    """Provide a mock connection manager."""
    manager = Mock()
    manager.config.send_queue_size = 8
    manager.accept.return_value = "client-1"
    return manager


@pytest.fixture
def mock_channel():
    """Patch the channel class so no writer task is started."""
    channel = Mock()
    channel.aclose = AsyncMock()
    with patch("flightrelay.realtime.websocket_handler.WebSocketChannel", return_value=channel):
        yield channel


async def test_frames_routed_then_closed(mock_websocket, mock_manager, mock_channel):
    """Test received frames reach the manager and the close path runs on disconnect."""
    await handle_websocket_connection(mock_websocket, mock_manager)

    mock_channel.start.assert_called_once()
    mock_manager.handle_message.assert_called_once_with("client-1", '{"type": "chat", "message": "hi"}')
    mock_manager.handle_close.assert_called_once_with("client-1")
    mock_channel.aclose.assert_awaited_once()


async def test_transport_error_runs_close_path(mock_websocket, mock_manager, mock_channel):
    """Test an unexpected receive error is handed to the manager and the connection closed."""
    error = ConnectionResetError("reset")
    mock_websocket.receive = AsyncMock(side_effect=error)

    await handle_websocket_connection(mock_websocket, mock_manager)

    mock_manager.handle_transport_error.assert_called_once_with("client-1", error)
    mock_manager.handle_close.assert_called_once_with("client-1")
    mock_channel.aclose.assert_awaited_once()


async def test_id_collision_releases_channel(mock_websocket, mock_manager, mock_channel):
    """Test a rejected registration stops the channel writer and never starts receiving."""
    mock_manager.accept.side_effect = DuplicateConnectionError("client-1")

    await handle_websocket_connection(mock_websocket, mock_manager)

    mock_channel.aclose.assert_awaited_once()
    mock_websocket.receive.assert_not_awaited()
    mock_manager.handle_close.assert_not_called()

"""Real-time relay server for multiplayer flight-simulation sessions."""

__version__ = "1.0.0"

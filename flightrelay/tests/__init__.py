"""Tests for the flight relay server."""

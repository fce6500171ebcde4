"""Realtime component tests."""

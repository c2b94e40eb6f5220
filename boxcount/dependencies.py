"""FastAPI dependency helpers.

The room table is owned by the application instance created in
``boxcount.app.create_app``; handlers reach it through these dependencies
instead of importing a shared module global, so every entry point (REST and
socket) sees the same store and tests can build isolated apps.
"""
from __future__ import annotations

from starlette.requests import HTTPConnection

from .coordinator import SessionCoordinator


def get_coordinator(conn: HTTPConnection) -> SessionCoordinator:
    return conn.app.state.coordinator


__all__ = ["get_coordinator"]

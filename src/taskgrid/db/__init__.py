"""Database engine and session helpers."""

from __future__ import annotations

from .session import get_engine, get_session, get_session_maker, init_db

__all__ = ["get_engine", "get_session", "get_session_maker", "init_db"]

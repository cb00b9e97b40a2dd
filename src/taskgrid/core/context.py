"""Request-scoped context used to correlate log records."""

from __future__ import annotations

from contextvars import ContextVar, Token

REQUEST_ID_HEADER = "X-Request-ID"

_request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
_actor_id_var: ContextVar[int | None] = ContextVar("actor_id", default=None)


def get_request_id() -> str:
    """Return the request identifier bound to the current context."""

    return _request_id_var.get()


def bind_request_id(request_id: str) -> Token[str]:
    return _request_id_var.set(request_id)


def reset_request_id(token: Token[str]) -> None:
    _request_id_var.reset(token)


def get_actor_id() -> int | None:
    """Return the id of the authenticated user handling the current request."""

    return _actor_id_var.get()


def bind_actor_id(user_id: int | None) -> Token[int | None]:
    """Record which user is acting; set by the authentication dependency."""

    return _actor_id_var.set(user_id)


def reset_actor_id(token: Token[int | None]) -> None:
    _actor_id_var.reset(token)


__all__ = [
    "REQUEST_ID_HEADER",
    "bind_actor_id",
    "bind_request_id",
    "get_actor_id",
    "get_request_id",
    "reset_actor_id",
    "reset_request_id",
]

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps
from typing import Any
from urllib.parse import urlsplit

from flask import current_app, g, redirect, request, session, url_for


@dataclass(frozen=True)
class SessionUser:
    """The signed-in user as held in the session: {id, email, name}."""

    id: int
    email: str
    name: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.email

    @classmethod
    def from_session(cls, data: Any) -> "SessionUser | None":
        if not isinstance(data, dict):
            return None
        try:
            return cls(id=int(data["id"]), email=str(data["email"]), name=data.get("name") or None)
        except (KeyError, TypeError, ValueError):
            return None

    def to_session(self) -> dict[str, Any]:
        return {"id": self.id, "email": self.email, "name": self.name}


def load_current_user() -> None:
    """
    Resolves g.current_user from the session once per request.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    if request.path.startswith(("/static/", "/health", "/healthz")):
        g.current_user = None
        return

    raw = session.get("user")
    user = SessionUser.from_session(raw)
    if raw is not None and user is None:
        current_app.logger.warning("Dropping malformed session user (request_id=%s)", g.request_id)
        session.pop("user", None)
    g.current_user = user


def start_session(user: Any) -> SessionUser:
    """Anonymous -> Authenticated. Issues a new session token."""
    su = SessionUser(id=user.id, email=user.email, name=user.name)
    session.clear()
    session.rotate()
    session["user"] = su.to_session()
    g.current_user = su
    return su


def end_session() -> None:
    """Authenticated -> Anonymous. The server-side row and the cookie are removed."""
    session.clear()
    g.current_user = None


def require_auth(fn: Callable[..., Any]) -> Callable[..., Any]:
    """
    Only a session presence check: anonymous requests are redirected to the
    login page and the view does not run. The view receives the SessionUser
    as the ``user`` keyword argument.
    """

    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        user: SessionUser | None = getattr(g, "current_user", None)
        if user is None:
            if request.method != "GET":
                return redirect(url_for("auth.login_get"))
            nxt = request.full_path or request.path
            # Avoid trailing '?' from full_path when there is no query string.
            if nxt.endswith("?"):
                nxt = nxt[:-1]
            return redirect(url_for("auth.login_get", next=nxt))
        return fn(*args, user=user, **kwargs)

    return wrapped


def safe_next(nxt: str | None) -> str | None:
    """Only local paths are allowed as post-login redirects."""
    nxt = (nxt or "").strip()
    if not nxt.startswith("/") or nxt.startswith("//") or "\\" in nxt:
        return None
    # Browsers drop tabs/newlines from URLs, so "/\t/host" would become "//host".
    if any(ord(c) < 0x21 or c == "\x7f" for c in nxt):
        return None
    parts = urlsplit(nxt)
    if parts.scheme or parts.netloc:
        return None
    return nxt

"""
Server-side session store.

The browser cookie carries nothing but an opaque random token, signed with the
app secret. The session dict itself (signed-in user, CSRF token, flashes) lives
in the ``web_sessions`` table and is dropped on logout or expiry.
"""
from __future__ import annotations

import json
import secrets
from datetime import datetime
from typing import TYPE_CHECKING, Any

from flask import Flask, Request
from flask.sessions import SessionInterface, SessionMixin
from itsdangerous import BadSignature, Signer
from sqlalchemy import delete
from werkzeug.datastructures import CallbackDict

from app.alghalbi.db import session_scope
from app.alghalbi.models import WebSession
from app.alghalbi.utils import utcnow

if TYPE_CHECKING:
    from flask import Response
    from sqlalchemy.orm import Session

_SIGNER_SALT = "alghalbi.session.v1"


def new_token() -> str:
    return secrets.token_urlsafe(32)


class ServerSession(CallbackDict, SessionMixin):
    def __init__(
        self,
        initial: dict[str, Any] | None = None,
        token: str | None = None,
        new: bool = False,
        expires_at: datetime | None = None,
    ):
        def on_update(self):
            self.modified = True

        super().__init__(initial, on_update)
        self.token = token or new_token()
        self.new = new
        self.expires_at = expires_at
        self.modified = False
        self.stale_tokens: list[str] = []

    def rotate(self) -> None:
        """Move the data to a fresh token; the old row is deleted on save."""
        if not self.new:
            self.stale_tokens.append(self.token)
        self.token = new_token()
        self.new = True
        self.modified = True


def _delete_rows(s: "Session", tokens: list[str]) -> None:
    if tokens:
        s.execute(delete(WebSession).where(WebSession.token.in_(tokens)))


def purge_expired(s: "Session", now: datetime | None = None) -> int:
    """Delete expired session rows. Returns the number removed."""
    now = now or utcnow()
    res = s.execute(delete(WebSession).where(WebSession.expires_at <= now))
    return int(res.rowcount or 0)


class ServerSessionInterface(SessionInterface):
    session_class = ServerSession

    def _signer(self, app: Flask) -> Signer:
        return Signer(app.secret_key, salt=_SIGNER_SALT)

    def open_session(self, app: Flask, request: Request) -> ServerSession | None:
        if not app.secret_key:
            return None
        cookie = request.cookies.get(self.get_cookie_name(app))
        if not cookie:
            return self.session_class(new=True)
        try:
            token = self._signer(app).unsign(cookie).decode("utf-8")
        except BadSignature:
            return self.session_class(new=True)

        with session_scope(app) as s:
            row = s.get(WebSession, token)
            if row is None or row.expires_at <= utcnow():
                return self.session_class(new=True)
            raw, expires_at = row.data_json, row.expires_at
        try:
            data = json.loads(raw or "{}")
        except ValueError:
            app.logger.warning("Discarding unreadable session row")
            return self.session_class(new=True)
        return self.session_class(data, token=token, expires_at=expires_at)

    def save_session(self, app: Flask, session: ServerSession, response: "Response") -> None:  # type: ignore[override]
        name = self.get_cookie_name(app)
        domain = self.get_cookie_domain(app)
        path = self.get_cookie_path(app)
        secure = self.get_cookie_secure(app)
        samesite = self.get_cookie_samesite(app)
        httponly = self.get_cookie_httponly(app)

        if session.accessed:
            response.vary.add("Cookie")

        if not session:
            # Emptied (logout) or never used.
            if session.modified or session.stale_tokens:
                with session_scope(app) as s:
                    _delete_rows(s, [session.token, *session.stale_tokens])
                response.delete_cookie(
                    name, domain=domain, path=path, secure=secure, samesite=samesite, httponly=httponly
                )
                response.vary.add("Cookie")
            return

        now = utcnow()
        lifetime = app.permanent_session_lifetime
        # Sliding expiry, written at most once per half lifetime.
        refresh = (
            bool(app.config.get("SESSION_REFRESH_EACH_REQUEST"))
            and session.expires_at is not None
            and session.expires_at - now < lifetime / 2
        )
        if not (session.modified or refresh):
            return

        expires_at = now + lifetime
        with session_scope(app) as s:
            _delete_rows(s, session.stale_tokens)
            row = s.get(WebSession, session.token)
            if row is None:
                row = WebSession(token=session.token, created_at=now)
                s.add(row)
            row.data_json = json.dumps(dict(session), ensure_ascii=False)
            row.expires_at = expires_at
        session.stale_tokens = []
        session.expires_at = expires_at

        response.set_cookie(
            name,
            self._signer(app).sign(session.token).decode("utf-8"),
            max_age=int(lifetime.total_seconds()),
            domain=domain,
            path=path,
            secure=secure,
            samesite=samesite,
            httponly=httponly,
        )
        response.vary.add("Cookie")

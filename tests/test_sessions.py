"""Server-side session store behaviour."""
import json
from datetime import datetime, timedelta, timezone

import pytest
from itsdangerous import Signer

from app.alghalbi import create_app
from app.alghalbi.db import session_scope
from app.alghalbi.models import Base, WebSession
from app.alghalbi.sessions import purge_expired
from app.alghalbi.utils import utcnow
from scripts.release import purge_stale_sessions

COOKIE = "alghalbi_session"


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SESSION_SECRET", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.delenv("ALLOWED_EMAIL_DOMAIN", raising=False)
    monkeypatch.delenv("DOMAIN_GATE_BOOTSTRAP", raising=False)

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)
    return app


def _register(client):
    return client.post(
        "/register",
        data={"email": "lawyer@alghalbilaw.com", "name": "Lawyer", "password": "secret123"},
    )


def _rows(app) -> list[WebSession]:
    with session_scope(app) as s:
        return s.query(WebSession).all()


def test_cookie_is_httponly_lax_and_opaque(app):
    c = app.test_client()
    r = _register(c)
    set_cookie = " ".join(r.headers.getlist("Set-Cookie"))
    assert f"{COOKIE}=" in set_cookie
    assert "HttpOnly" in set_cookie
    assert "SameSite=Lax" in set_cookie

    value = c.get_cookie(COOKIE).value
    assert "lawyer" not in value
    token = Signer("test-secret", salt="alghalbi.session.v1").unsign(value).decode()

    rows = _rows(app)
    assert [row.token for row in rows] == [token]
    data = json.loads(rows[0].data_json)
    assert data["user"]["email"] == "lawyer@alghalbilaw.com"
    assert set(data["user"]) == {"id", "email", "name"}


def test_anonymous_requests_store_nothing(app):
    c = app.test_client()
    for _ in range(10):
        for path in ("/", "/login", "/register", "/no-such-page"):
            r = c.get(path)
            assert COOKIE not in " ".join(r.headers.getlist("Set-Cookie"))
    c.post("/login", data={"email": "nobody@alghalbilaw.com", "password": "whatever1"})

    assert c.get_cookie(COOKIE) is None
    assert _rows(app) == []


def test_sign_in_rotates_token(app):
    c = app.test_client()
    _register(c)
    before = c.get_cookie(COOKIE).value
    assert len(_rows(app)) == 1

    r = c.post("/login", data={"email": "lawyer@alghalbilaw.com", "password": "secret123"})
    assert r.status_code == 302
    after = c.get_cookie(COOKIE).value
    assert after != before
    # The previous row is gone; only the new one remains.
    rows = _rows(app)
    assert len(rows) == 1
    assert rows[0].token == Signer("test-secret", salt="alghalbi.session.v1").unsign(after).decode()


def test_logout_deletes_server_row(app):
    c = app.test_client()
    _register(c)
    # The CSRF token is issued on the first request after sign-in.
    c.get("/dashboard")
    with session_scope(app) as s:
        csrf = json.loads(s.query(WebSession).one().data_json)["csrf_token"]

    r = c.post("/logout", data={"csrf_token": csrf})
    assert r.status_code == 302
    assert _rows(app) == []
    assert c.get_cookie(COOKIE) is None


def test_tampered_cookie_is_anonymous(app):
    c = app.test_client()
    _register(c)
    c.set_cookie(COOKIE, c.get_cookie(COOKIE).value + "x")
    r = c.get("/dashboard")
    assert r.status_code == 302
    assert r.headers["Location"].startswith("/login")


def test_expired_session_is_anonymous_and_purged(app):
    c = app.test_client()
    _register(c)
    assert c.get("/dashboard").status_code == 200

    with session_scope(app) as s:
        for row in s.query(WebSession).all():
            row.expires_at = utcnow() - timedelta(minutes=1)

    r = c.get("/dashboard")
    assert r.status_code == 302

    with session_scope(app) as s:
        removed = purge_expired(s)
    assert removed >= 1
    with session_scope(app) as s:
        assert all(row.expires_at > utcnow() for row in s.query(WebSession).all())


def test_purge_keeps_live_sessions(app):
    now = utcnow()
    with session_scope(app) as s:
        s.add(WebSession(token="live", data_json="{}", expires_at=now + timedelta(hours=1)))
        s.add(WebSession(token="dead", data_json="{}", expires_at=now - timedelta(hours=1)))

    with session_scope(app) as s:
        assert purge_expired(s, now=now) == 1

    assert [row.token for row in _rows(app)] == ["live"]


def test_unreadable_row_is_discarded(app):
    c = app.test_client()
    _register(c)
    with session_scope(app) as s:
        s.query(WebSession).one().data_json = "{not json"

    r = c.get("/dashboard")
    assert r.status_code == 302


def test_release_purges_expired_sessions(app):
    now = utcnow()
    with session_scope(app) as s:
        s.add(WebSession(token="live", data_json="{}", expires_at=now + timedelta(hours=1)))
        s.add(WebSession(token="dead", data_json="{}", expires_at=now - timedelta(hours=1)))

    assert purge_stale_sessions(app.config["DATABASE_URL"]) == 1
    assert [row.token for row in _rows(app)] == ["live"]


def test_utcnow_is_naive_utc():
    now = utcnow()
    assert now.tzinfo is None
    assert abs(now - datetime.now(timezone.utc).replace(tzinfo=None)) < timedelta(seconds=5)

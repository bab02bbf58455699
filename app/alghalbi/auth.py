from __future__ import annotations

from flask import Blueprint, current_app, g, redirect, render_template, request, url_for

from app.alghalbi import accounts
from app.alghalbi.access import SessionUser, end_session, require_auth, safe_next, start_session
from app.alghalbi.audit import record_event
from app.alghalbi.constants import (
    MAX_PASSWORD_BYTES,
    MIN_PASSWORD_LENGTH,
    MSG_ALREADY_REGISTERED,
    MSG_GENERIC_ERROR,
    MSG_INVALID_CREDENTIALS,
    MSG_LOGIN_DOMAIN,
    MSG_PASSWORD_TOO_LONG,
    MSG_PASSWORD_TOO_SHORT,
    MSG_REGISTER_DOMAIN,
)
from app.alghalbi.db import db_session
from app.alghalbi.gate import gate_allows, normalize_email
from app.alghalbi.passwords import burn_verify, hash_password, verify_password

bp = Blueprint("auth", __name__)


def _allowed_domain() -> str:
    return current_app.config["ALLOWED_EMAIL_DOMAIN"]


def _passes_gate(s, email: str) -> bool:
    bootstrap = bool(current_app.config.get("DOMAIN_GATE_BOOTSTRAP"))
    # The user count is only read when the first-account exception is switched on.
    user_count = accounts.count(s) if bootstrap else None
    return gate_allows(email, _allowed_domain(), bootstrap=bootstrap, user_count=user_count)


def _render_register(error: str | None = None, status: int = 200, **form):
    return (
        render_template("auth/register.html", error=error, allowed_domain=_allowed_domain(), form=form),
        status,
    )


def _render_login(error: str | None = None, status: int = 200, **form):
    return (
        render_template("auth/login.html", error=error, allowed_domain=_allowed_domain(), form=form),
        status,
    )


@bp.get("/register")
def register_get():
    return _render_register()


@bp.post("/register")
def register_post():
    email = normalize_email(request.form.get("email"))
    name = (request.form.get("name") or "").strip() or None
    password = request.form.get("password") or ""
    form = {"email": email, "name": name or ""}

    s = db_session()
    try:
        if not _passes_gate(s, email):
            return _render_register(MSG_REGISTER_DOMAIN.format(domain=_allowed_domain()), 400, **form)
        if len(password) < MIN_PASSWORD_LENGTH:
            return _render_register(MSG_PASSWORD_TOO_SHORT, 400, **form)
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            return _render_register(MSG_PASSWORD_TOO_LONG, 400, **form)
        if accounts.find_by_email(s, email) is not None:
            return _render_register(MSG_ALREADY_REGISTERED, 400, **form)

        try:
            user = accounts.create(s, email=email, name=name, password_hash=hash_password(password))
        except accounts.DuplicateEmailError:
            # Lost a race with a concurrent registration of the same address.
            return _render_register(MSG_ALREADY_REGISTERED, 400, **form)

        record_event(s, actor=user, action="auth.register", entity_type="User", entity_id=str(user.id))
        s.commit()
    except Exception:
        s.rollback()
        current_app.logger.exception("Register POST failed (email=%s request_id=%s)", email, getattr(g, "request_id", None))
        return _render_register(MSG_GENERIC_ERROR, 500, **form)

    start_session(user)
    current_app.logger.info("Registered user id=%s (request_id=%s)", user.id, getattr(g, "request_id", None))
    return redirect(url_for("routes.dashboard"))


@bp.get("/login")
def login_get():
    nxt = safe_next(request.args.get("next")) or ""
    return _render_login(next=nxt)


@bp.post("/login")
def login_post():
    email = normalize_email(request.form.get("email"))
    password = request.form.get("password") or ""
    nxt = safe_next(request.form.get("next"))
    form = {"email": email, "next": nxt or ""}

    s = db_session()
    try:
        if not _passes_gate(s, email):
            return _render_login(MSG_LOGIN_DOMAIN.format(domain=_allowed_domain()), 400, **form)

        user = accounts.find_by_email(s, email)
        if user is None:
            burn_verify(password)
        if user is None or not verify_password(password, user.password_hash):
            record_event(
                s,
                actor=None,
                action="auth.login_failed",
                entity_type="User",
                entity_id=email,
                metadata={"email": email},
            )
            s.commit()
            current_app.logger.info("Login failed (email=%s request_id=%s)", email, getattr(g, "request_id", None))
            return _render_login(MSG_INVALID_CREDENTIALS, 400, **form)

        record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))
        s.commit()
    except Exception:
        s.rollback()
        current_app.logger.exception("Login POST failed (email=%s request_id=%s)", email, getattr(g, "request_id", None))
        return _render_login(MSG_GENERIC_ERROR, 500, **form)

    start_session(user)
    if nxt:
        return redirect(nxt)
    return redirect(url_for("routes.dashboard"))


@bp.post("/logout")
@require_auth
def logout(user: SessionUser):
    s = db_session()
    try:
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=str(user.id))
        s.commit()
    except Exception:
        # Logout must still happen; the audit row is lost.
        s.rollback()
        current_app.logger.exception("Logout audit failed (user_id=%s request_id=%s)", user.id, getattr(g, "request_id", None))
    end_session()
    return redirect(url_for("auth.login_get"))

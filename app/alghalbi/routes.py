from flask import Blueprint, g, redirect, render_template, url_for

from app.alghalbi.access import SessionUser, require_auth
from app.alghalbi.db import db_session
from app.alghalbi.modules.clients.service import count_clients, list_clients

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    if getattr(g, "current_user", None):
        return redirect(url_for("routes.dashboard"))
    return redirect(url_for("auth.login_get"))


@bp.get("/dashboard")
@require_auth
def dashboard(user: SessionUser):
    s = db_session()
    return render_template(
        "dashboard.html",
        client_count=count_clients(s, user.id),
        recent_clients=list_clients(s, user.id, limit=5),
    )


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for container probes. No DB access, minimal overhead.
    """
    return "ok", 200

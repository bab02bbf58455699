from __future__ import annotations

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, url_for

from app.alghalbi.access import SessionUser, require_auth
from app.alghalbi.constants import MSG_CLIENT_CREATED, MSG_GENERIC_ERROR
from app.alghalbi.db import db_session
from app.alghalbi.modules.clients.service import create_client, list_clients, validate_client_payload

bp = Blueprint("clients", __name__)


def _form_payload() -> dict:
    return {
        "full_name": request.form.get("full_name"),
        "email": request.form.get("email"),
        "phone": request.form.get("phone"),
        "notes": request.form.get("notes"),
    }


# ---------- List ----------
@bp.get("/clients")
@require_auth
def clients_list(user: SessionUser):
    s = db_session()
    clients = list_clients(s, user.id)
    return render_template("clients/list.html", clients=clients)


# ---------- New ----------
@bp.get("/clients/new")
@require_auth
def clients_new_get(user: SessionUser):
    return render_template("clients/new.html", errors=[], form={})


@bp.post("/clients/new")
@require_auth
def clients_new_post(user: SessionUser):
    payload = _form_payload()

    errors = validate_client_payload(payload)
    if errors:
        return render_template("clients/new.html", errors=errors, form=payload), 400

    s = db_session()
    try:
        client = create_client(s, payload, user)
        s.commit()
    except Exception:
        s.rollback()
        current_app.logger.exception(
            "Create client failed (user_id=%s request_id=%s)", user.id, getattr(g, "request_id", None)
        )
        return render_template("clients/new.html", errors=[MSG_GENERIC_ERROR], form=payload), 500

    current_app.logger.info("Client created id=%s owner_id=%s", client.id, user.id)
    flash(MSG_CLIENT_CREATED, "success")
    return redirect(url_for("clients.clients_list"))

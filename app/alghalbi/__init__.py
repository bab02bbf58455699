import logging
import os
from datetime import timedelta

from flask import Flask, g, render_template, request
from dotenv import load_dotenv

from app.alghalbi.config import DEFAULT_SESSION_SECRET, load_config
from app.alghalbi.constants import MSG_CSRF_INVALID
from app.alghalbi.db import init_db, teardown_db_session
from app.alghalbi.routes import bp as routes_bp
from app.alghalbi.auth import bp as auth_bp
from app.alghalbi.access import load_current_user
from app.alghalbi.modules.clients.admin import bp as clients_bp
from app.alghalbi.sessions import ServerSessionInterface

# Anonymous entry points; there is no session to forge a request against yet.
_CSRF_EXEMPT_ENDPOINTS = frozenset({"auth.login_post", "auth.register_post"})


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True
    app.logger.setLevel(app.config.get("LOG_LEVEL") or "INFO")

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or not (os.environ.get("DATABASE_URL") or "").strip():
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if str(app.config.get("SECRET_KEY") or "") in ("", DEFAULT_SESSION_SECRET):
            raise RuntimeError("SESSION_SECRET must be set to a strong value in production (not default).")

    init_db(app)
    app.session_interface = ServerSessionInterface()

    def _dispose_engine_on_fork() -> None:
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    # CSRF protection (minimal)
    from app.alghalbi.security import ensure_csrf_token, validate_csrf

    @app.context_processor
    def _inject_globals() -> dict:
        return {
            # Anonymous visitors get no token, so their session stays empty and unsaved.
            "csrf_token": ensure_csrf_token() if getattr(g, "current_user", None) else "",
            "current_user": getattr(g, "current_user", None),
        }

    @app.template_filter("dateformat")
    def _dateformat_filter(value, format: str = "%Y-%m-%d") -> str:
        if value is None:
            return "—"
        if hasattr(value, "strftime"):
            return value.strftime(format)
        return str(value)

    app.before_request(load_current_user)

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(("/static/", "/health", "/healthz")):
            return None
        # Anonymous requests: the exempt entry points or a require_auth redirect.
        if getattr(g, "current_user", None) is None:
            return None
        ensure_csrf_token()
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            if request.endpoint in _CSRF_EXEMPT_ENDPOINTS:
                return None
            if not validate_csrf(request):
                app.logger.warning(
                    "CSRF rejected (endpoint=%s request_id=%s)", request.endpoint, getattr(g, "request_id", None)
                )
                return render_template("errors/400.html", message=MSG_CSRF_INVALID), 400

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(clients_bp)

    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        return render_template("errors/404.html"), 404

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.error(
            "Unhandled 500 (request_id=%s)",
            getattr(g, "request_id", None),
            exc_info=getattr(e, "original_exception", None) or e,
        )
        return render_template("errors/500.html"), 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app

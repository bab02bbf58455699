import os
from dataclasses import dataclass


DEFAULT_SESSION_SECRET = "dev_secret_change_me"


@dataclass(frozen=True)
class Settings:
    session_secret: str
    env: str
    database_url: str
    log_level: str

    allowed_email_domain: str
    domain_gate_bootstrap: bool

    port: int


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getflag(name: str) -> bool:
    return _getenv(name, "0").lower() in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    return Settings(
        session_secret=_getenv("SESSION_SECRET") or _getenv("SECRET_KEY", DEFAULT_SESSION_SECRET),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///alghalbi.db"),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
        allowed_email_domain=_getenv("ALLOWED_EMAIL_DOMAIN", "alghalbilaw.com").lower().lstrip("@"),
        domain_gate_bootstrap=_getflag("DOMAIN_GATE_BOOTSTRAP"),
        port=int(_getenv("PORT", "10000")),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.session_secret,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "LOG_LEVEL": s.log_level,
        "ALLOWED_EMAIL_DOMAIN": s.allowed_email_domain,
        "DOMAIN_GATE_BOOTSTRAP": s.domain_gate_bootstrap,
        "PORT": s.port,
        # security defaults
        "SESSION_COOKIE_NAME": "alghalbi_session",
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        # form posts only, no uploads
        "MAX_CONTENT_LENGTH": 1 * 1024 * 1024,
    }

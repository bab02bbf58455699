from __future__ import annotations


def normalize_email(raw: str | None) -> str:
    return (raw or "").strip().lower()


def is_allowed_email(email: str, domain: str) -> bool:
    """True iff the normalized email ends with ``@<domain>``."""
    domain = (domain or "").strip().lower().lstrip("@")
    if not domain:
        return False
    return normalize_email(email).endswith(f"@{domain}")


def gate_allows(email: str, domain: str, *, bootstrap: bool = False, user_count: int | None = None) -> bool:
    """
    Domain gate for register/login.

    With ``bootstrap`` enabled the gate is skipped while no account exists yet,
    so the first administrator can sign up from any address. ``user_count`` is
    only consulted in that mode.
    """
    if bootstrap and user_count == 0:
        return True
    return is_allowed_email(email, domain)

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select

from app.alghalbi.audit import record_event
from app.alghalbi.constants import MSG_CLIENT_NAME_REQUIRED
from app.alghalbi.modules.clients.models import Client

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.alghalbi.access import SessionUser


def _opt(value: str | None) -> str | None:
    return (value or "").strip() or None


def validate_client_payload(payload: dict) -> list[str]:
    """Validate client creation payload. Returns list of errors."""
    errors = []
    if not (payload.get("full_name") or "").strip():
        errors.append(MSG_CLIENT_NAME_REQUIRED)
    return errors


def create_client(s: "Session", payload: dict, user: "SessionUser") -> Client:
    """Create a client owned by ``user``. Caller commits."""
    full_name = (payload.get("full_name") or "").strip()
    if not full_name:
        raise ValueError("full_name is required")
    email = _opt(payload.get("email"))
    client = Client(
        full_name=full_name,
        email=email.lower() if email else None,
        phone=_opt(payload.get("phone")),
        notes=_opt(payload.get("notes")),
        owner_id=user.id,
    )
    s.add(client)
    s.flush()

    record_event(
        s,
        actor=user,
        action="client.create",
        entity_type="Client",
        entity_id=str(client.id),
        metadata={"full_name": client.full_name},
    )
    return client


def list_clients(s: "Session", owner_id: int, limit: int | None = None) -> list[Client]:
    """The owner's clients, newest first."""
    stmt = (
        select(Client)
        .where(Client.owner_id == owner_id)
        .order_by(Client.created_at.desc(), Client.id.desc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(s.execute(stmt).scalars().all())


def count_clients(s: "Session", owner_id: int) -> int:
    return int(s.execute(select(func.count(Client.id)).where(Client.owner_id == owner_id)).scalar_one())

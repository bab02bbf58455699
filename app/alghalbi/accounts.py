from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from app.alghalbi.gate import normalize_email
from app.alghalbi.models import User

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


class DuplicateEmailError(Exception):
    """Raised by create() when the email already belongs to an account."""

    def __init__(self, email: str):
        super().__init__(f"Email already registered: {email}")
        self.email = email


def find_by_email(s: "Session", email: str) -> User | None:
    email = normalize_email(email)
    if not email:
        return None
    return s.execute(select(User).where(User.email == email)).scalar_one_or_none()


def create(s: "Session", *, email: str, name: str | None, password_hash: str) -> User:
    """
    Insert a user. Uniqueness rests on the users.email constraint, so two
    concurrent registrations of the same address cannot both commit.
    The insert runs in a SAVEPOINT: a duplicate undoes only this user, not
    other pending work in the session.
    """
    email = normalize_email(email)
    user = User(email=email, name=(name or "").strip() or None, password_hash=password_hash)
    try:
        with s.begin_nested():
            s.add(user)
            s.flush()
    except IntegrityError as e:
        raise DuplicateEmailError(email) from e
    return user


def count(s: "Session") -> int:
    return int(s.execute(select(func.count(User.id))).scalar_one())

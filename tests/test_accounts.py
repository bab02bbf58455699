"""User store: lookup, insert and the unique-email constraint."""
import pytest

from app.alghalbi import accounts, create_app
from app.alghalbi.db import session_scope
from app.alghalbi.models import Base, User


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SESSION_SECRET", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)
    return app


def _emails(app) -> list[str]:
    with session_scope(app) as s:
        return [u.email for u in s.query(User).order_by(User.id).all()]


def test_create_normalizes_and_find_by_email_matches_any_case(app):
    with session_scope(app) as s:
        user = accounts.create(s, email=" A@AlGhalbiLaw.com ", name="  ", password_hash="h")
        assert user.id is not None
        assert user.name is None

    with session_scope(app) as s:
        found = accounts.find_by_email(s, "a@ALGHALBILAW.COM")
        assert found is not None
        assert found.email == "a@alghalbilaw.com"
        assert accounts.find_by_email(s, "") is None
        assert accounts.count(s) == 1


def test_create_duplicate_raises_and_keeps_first_row(app):
    with session_scope(app) as s:
        accounts.create(s, email="a@alghalbilaw.com", name="First", password_hash="h1")

    with session_scope(app) as s:
        with pytest.raises(accounts.DuplicateEmailError) as exc:
            accounts.create(s, email="A@alghalbilaw.com", name="Second", password_hash="h2")
        assert exc.value.email == "a@alghalbilaw.com"

    with session_scope(app) as s:
        user = s.query(User).one()
        assert user.name == "First"
        assert user.password_hash == "h1"


def test_duplicate_does_not_discard_other_pending_work(app):
    with session_scope(app) as s:
        accounts.create(s, email="a@alghalbilaw.com", name="A", password_hash="h")

    with session_scope(app) as s:
        b = accounts.create(s, email="b@alghalbilaw.com", name="B", password_hash="h")
        with pytest.raises(accounts.DuplicateEmailError):
            accounts.create(s, email="a@alghalbilaw.com", name="Again", password_hash="h")
        # Only the failed insert was undone; b is still pending in this session.
        assert b in s
        assert accounts.find_by_email(s, "b@alghalbilaw.com") is b

    assert _emails(app) == ["a@alghalbilaw.com", "b@alghalbilaw.com"]

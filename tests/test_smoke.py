import pytest

from app.alghalbi import create_app
from app.alghalbi.models import Base


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("SESSION_SECRET", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.delenv("DOMAIN_GATE_BOOTSTRAP", raising=False)
    monkeypatch.delenv("ALLOWED_EMAIL_DOMAIN", raising=False)

    app = create_app()

    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    return app.test_client()


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True


def test_healthz_ok(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.get_data(as_text=True) == "ok"


def test_health_does_not_open_a_session(client):
    r = client.get("/health")
    assert not r.headers.getlist("Set-Cookie")


def test_index_redirects_anonymous_to_login(client):
    r = client.get("/")
    assert r.status_code == 302
    assert r.headers["Location"] == "/login"


def test_index_redirects_signed_in_user_to_dashboard(client):
    client.post(
        "/register",
        data={"email": "lawyer@alghalbilaw.com", "name": "Lawyer", "password": "secret123"},
    )
    r = client.get("/")
    assert r.status_code == 302
    assert r.headers["Location"] == "/dashboard"


def test_login_and_register_forms_render(client):
    r = client.get("/login")
    assert r.status_code == 200
    assert "@alghalbilaw.com" in r.get_data(as_text=True)

    r = client.get("/register")
    assert r.status_code == 200
    assert 'name="password"' in r.get_data(as_text=True)


def test_unknown_path_renders_404(client):
    r = client.get("/no-such-page")
    assert r.status_code == 404


def test_production_requires_real_secret(tmp_path, monkeypatch):
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@localhost/db")
    monkeypatch.delenv("SESSION_SECRET", raising=False)
    monkeypatch.delenv("SECRET_KEY", raising=False)
    with pytest.raises(RuntimeError):
        create_app()


def test_production_rejects_sqlite(tmp_path, monkeypatch):
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("SESSION_SECRET", "a-long-production-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'prod.db'}")
    with pytest.raises(RuntimeError):
        create_app()

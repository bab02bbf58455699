"""
Create the schema directly from the ORM metadata (local / first boot).

Production databases should use `alembic upgrade head` instead.

Usage:
  python scripts/init_db.py
"""
import sys
from pathlib import Path

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.alghalbi import create_app
from app.alghalbi import accounts
from app.alghalbi.db import session_scope
from app.alghalbi.models import Base


def init_schema() -> int:
    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)
    with session_scope(app) as s:
        return accounts.count(s)


def main() -> None:
    users = init_schema()
    print("Initialized database schema.")
    print(f"Existing accounts: {users}")


if __name__ == "__main__":
    main()

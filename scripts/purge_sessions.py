"""
Delete expired server-side session rows.

Usage (cron / scheduled job):
  python scripts/purge_sessions.py
"""
from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.alghalbi import create_app
from app.alghalbi.db import session_scope
from app.alghalbi.sessions import purge_expired


def main() -> None:
    app = create_app()
    with session_scope(app) as s:
        removed = purge_expired(s)
    print(f"Purged {removed} expired session(s).", flush=True)


if __name__ == "__main__":
    main()

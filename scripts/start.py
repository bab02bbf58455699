#!/usr/bin/env python3
"""
Production startup script.

1. Runs migrations (release.py)
2. Starts gunicorn (replaces this process via os.execvp)

Usage:
    python scripts/start.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

DEFAULT_PORT = "10000"


def resolve_port(raw: str | None) -> int:
    port = (raw or "").strip() or DEFAULT_PORT
    port_int = int(port)
    if port_int < 1 or port_int > 65535:
        raise ValueError("Port out of range")
    return port_int


def main() -> None:
    try:
        port = resolve_port(os.environ.get("PORT"))
    except ValueError:
        print(f"ERROR: Invalid PORT value '{os.environ.get('PORT')}'. Must be integer 1-65535.", flush=True)
        sys.exit(1)

    print(f"PORT={port} validated", flush=True)

    print("=== Running release phase ===", flush=True)
    from scripts.release import run_release
    try:
        run_release()
    except Exception as e:
        print(f"Release failed: {e}", flush=True)
        sys.exit(1)

    print(f"=== Starting gunicorn on 0.0.0.0:{port} ===", flush=True)

    # exec so gunicorn is PID 1 and receives signals directly
    os.execvp(
        "gunicorn",
        [
            "gunicorn",
            "app.wsgi:app",
            "--bind", f"0.0.0.0:{port}",
            "--workers", "2",
            "--timeout", "60",
            "--preload",
            "--access-logfile", "-",
            "--error-logfile", "-",
        ],
    )


if __name__ == "__main__":
    main()

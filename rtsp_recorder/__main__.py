"""Allow ``python -m rtsp_recorder`` to launch the recorder."""

from __future__ import annotations

from .app.main import run

if __name__ == "__main__":
    raise SystemExit(run())

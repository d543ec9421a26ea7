"""ASGI entry point: ``uvicorn main:app``.

The reconcile loop starts with the app unless SRR_AUTOSTART=false.
"""
from __future__ import annotations

import os

from srr.app import create_app

app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=os.getenv("SRR_HOST", "0.0.0.0"), port=int(os.getenv("SRR_PORT", "8000")))

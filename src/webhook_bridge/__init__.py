"""Stateless webhook bridge between a conversational platform and a chat LLM.

This package provides a FastAPI application factory named ``create_app``
inside ``webhook_bridge/server.py`` (see :func:`create_app`).

Typical usage
-------------
from webhook_bridge import create_app
app = create_app()

or, from the provided launcher:

python scripts/run_server.py --host 0.0.0.0 --port 3000
"""

from __future__ import annotations

from .server import create_app

__all__ = ["create_app", "__version__", "get_version"]

__version__ = "0.1.0"


def get_version() -> str:
    """Return the package version."""
    return __version__

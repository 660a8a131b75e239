"""
REST transport for fleet-core.

``create_app()`` builds the FastAPI application; routers are thin and
delegate to :mod:`fleet.ops`.

Run locally::

    uvicorn fleet.api.app:create_app --factory --port 8000
"""

from fleet.api.app import create_app

__all__ = ["create_app"]

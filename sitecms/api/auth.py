"""Shared-secret API key check for write endpoints.

Accepts ``Authorization: Bearer <key>`` or the bare key.  When no ``API_KEY``
is configured authentication is disabled (development mode).
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)


def require_api_key(request: Request) -> None:
    """FastAPI dependency: 401 without a header, 403 with the wrong key."""
    api_key = request.app.state.settings.api_key
    if not api_key:
        logger.warning("API_KEY not set; authentication disabled")
        return

    header = request.headers.get("authorization")
    if not header:
        raise HTTPException(status_code=401, detail="Authorization header is required")

    token = header[len("Bearer "):] if header.startswith("Bearer ") else header
    if token != api_key:
        raise HTTPException(status_code=403, detail="Invalid API key")

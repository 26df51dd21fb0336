from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import requests

from ..core.exceptions import NotFoundError, TransportError
from .connection import ApiConnection

logger = logging.getLogger(__name__)


def send_json(conn: ApiConnection, method: str, path: str, *, payload: Optional[dict] = None) -> Any:
    """Issue one blocking JSON request and translate failures into transport errors."""

    url = conn.url(path)
    try:
        response = conn.session.request(method, url, json=payload, timeout=conn.timeout)
    except requests.RequestException as exc:
        logger.error("%s %s failed: %s", method, url, exc)
        raise TransportError(f"Could not reach attendance service: {exc}") from exc

    if response.status_code == 404:
        raise NotFoundError(f"No attendance found at {path}")
    if not response.ok:
        logger.error("%s %s returned HTTP %s", method, url, response.status_code)
        raise TransportError(
            f"Attendance service returned HTTP {response.status_code}",
            status_code=response.status_code,
        )

    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as exc:
        raise TransportError("Attendance service returned an invalid JSON body", status_code=response.status_code) from exc


async def send_json_async(conn: ApiConnection, method: str, path: str, *, payload: Optional[dict] = None) -> Any:
    # requests is blocking; run it off the event loop so other completions can interleave.
    return await asyncio.to_thread(send_json, conn, method, path, payload=payload)

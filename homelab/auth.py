"""Shared-secret guard for the tool endpoints."""

from __future__ import annotations

import secrets

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

from homelab.config import settings
from homelab.utils.logging import get_logger

log = get_logger(__name__)

API_KEY_HEADER = "X-API-Key"
NO_KEY_CONFIGURED = "no-key-configured"

_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)


def key_matches(presented: str | None, expected: str) -> bool:
    if presented is None:
        return False
    return secrets.compare_digest(presented.encode(), expected.encode())


async def require_api_key(presented: str | None = Security(_header)) -> str:
    """Reject tool calls whose header does not carry ``HOMELAB_API_KEY``.

    An empty ``HOMELAB_API_KEY`` disables the check for local clusters.
    """
    expected = settings.api_key
    if not expected:
        return NO_KEY_CONFIGURED
    if not key_matches(presented, expected):
        log.warning("auth.rejected", header_present=presented is not None)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid or missing {API_KEY_HEADER} header",
        )
    return presented

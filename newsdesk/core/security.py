"""
Security utilities: API key auth and rate limiting.

Run triggers are the only expensive endpoints (each one fans out into a dozen
model calls), so they are rate limited per API key rather than per client IP.
"""

from __future__ import annotations

import hashlib
import secrets
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader
from slowapi import Limiter
from slowapi.util import get_remote_address

from newsdesk.core.config import Settings, get_settings

API_KEY_HEADER = "X-API-Key"


def rate_limit_key(request: Request) -> str:
    """Bucket by a digest of the API key; anonymous callers share their IP's bucket."""
    api_key = request.headers.get(API_KEY_HEADER)
    if api_key:
        return "key:" + hashlib.sha256(api_key.encode("utf-8")).hexdigest()[:16]
    return "ip:" + get_remote_address(request)


# ── Rate limiter (attached to FastAPI app in main.py) ───────
limiter = Limiter(key_func=rate_limit_key)

# ── API Key authentication ──────────────────────────────────
_api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)


async def verify_api_key(
    api_key: Annotated[str | None, Security(_api_key_header)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> str:
    if not api_key or not secrets.compare_digest(api_key, settings.api_key):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or missing API key",
        )
    return api_key

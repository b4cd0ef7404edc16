"""
Source text endpoint — fetch a URL and return its readable article text.

POST /api/v1/source-text
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from newsdesk.api.v1.deps import AuthenticatedUser
from newsdesk.core.errors import InvalidSourceUrl, SourceFetchError
from newsdesk.schemas.schemas import SourceTextRequest, SourceTextResponse
from newsdesk.services.source_fetcher import fetch_source_text

router = APIRouter(tags=["source-text"])


@router.post("/source-text", response_model=SourceTextResponse)
async def get_source_text(body: SourceTextRequest, _api_key: AuthenticatedUser) -> SourceTextResponse:
    try:
        text = await fetch_source_text(body.url)
    except InvalidSourceUrl as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except SourceFetchError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    return SourceTextResponse(success=bool(text), text=text)

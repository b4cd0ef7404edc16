"""
Article version and preset endpoints.

GET  /api/v1/articles/{slug}            — every version, newest first
GET  /api/v1/articles/{slug}/{version}  — one version
GET  /api/v1/presets                    — list editor presets
POST /api/v1/presets                    — create a preset
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from newsdesk.api.v1.deps import AuthenticatedUser, Store
from newsdesk.schemas.schemas import ArticleVersionResponse, PresetCreate, PresetResponse

router = APIRouter(tags=["articles"])


@router.get("/articles/{slug}", response_model=list[ArticleVersionResponse])
async def list_article_versions(
    slug: str,
    store: Store,
    _api_key: AuthenticatedUser,
    org_id: str = Query(default="default", alias="orgId"),
) -> list[ArticleVersionResponse]:
    versions = await store.list_versions(org_id, slug)
    if not versions:
        raise HTTPException(status_code=404, detail=f"Article {slug} not found")
    return [ArticleVersionResponse.model_validate(article) for article in versions]


@router.get("/articles/{slug}/{version}", response_model=ArticleVersionResponse)
async def get_article_version(
    slug: str,
    version: int,
    store: Store,
    _api_key: AuthenticatedUser,
    org_id: str = Query(default="default", alias="orgId"),
) -> ArticleVersionResponse:
    article = await store.get_version(org_id, slug, version)
    if article is None:
        raise HTTPException(status_code=404, detail=f"Article {slug} v{version} not found")
    return ArticleVersionResponse.model_validate(article)


@router.get("/presets", response_model=list[PresetResponse])
async def list_presets(
    store: Store,
    _api_key: AuthenticatedUser,
    org_id: str | None = Query(default=None, alias="orgId"),
) -> list[PresetResponse]:
    return [PresetResponse.model_validate(p) for p in await store.list_presets(org_id)]


@router.post("/presets", response_model=PresetResponse, status_code=201)
async def create_preset(body: PresetCreate, store: Store, _api_key: AuthenticatedUser) -> PresetResponse:
    if await store.get_preset_by_name(body.name) is not None:
        raise HTTPException(status_code=409, detail=f"Preset {body.name!r} already exists")
    preset = await store.create_preset(
        name=body.name,
        instructions=body.instructions,
        blobs=body.blobs,
        length=body.length,
        org_id=body.org_id,
    )
    return PresetResponse.model_validate(preset)

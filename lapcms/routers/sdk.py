"""
Public content API consumed by the browser SDK.

Every data route resolves the calling site from `x-api-key` and checks the
request origin against the site's domain. Preflights are answered without
either check.
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, Response

from lapcms.core.context import SiteContext
from lapcms.core.errors import ValidationError
from lapcms.core.rate_limit import rate_limit
from lapcms.deps import get_category_service, get_post_service, get_sdk_site, get_tag_service
from lapcms.serializers import pagination, public_post_to_dict, term_to_dict
from lapcms.services.domain_gate import preflight_headers
from lapcms.services.posts import PostService
from lapcms.services.taxonomy import TaxonomyService

router = APIRouter()

SDK_SCRIPT = Path(__file__).resolve().parent.parent / "static" / "lap-cms.js"
BASE_URL_PLACEHOLDER = "__LAP_CMS_BASE_URL__"


@lru_cache(maxsize=1)
def load_sdk_script() -> str:
    return SDK_SCRIPT.read_text(encoding="utf-8")


def site_summary(site: SiteContext) -> dict:
    return {"name": site.name, "domain": site.domain}


@router.get("/lap-cms.js")
def sdk_script(request: Request):
    """Serve the SDK with this server's API base URL filled in."""
    base_url = str(request.base_url).rstrip("/") + "/api"
    return Response(
        content=load_sdk_script().replace(BASE_URL_PLACEHOLDER, base_url),
        media_type="application/javascript",
        headers={
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": "GET",
            "Access-Control-Allow-Headers": "Content-Type",
            "Cache-Control": "public, max-age=3600",  # 1 hour
        },
    )


@router.options("/{path:path}")
def sdk_preflight(path: str, request: Request):
    return Response(status_code=200, headers=preflight_headers(request.headers.get("origin")))


@router.get("/posts", dependencies=[Depends(rate_limit("general"))])
def sdk_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: Optional[str] = None,
    tag: Optional[str] = None,
    site: SiteContext = Depends(get_sdk_site),
    service: PostService = Depends(get_post_service),
):
    posts, total = service.list_posts(page=page, limit=limit, category=category, tag=tag, published_only=True)
    return {
        "success": True,
        "posts": [public_post_to_dict(post) for post in posts],
        "pagination": pagination(page, limit, total),
        "site": site_summary(site),
    }


@router.get("/posts/{slug}", dependencies=[Depends(rate_limit("general"))])
def sdk_post(
    slug: str,
    site: SiteContext = Depends(get_sdk_site),
    service: PostService = Depends(get_post_service),
):
    post = service.get_published_by_slug(slug)
    return {"success": True, "post": public_post_to_dict(post), "site": site_summary(site)}


@router.get("/search", dependencies=[Depends(rate_limit("general"))])
def sdk_search(
    q: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    site: SiteContext = Depends(get_sdk_site),
    service: PostService = Depends(get_post_service),
):
    if not q or not q.strip():
        raise ValidationError('Search query is required, use the "q" parameter', code="MISSING_QUERY")

    posts, total = service.list_posts(page=page, limit=limit, search=q.strip(), published_only=True)
    return {
        "success": True,
        "query": q,
        "posts": [public_post_to_dict(post) for post in posts],
        "pagination": pagination(page, limit, total),
        "site": site_summary(site),
    }


@router.get("/categories", dependencies=[Depends(rate_limit("general"))])
def sdk_categories(
    site: SiteContext = Depends(get_sdk_site),
    service: TaxonomyService = Depends(get_category_service),
):
    return {
        "success": True,
        "categories": [term_to_dict(term, count) for term, count in service.list_terms()],
        "site": site_summary(site),
    }


@router.get("/tags", dependencies=[Depends(rate_limit("general"))])
def sdk_tags(
    site: SiteContext = Depends(get_sdk_site),
    service: TaxonomyService = Depends(get_tag_service),
):
    return {
        "success": True,
        "tags": [term_to_dict(term, count) for term, count in service.list_terms()],
        "site": site_summary(site),
    }

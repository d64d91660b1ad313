"""FastAPI route definitions for the go-links service.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200)

    GET|POST /go/:code
        └─ 302 Redirect (always; failures land on /?error=...)

    POST /api/links
        ├─ ShortLinkCreate (request body)
        └─ ShortLinkResponse (201) or 409/422

    GET  /api/links?limit=&offset=
        └─ list[ShortLinkResponse] (200), newest first

    PATCH /api/links/:code
        ├─ ShortLinkUpdate (request body)
        └─ ShortLinkResponse (200) or 404

    GET  /api/links/:code/stats
        └─ ShortLinkStats (200) or 404

Key Behaviours
===============
- The redirect endpoint waits only for resolution; click recording runs in
  the background and cannot change the response.
- POST on /go/:code goes through exactly the same logic as GET, for
  tracking pixels and relays that POST to the link.
- Codes are matched case-insensitively everywhere.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse
from prometheus_client import Counter

from golinks.codes import normalize_code
from golinks.config import Settings
from golinks.dependencies import RequestContext, get_redirect_resolver, get_registry, get_request_context
from golinks.enums import HealthStatus
from golinks.exceptions import ShortCodeTakenError
from golinks.models import ShortLink
from golinks.redis import get_redis
from golinks.registry import LinkRegistry
from golinks.resolver import RedirectResolver
from golinks.schemas import (
    HealthResponse,
    LinkClickResponse,
    ShortLinkCreate,
    ShortLinkResponse,
    ShortLinkStats,
    ShortLinkUpdate,
)

__all__ = ["router"]

LINKS_CREATED_TOTAL = Counter(
    "golinks_links_created_total",
    "Total short links created through the API"
)

router = APIRouter()


def _short_url(settings: Settings, code: str) -> str:
    return f"{settings.BASE_URL.rstrip('/')}/go/{code}"


def _to_response(link: ShortLink, settings: Settings) -> ShortLinkResponse:
    return ShortLinkResponse(
        id=link.id,
        code=link.code,
        url=link.url,
        short_url=_short_url(settings, link.code),
        title=link.title,
        is_active=link.is_active,
        click_count=link.click_count,
        unique_click_count=link.unique_click_count,
        created_at=link.created_at,
    )


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(
    ctx: RequestContext = Depends(get_request_context),
    registry: LinkRegistry = Depends(get_registry),
    cache=Depends(get_redis),
) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    cache_status = HealthStatus.HEALTHY

    try:
        await registry.ping()
    except Exception as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    try:
        await cache.ping()
    except Exception as e:
        ctx.logger.error(f"Cache health check failed: {e}")
        cache_status = HealthStatus.UNHEALTHY

    status = (
        HealthStatus.HEALTHY
        if db_status is HealthStatus.HEALTHY and cache_status is HealthStatus.HEALTHY
        else HealthStatus.UNHEALTHY
    )
    return HealthResponse(status=status, database=db_status, cache=cache_status)


@router.api_route("/go/{code}", methods=["GET", "POST"], tags=["redirect"])
async def redirect_short_link(
    code: str,
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
    resolver: RedirectResolver = Depends(get_redirect_resolver),
) -> RedirectResponse:
    resolution = await resolver.resolve(
        code,
        query_params=request.query_params.multi_items(),
        metadata=ctx.click,
    )

    ctx.logger.info(
        f"Redirect {request.method} /go/{code} -> {resolution.url}",
        extra={
            "operation": "redirect",
            "short_code": code,
            "error": resolution.error.value if resolution.error else None,
            "duration_ms": ctx.get_duration(),
        },
    )
    return RedirectResponse(url=resolution.url, status_code=ctx.settings.REDIRECT_STATUS_CODE)


@router.post("/api/links", response_model=ShortLinkResponse, status_code=201, tags=["links"])
async def create_short_link(
    payload: ShortLinkCreate,
    ctx: RequestContext = Depends(get_request_context),
    registry: LinkRegistry = Depends(get_registry),
) -> ShortLinkResponse:
    try:
        link = await registry.create_short_link(payload)
    except ShortCodeTakenError as exc:
        ctx.logger.warning(f"Short link creation rejected: {exc}")
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    LINKS_CREATED_TOTAL.inc()
    return _to_response(link, ctx.settings)


@router.get("/api/links", response_model=list[ShortLinkResponse], tags=["links"])
async def list_short_links(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    ctx: RequestContext = Depends(get_request_context),
    registry: LinkRegistry = Depends(get_registry),
) -> list[ShortLinkResponse]:
    links = await registry.list_short_links(limit=limit, offset=offset)
    return [_to_response(link, ctx.settings) for link in links]


@router.patch("/api/links/{code}", response_model=ShortLinkResponse, tags=["links"])
async def update_short_link(
    code: str,
    payload: ShortLinkUpdate,
    ctx: RequestContext = Depends(get_request_context),
    registry: LinkRegistry = Depends(get_registry),
) -> ShortLinkResponse:
    link = await registry.update_short_link(normalize_code(code), payload)
    if link is None:
        raise HTTPException(status_code=404, detail="Short link not found")
    return _to_response(link, ctx.settings)


@router.get("/api/links/{code}/stats", response_model=ShortLinkStats, tags=["links"])
async def get_short_link_stats(
    code: str,
    ctx: RequestContext = Depends(get_request_context),
    registry: LinkRegistry = Depends(get_registry),
) -> ShortLinkStats:
    found = await registry.get_short_link_stats(normalize_code(code), limit=ctx.settings.RECENT_CLICKS_LIMIT)
    if found is None:
        raise HTTPException(status_code=404, detail="Short link not found")

    link, clicks = found
    return ShortLinkStats(
        **_to_response(link, ctx.settings).model_dump(),
        recent_clicks=[LinkClickResponse.model_validate(click) for click in clicks],
    )

"""API route handlers for the URL shortener.

Flow Diagram — Request Processing
=================================
::
    ┌─────────────┐
    │  HTTP       │
    │  Request    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ RequestCtx  │
    │ + service   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Service call│
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Map errors  │
    │ to status   │
    └─────────────┘

Key Behaviours
===============
- InvalidInputError → 400, URLNotFoundError → 404, InternalServiceError → 500.
- Internal errors never carry store details in the response body.
- The info endpoint requires the ``X-Api-Key`` header.
- Redirects use 307 so clients keep coming back through the counter.

Endpoints:
    /health:  Health check for monitoring.
    /api/v1/shorten:  Create (or return the existing) short token.
    /api/v1/{token}/info:  Record metadata, store-sourced.
    /{token}:  Redirect to original URL.
"""

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import RedirectResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from shortener.database import get_db
from shortener.dependencies import RequestContext, get_request_context, get_url_service
from shortener.enums import HealthStatus
from shortener.exceptions import InternalServiceError, InvalidInputError, URLNotFoundError
from shortener.schemas import HealthResponse, ShortenRequest, ShortenResponse, URLInfoResponse
from shortener.url_service import URLShorteningService

__all__ = ["router"]

router = APIRouter()


def _short_url(ctx: RequestContext, short_token: str) -> str:
    return f"{ctx.settings.BASE_URL}/{short_token}"


async def require_api_key(
    x_api_key: str | None = Header(default=None),
    ctx: RequestContext = Depends(get_request_context),
) -> None:
    if x_api_key != ctx.settings.ADMIN_API_KEY:
        ctx.logger.warning("Rejected info request with bad api key")
        raise HTTPException(status_code=401, detail="unauthorized")


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    cache_status = HealthStatus.HEALTHY

    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    try:
        await ctx.cache_client.ping()
    except Exception as e:
        ctx.logger.error(f"Cache health check failed: {e}")
        cache_status = HealthStatus.UNHEALTHY

    status = (
        HealthStatus.HEALTHY
        if db_status is HealthStatus.HEALTHY and cache_status is HealthStatus.HEALTHY
        else HealthStatus.UNHEALTHY
    )
    return HealthResponse(status=status, database=db_status, cache=cache_status)


@router.post("/api/v1/shorten", response_model=ShortenResponse, status_code=201, tags=["urls"])
async def shorten_url(
    payload: ShortenRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: URLShorteningService = Depends(get_url_service),
) -> ShortenResponse:
    try:
        short_token = await service.shorten(payload.url)
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except InternalServiceError as exc:
        ctx.logger.error(
            "URL shortening failed",
            extra={"operation": "shorten", "duration_ms": ctx.get_duration()},
        )
        raise HTTPException(status_code=500, detail="internal server error") from exc

    ctx.logger.info(
        f"URL shortened: {short_token}",
        extra={"operation": "shorten", "short_token": short_token, "duration_ms": ctx.get_duration()},
    )
    return ShortenResponse(short_token=short_token, short_url=_short_url(ctx, short_token))


@router.get(
    "/api/v1/{short_token}/info",
    response_model=URLInfoResponse,
    tags=["urls"],
    dependencies=[Depends(require_api_key)],
)
async def get_url_info(
    short_token: str,
    ctx: RequestContext = Depends(get_request_context),
    service: URLShorteningService = Depends(get_url_service),
) -> URLInfoResponse:
    try:
        record = await service.get_info(short_token)
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except URLNotFoundError as exc:
        raise HTTPException(status_code=404, detail="short url not found") from exc
    except InternalServiceError as exc:
        raise HTTPException(status_code=500, detail="internal server error") from exc

    return URLInfoResponse(
        original_url=record.original_url,
        short_token=record.short_token,
        short_url=_short_url(ctx, record.short_token),
        click_count=record.click_count,
        created_at=record.created_at,
        valid_until=record.valid_until,
    )


@router.get("/{short_token}", tags=["redirect"])
async def redirect_to_url(
    short_token: str,
    ctx: RequestContext = Depends(get_request_context),
    service: URLShorteningService = Depends(get_url_service),
) -> RedirectResponse:
    try:
        original_url = await service.resolve(short_token)
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except URLNotFoundError as exc:
        ctx.logger.info(
            f"Redirect failed - short token not found: {short_token}",
            extra={"operation": "redirect", "short_token": short_token, "error": "not_found"},
        )
        raise HTTPException(status_code=404, detail="not found") from exc
    except InternalServiceError as exc:
        raise HTTPException(status_code=500, detail="internal server error") from exc

    ctx.logger.debug(
        f"Redirect: {short_token} -> {original_url}",
        extra={"operation": "redirect", "short_token": short_token, "duration_ms": ctx.get_duration()},
    )
    return RedirectResponse(url=original_url, status_code=307)

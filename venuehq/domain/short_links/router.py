"""Short link router - Staff link management and analytics, public redirects"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from ...database import get_db
from ...models import User
from ...permissions import require_permission
from ...rate_limiter import client_ip, create_rate_limiter
from .schemas import (
    AliasCreate,
    AliasResponse,
    LinkAnalytics,
    ShortLinkCreate,
    ShortLinkCreated,
    ShortLinkResponse,
    ShortLinkUpdate,
    VolumeResponse,
)
from .service import ShortLinkService

router = APIRouter(prefix="/short-links", tags=["Short Links"])
redirect_router = APIRouter(tags=["Short Links"])

redirect_limiter = create_rate_limiter(limit=120, window_seconds=60, key_prefix="short_link_redirect")


def get_short_link_service(db: Session = Depends(get_db)) -> ShortLinkService:
    """Dependency injection for ShortLinkService"""
    return ShortLinkService(db)


# ============================================================================
# PUBLIC REDIRECT
# ============================================================================


@redirect_router.get("/l/{code}")
async def follow_short_link(
    code: str,
    request: Request,
    _: None = Depends(redirect_limiter),
    service: ShortLinkService = Depends(get_short_link_service),
):
    link = service.resolve(
        code,
        user_agent=request.headers.get("user-agent"),
        referrer=request.headers.get("referer"),
        ip_address=client_ip(request),
        country=request.headers.get("cf-ipcountry"),
    )
    return RedirectResponse(url=link.destination_url, status_code=302)


# ============================================================================
# STAFF MANAGEMENT
# ============================================================================


@router.get("", response_model=list[ShortLinkResponse])
async def list_short_links(
    link_type: Optional[str] = None,
    _user: User = Depends(require_permission("short_links", "view")),
    service: ShortLinkService = Depends(get_short_link_service),
):
    return service.list_links(link_type)


@router.post("", response_model=ShortLinkCreated)
async def create_short_link(
    data: ShortLinkCreate,
    current_user: User = Depends(require_permission("short_links", "create")),
    service: ShortLinkService = Depends(get_short_link_service),
):
    result = service.create_short_link(data, current_user)
    response = ShortLinkCreated.model_validate(result["link"])
    response.already_exists = result["already_exists"]
    return response


@router.get("/volume", response_model=VolumeResponse)
async def get_volume(
    period: str = Query("day"),
    days: int = Query(30, ge=1, le=365),
    _user: User = Depends(require_permission("short_links", "view")),
    service: ShortLinkService = Depends(get_short_link_service),
):
    return service.get_volume(period, days)


@router.get("/{link_id}", response_model=ShortLinkResponse)
async def get_short_link(
    link_id: int,
    _user: User = Depends(require_permission("short_links", "view")),
    service: ShortLinkService = Depends(get_short_link_service),
):
    return service.get_link(link_id)


@router.put("/{link_id}", response_model=ShortLinkResponse)
async def update_short_link(
    link_id: int,
    data: ShortLinkUpdate,
    current_user: User = Depends(require_permission("short_links", "edit")),
    service: ShortLinkService = Depends(get_short_link_service),
):
    return service.update_short_link(link_id, data, current_user)


@router.delete("/{link_id}")
async def delete_short_link(
    link_id: int,
    current_user: User = Depends(require_permission("short_links", "delete")),
    service: ShortLinkService = Depends(get_short_link_service),
):
    service.delete_short_link(link_id, current_user)
    return {"success": True}


@router.post("/{link_id}/aliases", response_model=AliasResponse, status_code=201)
async def add_alias(
    link_id: int,
    data: AliasCreate,
    current_user: User = Depends(require_permission("short_links", "edit")),
    service: ShortLinkService = Depends(get_short_link_service),
):
    return service.add_alias(link_id, data, current_user)


@router.delete("/{link_id}/aliases/{alias_id}")
async def delete_alias(
    link_id: int,
    alias_id: int,
    current_user: User = Depends(require_permission("short_links", "edit")),
    service: ShortLinkService = Depends(get_short_link_service),
):
    service.delete_alias(link_id, alias_id, current_user)
    return {"success": True}


@router.get("/{link_id}/analytics", response_model=LinkAnalytics)
async def get_link_analytics(
    link_id: int,
    days: int = Query(30, ge=1, le=365),
    _user: User = Depends(require_permission("short_links", "view")),
    service: ShortLinkService = Depends(get_short_link_service),
):
    return service.get_link_analytics(link_id, days)

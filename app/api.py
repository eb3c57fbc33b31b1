"""JSON read routes for the dashboard."""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import PlainTextResponse

from app.schemas import FeedDetail, HomeStatus, MapMarker, RecentOrder
from services.dashboard import DashboardService, build_default_dashboard
from services.errors import FeedNotFound, UpstreamUnavailable

router = APIRouter()


def get_dashboard() -> DashboardService:
    return build_default_dashboard()


def _bad_gateway(exc: UpstreamUnavailable) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)


@router.get(
    "/",
    response_model=HomeStatus,
    summary="Home status, including any pending error message.",
)
def home(request: Request) -> HomeStatus:
    return HomeStatus(error=request.session.pop("error", None))


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/all_feeds.json",
    response_model=List[MapMarker],
    response_model_exclude_none=True,
    summary="Map markers for every registered egg.",
)
def all_feeds(dashboard: DashboardService = Depends(get_dashboard)) -> List[Dict[str, Any]]:
    try:
        return dashboard.get_all_feeds()
    except UpstreamUnavailable as exc:
        raise _bad_gateway(exc) from exc


@router.get(
    "/recently_{order}.json",
    summary="The ten most recently updated eggs in the requested order.",
)
def recent_feeds(
    order: RecentOrder,
    dashboard: DashboardService = Depends(get_dashboard),
) -> List[Dict[str, Any]]:
    try:
        return dashboard.get_recent(order.value)
    except UpstreamUnavailable as exc:
        raise _bad_gateway(exc) from exc


@router.get(
    "/egg/{feed_id}",
    response_model=FeedDetail,
    response_model_exclude_none=True,
    summary="Latest readings of one egg and the eggs around it.",
)
def egg_detail(
    feed_id: int,
    dashboard: DashboardService = Depends(get_dashboard),
) -> FeedDetail:
    try:
        return dashboard.get_feed(feed_id)
    except FeedNotFound as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Egg {feed_id} not found.",
        ) from exc
    except UpstreamUnavailable as exc:
        raise _bad_gateway(exc) from exc


# TODO: gate behind an admin credential once the deployment has one to check.
@router.get(
    "/cache/flush",
    response_class=PlainTextResponse,
    summary="Drop every cached listing.",
)
def flush_cache(dashboard: DashboardService = Depends(get_dashboard)) -> str:
    count = dashboard.flush_cache()
    return f"flushed {count} entries"

"""Form-driven routes that register and edit eggs.

Failures never produce an error page: the message is left in the session
for the home route to show once, and the browser is sent back to ``/``.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import RedirectResponse

from app.schemas import FeedView
from services.dashboard import DashboardService, FeedUpdate, build_default_dashboard
from services.errors import DashboardError

logger = logging.getLogger(__name__)

router = APIRouter(include_in_schema=False)


def get_dashboard() -> DashboardService:
    return build_default_dashboard()


def redirect_with_error(request: Request, message: str) -> RedirectResponse:
    request.session["error"] = message
    return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)


@router.post("/register", name="register")
def register(
    request: Request,
    serial: Optional[str] = Form(None),
    dashboard: DashboardService = Depends(get_dashboard),
) -> RedirectResponse:
    try:
        credential = dashboard.register(serial, request.session)
    except DashboardError as exc:
        logger.info("Registration failed", extra={"reason": exc.message})
        return redirect_with_error(request, exc.message)
    return RedirectResponse(
        f"/egg/{credential.feed_id}/edit", status_code=status.HTTP_303_SEE_OTHER
    )


@router.get("/egg/{feed_id}/edit", name="egg_edit", response_model=None)
def edit_egg(
    request: Request,
    feed_id: int,
    dashboard: DashboardService = Depends(get_dashboard),
) -> FeedView | RedirectResponse:
    try:
        return dashboard.get_editable_feed(feed_id, request.session)
    except DashboardError as exc:
        return redirect_with_error(request, exc.message)


@router.post("/egg/{feed_id}/update", name="egg_update")
def update_egg(
    request: Request,
    feed_id: int,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    location_lat: Optional[str] = Form(None),
    location_lon: Optional[str] = Form(None),
    location_ele: Optional[str] = Form(None),
    location_exposure: Optional[str] = Form(None),
    existing_tags: Optional[str] = Form(None),
    dashboard: DashboardService = Depends(get_dashboard),
) -> RedirectResponse:
    fields = FeedUpdate(
        title=title,
        description=description,
        location_lat=location_lat,
        location_lon=location_lon,
        location_ele=location_ele,
        location_exposure=location_exposure,
        existing_tags=existing_tags,
    )
    try:
        dashboard.update(feed_id, fields, request.session)
    except DashboardError as exc:
        return redirect_with_error(request, exc.message)
    return RedirectResponse(f"/egg/{feed_id}", status_code=status.HTTP_303_SEE_OTHER)

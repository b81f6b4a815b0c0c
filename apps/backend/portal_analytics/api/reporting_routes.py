from __future__ import annotations

import hmac
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from portal_analytics.core.config import settings
from portal_analytics.core.openai_client import InsightsUnavailable
from portal_analytics.db import get_db
from portal_analytics.services import reporting
from portal_analytics.services.insights import build_insights
from portal_analytics.services.store import SqlStore
from portal_analytics.services.tenants import resolve_tenant

router = APIRouter(prefix="/analytics")


def require_dashboard_token(authorization: Optional[str] = Header(default=None)) -> None:
    expected = settings.dashboard_api_token
    if not expected:
        return
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not hmac.compare_digest(token.strip(), expected):
        raise HTTPException(status_code=401, detail="Not authenticated")


def report_scope(
    tenant_id: Optional[str] = Query(default=None, alias="tenantId"),
    x_organization_id: Optional[str] = Header(default=None),
    x_tenant_id: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> reporting.ReportScope:
    identifier = x_organization_id or x_tenant_id or tenant_id
    if not identifier:
        raise HTTPException(status_code=400, detail="Organization or Tenant ID required")

    ctx = resolve_tenant(SqlStore(db), identifier)
    if not ctx.resolved:
        raise HTTPException(status_code=404, detail="Unknown tenant")
    return reporting.ReportScope(org_id=ctx.org_id, project_id=ctx.project_id)


def report_window(days: int = Query(default=30)) -> reporting.Window:
    return reporting.Window.last_days(days)


guarded = [Depends(require_dashboard_token)]


@router.get("/overview", dependencies=guarded)
def overview_report(
    scope: reporting.ReportScope = Depends(report_scope),
    window: reporting.Window = Depends(report_window),
    db: Session = Depends(get_db),
):
    return reporting.overview(db, scope, window)


@router.get("/page-views", dependencies=guarded)
def page_views_report(
    group_by: Literal["path", "day", "hour"] = Query(default="path", alias="groupBy"),
    limit: int = Query(default=20, ge=1, le=500),
    scope: reporting.ReportScope = Depends(report_scope),
    window: reporting.Window = Depends(report_window),
    db: Session = Depends(get_db),
):
    return {"data": reporting.page_views(db, scope, window, group_by=group_by, limit=limit)}


@router.get("/events", dependencies=guarded)
def events_report(
    limit: int = Query(default=50, ge=1, le=500),
    scope: reporting.ReportScope = Depends(report_scope),
    window: reporting.Window = Depends(report_window),
    db: Session = Depends(get_db),
):
    return reporting.events(db, scope, window, limit=limit)


@router.get("/scroll-depth", dependencies=guarded)
def scroll_depth_report(
    scope: reporting.ReportScope = Depends(report_scope),
    window: reporting.Window = Depends(report_window),
    db: Session = Depends(get_db),
):
    return {"data": reporting.scroll_depth(db, scope, window)}


@router.get("/web-vitals", dependencies=guarded)
def web_vitals_report(
    path: Optional[str] = None,
    scope: reporting.ReportScope = Depends(report_scope),
    window: reporting.Window = Depends(report_window),
    db: Session = Depends(get_db),
):
    return reporting.web_vitals(db, scope, window, path=path)


@router.get("/sessions", dependencies=guarded)
def sessions_report(
    scope: reporting.ReportScope = Depends(report_scope),
    window: reporting.Window = Depends(report_window),
    db: Session = Depends(get_db),
):
    return reporting.sessions(db, scope, window)


@router.get("/heatmap", dependencies=guarded)
def heatmap_report(
    path: Optional[str] = None,
    scope: reporting.ReportScope = Depends(report_scope),
    window: reporting.Window = Depends(report_window),
    db: Session = Depends(get_db),
):
    return reporting.heatmap(db, scope, window, path=path)


class InsightsRequest(BaseModel):
    days: int = Field(30, ge=1, le=365)


@router.post("/insights", dependencies=guarded)
async def insights_report(
    req: InsightsRequest,
    scope: reporting.ReportScope = Depends(report_scope),
    db: Session = Depends(get_db),
):
    try:
        return await build_insights(db, scope, reporting.Window.last_days(req.days))
    except InsightsUnavailable as e:
        raise HTTPException(status_code=502, detail=str(e))

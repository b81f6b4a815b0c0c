"""
Read-side aggregations for the portal analytics dashboard.

All reports are scoped to one organization (optionally narrowed to a
single tenant project) and a rolling window of ``days`` days.
"""
from __future__ import annotations

import math
from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from portal_analytics.models import AnalyticsSession, Event, HeatmapClick, PageView, ScrollDepth, WebVital
from portal_analytics.telemetry_utils import referrer_host

VITAL_THRESHOLDS = {
    "LCP": (2500, 4000),
    "FID": (100, 300),
    "CLS": (0.1, 0.25),
    "INP": (200, 500),
    "TTFB": (800, 1800),
    "FCP": (1800, 3000),
}
VITAL_RATINGS = ("good", "needs-improvement", "poor")
DEVICE_TYPES = ("desktop", "mobile", "tablet")


@dataclass(frozen=True)
class ReportScope:
    org_id: str
    project_id: Optional[str] = None


@dataclass(frozen=True)
class Window:
    days: int
    start: datetime
    prev_start: datetime

    @classmethod
    def last_days(cls, days: int, now: datetime | None = None) -> "Window":
        days = max(1, min(365, int(days)))
        now = now or datetime.now(timezone.utc)
        start = now - timedelta(days=days)
        return cls(days=days, start=start, prev_start=start - timedelta(days=days))


def _scoped(q: Query, model, scope: ReportScope) -> Query:
    q = q.filter(model.org_id == scope.org_id)
    if scope.project_id:
        q = q.filter(model.tenant_id == scope.project_id)
    return q


def _pct(part: float, whole: float, digits: int = 1) -> float:
    return round(part / whole * 100, digits) if whole else 0.0


def _as_date(value: Any) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    return str(value)[:10]


def _row_dict(obj) -> Dict[str, Any]:
    return {c.name: getattr(obj, c.name) for c in obj.__table__.columns}


# ---------------------------------------------------------------------------
# overview
# ---------------------------------------------------------------------------
def overview(db: Session, scope: ReportScope, window: Window) -> Dict[str, Any]:
    pv = _scoped(db.query(PageView), PageView, scope).filter(PageView.created_at >= window.start)

    page_views = pv.count()
    prev_page_views = (
        _scoped(db.query(PageView), PageView, scope)
        .filter(PageView.created_at >= window.prev_start, PageView.created_at < window.start)
        .count()
    )
    unique_visitors = (
        pv.filter(PageView.visitor_id.isnot(None))
        .with_entities(func.count(func.distinct(PageView.visitor_id)))
        .scalar()
        or 0
    )

    sessions = (
        _scoped(db.query(AnalyticsSession), AnalyticsSession, scope)
        .filter(AnalyticsSession.started_at >= window.start)
        .with_entities(
            AnalyticsSession.duration_seconds,
            AnalyticsSession.page_count,
            AnalyticsSession.converted,
        )
        .all()
    )
    total_sessions = len(sessions)
    bounces = sum(1 for s in sessions if (s.page_count or 1) <= 1)
    conversions = sum(1 for s in sessions if s.converted)

    avg_duration = round(sum(s.duration_seconds or 0 for s in sessions) / total_sessions) if total_sessions else 0
    avg_pages = round(sum(s.page_count or 0 for s in sessions) / total_sessions, 1) if total_sessions else 0.0

    events = (
        _scoped(db.query(func.count(Event.id)), Event, scope).filter(Event.created_at >= window.start).scalar() or 0
    )

    avg_scroll = (
        _scoped(
            db.query(func.avg(func.coalesce(ScrollDepth.max_depth_percent, ScrollDepth.depth, 0))),
            ScrollDepth,
            scope,
        )
        .filter(ScrollDepth.created_at >= window.start)
        .scalar()
    )

    top_pages = [
        {"path": path, "count": count}
        for path, count in pv.with_entities(PageView.path, func.count(PageView.id).label("n"))
        .group_by(PageView.path)
        .order_by(func.count(PageView.id).desc(), PageView.path)
        .limit(10)
        .all()
    ]

    referrers: Counter = Counter()
    for ref, count in (
        pv.filter(PageView.referrer.isnot(None), PageView.referrer != "")
        .with_entities(PageView.referrer, func.count(PageView.id))
        .group_by(PageView.referrer)
        .all()
    ):
        referrers[referrer_host(ref)] += count
    top_referrers = [{"source": s, "count": c} for s, c in referrers.most_common(10)]

    devices = {d: 0 for d in DEVICE_TYPES}
    for device_type, count in pv.with_entities(PageView.device_type, func.count(PageView.id)).group_by(
        PageView.device_type
    ):
        key = (device_type or "desktop").lower()
        devices[key if key in devices else "desktop"] += count
    total_devices = sum(devices.values())
    device_breakdown = [
        {"device": d, "count": c, "percentage": _pct(c, total_devices)} for d, c in devices.items()
    ]

    daily: Counter = Counter(_as_date(ts) for (ts,) in pv.with_entities(PageView.created_at))
    daily_page_views = [{"date": d, "count": c} for d, c in sorted(daily.items())]

    return {
        "summary": {
            "page_views": page_views,
            "page_views_trend": _pct(page_views - prev_page_views, prev_page_views),
            "unique_visitors": unique_visitors,
            "total_sessions": total_sessions,
            "avg_session_duration": avg_duration,
            "avg_pages_per_session": avg_pages,
            "bounce_rate": _pct(bounces, total_sessions),
            "conversion_rate": _pct(conversions, total_sessions, 2),
            "avg_scroll_depth": round(float(avg_scroll)) if avg_scroll is not None else 0,
            "events": events,
            "conversions": conversions,
        },
        "top_pages": top_pages,
        "top_referrers": top_referrers,
        "device_breakdown": device_breakdown,
        "daily_page_views": daily_page_views,
        "period": {"days": window.days, "start_date": window.start.isoformat()},
    }


# ---------------------------------------------------------------------------
# page views / events / scroll depth
# ---------------------------------------------------------------------------
def page_views(db: Session, scope: ReportScope, window: Window, group_by: str = "path", limit: int = 20) -> List[Dict[str, Any]]:
    pv = _scoped(db.query(PageView), PageView, scope).filter(PageView.created_at >= window.start)

    if group_by == "day":
        days = Counter(_as_date(ts) for (ts,) in pv.with_entities(PageView.created_at))
        return [{"date": d, "count": c} for d, c in sorted(days.items())]

    if group_by == "hour":
        hours = Counter(ts.hour for (ts,) in pv.with_entities(PageView.created_at))
        return [{"hour": h, "count": c} for h, c in sorted(hours.items())]

    rows = (
        pv.with_entities(PageView.path, func.count(PageView.id))
        .group_by(PageView.path)
        .order_by(func.count(PageView.id).desc(), PageView.path)
        .limit(limit)
        .all()
    )
    return [{"path": path, "count": count} for path, count in rows]


def events(db: Session, scope: ReportScope, window: Window, limit: int = 50) -> Dict[str, Any]:
    base = _scoped(db.query(Event), Event, scope).filter(Event.created_at >= window.start)

    counts = (
        base.with_entities(Event.event_name, func.count(Event.id))
        .group_by(Event.event_name)
        .order_by(func.count(Event.id).desc(), Event.event_name)
        .all()
    )
    recent = base.order_by(Event.created_at.desc()).limit(limit).all()

    return {
        "data": [{"name": name, "count": count} for name, count in counts],
        "events": [_row_dict(e) for e in recent],
    }


def scroll_depth(db: Session, scope: ReportScope, window: Window) -> List[Dict[str, Any]]:
    rows = (
        _scoped(db.query(ScrollDepth), ScrollDepth, scope)
        .filter(ScrollDepth.created_at >= window.start)
        .with_entities(ScrollDepth.path, func.avg(ScrollDepth.depth), func.count(ScrollDepth.id))
        .group_by(ScrollDepth.path)
        .order_by(func.count(ScrollDepth.id).desc(), ScrollDepth.path)
        .all()
    )
    return [{"path": path, "avg_depth": round(float(avg or 0)), "samples": n} for path, avg, n in rows]


# ---------------------------------------------------------------------------
# web vitals
# ---------------------------------------------------------------------------
def vital_status(metric: str, value: float) -> str:
    thresholds = VITAL_THRESHOLDS.get(metric)
    if not thresholds:
        return "unknown"
    good, poor = thresholds
    if value <= good:
        return "good"
    if value <= poor:
        return "needs-improvement"
    return "poor"


def p75(values: List[float]) -> Optional[float]:
    if not values:
        return None
    ordered = sorted(values)
    return ordered[int(math.floor(len(ordered) * 0.75))]


def _round_vital(metric: str, value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return round(value, 3) if metric == "CLS" else round(value)


def web_vitals(db: Session, scope: ReportScope, window: Window, path: str | None = None) -> Dict[str, Any]:
    q = _scoped(db.query(WebVital), WebVital, scope).filter(WebVital.created_at >= window.start)
    if path:
        q = q.filter(WebVital.page_path == path)

    values: Dict[str, List[float]] = {m: [] for m in VITAL_THRESHOLDS}
    ratings: Dict[str, Dict[str, int]] = {m: {r: 0 for r in VITAL_RATINGS} for m in VITAL_THRESHOLDS}

    for name, value, rating in q.with_entities(WebVital.metric_name, WebVital.metric_value, WebVital.metric_rating):
        metric = (name or "").upper()
        if metric not in values:
            continue
        values[metric].append(value)
        if rating in ratings[metric]:
            ratings[metric][rating] += 1

    out = {}
    for metric, samples in values.items():
        p = p75(samples)
        avg = sum(samples) / len(samples) if samples else None
        out[metric.lower()] = {
            "p75": _round_vital(metric, p),
            "avg": _round_vital(metric, avg),
            "samples": len(samples),
            "ratings": ratings[metric],
            "status": vital_status(metric, p) if p is not None else "no-data",
        }
    return out


# ---------------------------------------------------------------------------
# sessions / heatmap
# ---------------------------------------------------------------------------
def sessions(db: Session, scope: ReportScope, window: Window, limit: int = 100) -> Dict[str, Any]:
    rows = (
        _scoped(db.query(PageView), PageView, scope)
        .filter(PageView.created_at >= window.start)
        .order_by(PageView.created_at.desc())
        .all()
    )

    grouped: Dict[str, Dict[str, Any]] = {}
    for pv in rows:
        key = pv.session_id or pv.visitor_id
        if not key:
            continue
        s = grouped.get(key)
        if s is None:
            s = grouped[key] = {
                "session_id": key,
                "visitor_id": pv.visitor_id,
                "pages": [],
                "start_time": pv.created_at,
                "end_time": pv.created_at,
                "device_type": pv.device_type,
                "browser": pv.browser,
                "referrer": pv.referrer,
            }
        s["pages"].append(pv.path)
        s["start_time"] = min(s["start_time"], pv.created_at)
        s["end_time"] = max(s["end_time"], pv.created_at)

    listing = sorted(grouped.values(), key=lambda s: s["start_time"], reverse=True)[:limit]
    for s in listing:
        s["page_count"] = len(s["pages"])
        s["duration"] = (s["end_time"] - s["start_time"]).total_seconds()

    avg_pages = round(sum(s["page_count"] for s in listing) / len(listing), 1) if listing else 0
    return {"sessions": listing, "total_sessions": len(grouped), "avg_pages_per_session": avg_pages}


def heatmap(db: Session, scope: ReportScope, window: Window, path: str | None = None) -> Dict[str, Any]:
    q = _scoped(db.query(HeatmapClick), HeatmapClick, scope).filter(HeatmapClick.created_at >= window.start)
    if path:
        q = q.filter(HeatmapClick.page_path == path)
    clicks = q.all()

    zones: Dict[str, Dict[str, Any]] = {}
    elements: Dict[str, Dict[str, Any]] = {}
    element_pages = defaultdict(set)

    for c in clicks:
        zx = int((c.x_percent or 0) // 10 * 10)
        zy = int((c.y_percent or 0) // 10 * 10)
        zone = zones.setdefault(
            f"{zx}-{zy}",
            {"x": zx, "y": zy, "count": 0, "x_range": f"{zx}-{zx + 10}%", "y_range": f"{zy}-{zy + 10}%"},
        )
        zone["count"] += 1

        key = f"{c.element_tag or 'unknown'}:{c.element_id or c.element_class or 'no-id'}"
        el = elements.setdefault(
            key,
            {
                "tag": c.element_tag,
                "id": c.element_id,
                "class": c.element_class,
                "text": (c.element_text or "")[:50] or None,
                "count": 0,
            },
        )
        el["count"] += 1
        element_pages[key].add(c.page_path)

    top_elements = sorted(elements.items(), key=lambda kv: kv[1]["count"], reverse=True)[:30]
    return {
        "zones": sorted(zones.values(), key=lambda z: z["count"], reverse=True),
        "top_elements": [{**el, "pages": sorted(element_pages[key])} for key, el in top_elements],
        "total_clicks": len(clicks),
    }

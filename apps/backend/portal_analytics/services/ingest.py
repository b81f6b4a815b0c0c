"""
Per-type analytics handlers.

Each tracker payload type has its own model, target table and defaults,
so handlers are independent and never call each other. ``dispatch`` picks
one by ``type``; unknown types are stored as custom events named after the
type so older trackers keep working.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Tuple, Type

from portal_analytics.models import (
    AnalyticsSession,
    Event,
    HeatmapClick,
    KnownVisitor,
    KnownVisitorActivity,
    PageView,
    ScrollDepth,
    WebVital,
)
from portal_analytics.schemas.events import (
    EventPayload,
    HeatmapClickPayload,
    IdentifyPayload,
    IngestPayload,
    PageViewPayload,
    ScrollDepthPayload,
    SessionPayload,
    WebVitalsPayload,
)
from portal_analytics.telemetry_utils import parse_ts, parse_user_agent, resolve_path, truncate, utcnow

logger = logging.getLogger(__name__)

DEFAULT_TYPE = "page_view"

ELEMENT_CLASS_MAX = 200
ELEMENT_TEXT_MAX = 100


def handle_page_view(store, org_id: str, project_id: Optional[str], p: PageViewPayload) -> None:
    props = p.properties or {}
    device = parse_user_agent(p.user_agent)

    store.insert(
        PageView(
            org_id=org_id,
            tenant_id=project_id,
            session_id=p.session_id,
            visitor_id=p.visitor_id,
            path=resolve_path(p.path, p.url),
            title=p.title or props.get("page") or props.get("title"),
            referrer=p.referrer,
            user_agent=p.user_agent,
            device_type=device.device_type,
            browser=device.browser,
            screen_width=p.screen_width,
            screen_height=p.screen_height,
            viewport_width=p.viewport_width,
            viewport_height=p.viewport_height,
            language=p.language,
            timezone=p.timezone,
            created_at=parse_ts(p.timestamp),
        )
    )


def handle_event(store, org_id: str, project_id: Optional[str], p: EventPayload) -> None:
    name = p.event or p.event_name
    if not name:
        return

    store.insert(
        Event(
            org_id=org_id,
            tenant_id=project_id,
            session_id=p.session_id,
            visitor_id=p.visitor_id,
            event_name=name,
            event_category=p.event_category,
            event_action=p.event_action,
            event_label=p.event_label,
            event_value=p.event_value,
            path=resolve_path(p.path, p.url),
            referrer=p.referrer,
            user_agent=p.user_agent,
            properties=dict(p.properties or {}),
            created_at=parse_ts(p.timestamp),
        )
    )


def handle_session(store, org_id: str, project_id: Optional[str], p: SessionPayload) -> None:
    if not p.session_id:
        return

    if p.action == "start":
        if store.session_exists(p.session_id):
            # client retried or double-fired start; first row wins
            logger.info("session %s already started, ignoring duplicate start", p.session_id)
            return

        device = parse_user_agent(p.user_agent)
        store.insert(
            AnalyticsSession(
                id=p.session_id,
                org_id=org_id,
                tenant_id=project_id,
                visitor_id=p.visitor_id,
                first_page=p.first_page,
                last_page=p.last_page,
                referrer=p.referrer,
                device_type=device.device_type,
                browser=device.browser,
                os=device.os,
                screen_width=p.screen_width,
                screen_height=p.screen_height,
                utm_source=p.utm_source,
                utm_medium=p.utm_medium,
                utm_campaign=p.utm_campaign,
                utm_term=p.utm_term,
                utm_content=p.utm_content,
                started_at=parse_ts(p.timestamp),
            )
        )
        return

    if p.action not in ("update", "end"):
        logger.info("unknown session action %r for %s", p.action, p.session_id)
        return

    now = utcnow()
    patch = {
        "last_page": p.last_page,
        "page_count": p.page_count,
        "event_count": p.event_count,
        "duration_seconds": p.duration,
    }
    # absent counters are left alone, not nulled
    values: Dict[str, Any] = {k: v for k, v in patch.items() if v is not None}
    values["updated_at"] = now

    # conversions only ever get stamped; an update without them never clears one
    if p.converted:
        values["converted"] = True
        values["conversion_type"] = p.conversion_type
        values["conversion_value"] = p.conversion_value

    if p.action == "end":
        values["ended_at"] = now

    store.update_session(p.session_id, values)


def handle_scroll_depth(store, org_id: str, project_id: Optional[str], p: ScrollDepthPayload) -> None:
    depth = p.depth or p.max_depth_percent or 0

    store.insert(
        ScrollDepth(
            org_id=org_id,
            tenant_id=project_id,
            session_id=p.session_id,
            path=resolve_path(p.path, p.url),
            depth=depth,
            max_depth_percent=p.max_depth_percent or depth,
            time_to_25=p.time_to_25,
            time_to_50=p.time_to_50,
            time_to_75=p.time_to_75,
            time_to_100=p.time_to_100,
            total_time_seconds=p.total_time_seconds,
            device_type=p.device_type,
            created_at=parse_ts(p.timestamp),
        )
    )


def handle_web_vitals(store, org_id: str, project_id: Optional[str], p: WebVitalsPayload) -> None:
    name = p.metric or p.metric_name
    value = p.value if p.value is not None else p.metric_value
    if not name or value is None:
        return

    store.insert(
        WebVital(
            org_id=org_id,
            tenant_id=project_id,
            session_id=p.session_id,
            page_path=resolve_path(p.path, p.url),
            metric_name=name.upper(),
            metric_value=value,
            metric_rating=p.rating,
            metric_delta=p.delta,
            device_type=p.device_type,
            connection_type=p.connection_type,
            created_at=parse_ts(p.timestamp),
        )
    )


def handle_heatmap_click(store, org_id: str, project_id: Optional[str], p: HeatmapClickPayload) -> None:
    store.insert(
        HeatmapClick(
            org_id=org_id,
            tenant_id=project_id,
            session_id=p.session_id,
            page_path=resolve_path(p.path, p.url),
            x_percent=p.x_percent,
            y_percent=p.y_percent,
            x_absolute=p.x_absolute,
            y_absolute=p.y_absolute,
            viewport_width=p.viewport_width,
            viewport_height=p.viewport_height,
            page_height=p.page_height,
            element_tag=p.element_tag,
            element_id=p.element_id,
            element_class=truncate(p.element_class, ELEMENT_CLASS_MAX),
            element_text=truncate(p.element_text, ELEMENT_TEXT_MAX),
            device_type=p.device_type,
            created_at=parse_ts(p.timestamp),
        )
    )


def handle_identify(store, org_id: str, project_id: Optional[str], p: IdentifyPayload) -> None:
    """Link an anonymous visitor id to a known contact and log the identification."""
    if not p.contact_id and not p.email:
        logger.info("identify called without contactId or email")
        return
    if not p.visitor_id:
        logger.info("identify called without visitorId")
        return

    seen_at = parse_ts(p.timestamp)

    if store.get_known_visitor(p.visitor_id) is not None:
        store.update_known_visitor(
            p.visitor_id,
            {
                "contact_id": p.contact_id,
                "email": p.email,
                "last_seen": seen_at,
                "updated_at": seen_at,
            },
        )
    else:
        store.insert(
            KnownVisitor(
                visitor_id=p.visitor_id,
                org_id=org_id,
                tenant_id=project_id,
                contact_id=p.contact_id,
                email=p.email,
                first_seen=seen_at,
                last_seen=seen_at,
            )
        )

    store.insert(
        KnownVisitorActivity(
            org_id=org_id,
            tenant_id=project_id,
            visitor_id=p.visitor_id,
            contact_id=p.contact_id,
            session_id=p.session_id,
            page_path=p.path,
            event_type="identify",
            created_at=seen_at,
        )
    )


Handler = Callable[[Any, str, Optional[str], Any], None]

HANDLERS: Dict[str, Tuple[Type[IngestPayload], Handler]] = {
    "page_view": (PageViewPayload, handle_page_view),
    "event": (EventPayload, handle_event),
    "session": (SessionPayload, handle_session),
    "scroll_depth": (ScrollDepthPayload, handle_scroll_depth),
    "web_vitals": (WebVitalsPayload, handle_web_vitals),
    "heatmap_click": (HeatmapClickPayload, handle_heatmap_click),
    "identify": (IdentifyPayload, handle_identify),
}


def dispatch(store, event_type: str, org_id: str, project_id: Optional[str], payload: Dict[str, Any]) -> None:
    entry = HANDLERS.get(event_type)
    if entry is None:
        # older trackers send the event name as the type
        model = EventPayload.model_validate({**payload, "event": event_type})
        handle_event(store, org_id, project_id, model)
        return

    model_cls, handler = entry
    handler(store, org_id, project_id, model_cls.model_validate(payload))

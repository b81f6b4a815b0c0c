from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from portal_analytics.db import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class AnalyticsSession(Base):
    __tablename__ = "analytics_sessions"

    # client-generated session id
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    org_id: Mapped[str] = mapped_column(String(36), index=True)
    tenant_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    visitor_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    first_page: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_page: Mapped[str | None] = mapped_column(Text, nullable=True)
    referrer: Mapped[str | None] = mapped_column(Text, nullable=True)

    device_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    browser: Mapped[str | None] = mapped_column(String(32), nullable=True)
    os: Mapped[str | None] = mapped_column(String(32), nullable=True)
    screen_width: Mapped[int | None] = mapped_column(Integer, nullable=True)
    screen_height: Mapped[int | None] = mapped_column(Integer, nullable=True)

    utm_source: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    utm_medium: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_campaign: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_term: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_content: Mapped[str | None] = mapped_column(String(255), nullable=True)

    page_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    event_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    duration_seconds: Mapped[float | None] = mapped_column(Float, nullable=True)

    converted: Mapped[bool] = mapped_column(Boolean, default=False)
    conversion_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    conversion_value: Mapped[float | None] = mapped_column(Float, nullable=True)

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, index=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class PageView(Base):
    __tablename__ = "analytics_page_views"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    org_id: Mapped[str] = mapped_column(String(36), index=True)
    tenant_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    session_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    visitor_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    path: Mapped[str] = mapped_column(Text, default="/")
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    referrer: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    device_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    browser: Mapped[str | None] = mapped_column(String(32), nullable=True)

    screen_width: Mapped[int | None] = mapped_column(Integer, nullable=True)
    screen_height: Mapped[int | None] = mapped_column(Integer, nullable=True)
    viewport_width: Mapped[int | None] = mapped_column(Integer, nullable=True)
    viewport_height: Mapped[int | None] = mapped_column(Integer, nullable=True)
    language: Mapped[str | None] = mapped_column(String(32), nullable=True)
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, index=True)


class Event(Base):
    __tablename__ = "analytics_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    org_id: Mapped[str] = mapped_column(String(36), index=True)
    tenant_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    session_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    visitor_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    event_name: Mapped[str] = mapped_column(String(128), index=True)
    event_category: Mapped[str | None] = mapped_column(String(128), nullable=True)
    event_action: Mapped[str | None] = mapped_column(String(128), nullable=True)
    event_label: Mapped[str | None] = mapped_column(Text, nullable=True)
    event_value: Mapped[float | None] = mapped_column(Float, nullable=True)

    path: Mapped[str] = mapped_column(Text, default="/")
    referrer: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    properties: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, index=True)


class ScrollDepth(Base):
    __tablename__ = "analytics_scroll_depth"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    org_id: Mapped[str] = mapped_column(String(36), index=True)
    tenant_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    session_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    path: Mapped[str] = mapped_column(Text, default="/")
    depth: Mapped[float] = mapped_column(Float, default=0)
    max_depth_percent: Mapped[float | None] = mapped_column(Float, nullable=True)
    time_to_25: Mapped[float | None] = mapped_column(Float, nullable=True)
    time_to_50: Mapped[float | None] = mapped_column(Float, nullable=True)
    time_to_75: Mapped[float | None] = mapped_column(Float, nullable=True)
    time_to_100: Mapped[float | None] = mapped_column(Float, nullable=True)
    total_time_seconds: Mapped[float | None] = mapped_column(Float, nullable=True)
    device_type: Mapped[str | None] = mapped_column(String(16), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, index=True)


class WebVital(Base):
    __tablename__ = "analytics_web_vitals"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    org_id: Mapped[str] = mapped_column(String(36), index=True)
    tenant_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    session_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    page_path: Mapped[str] = mapped_column(Text, default="/", index=True)
    metric_name: Mapped[str] = mapped_column(String(16), index=True)  # LCP | CLS | FCP | ...
    metric_value: Mapped[float] = mapped_column(Float)
    metric_rating: Mapped[str | None] = mapped_column(String(32), nullable=True)
    metric_delta: Mapped[float | None] = mapped_column(Float, nullable=True)
    device_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    connection_type: Mapped[str | None] = mapped_column(String(16), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, index=True)


class HeatmapClick(Base):
    __tablename__ = "analytics_heatmap_clicks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    org_id: Mapped[str] = mapped_column(String(36), index=True)
    tenant_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    session_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    page_path: Mapped[str] = mapped_column(Text, default="/", index=True)
    x_percent: Mapped[float | None] = mapped_column(Float, nullable=True)
    y_percent: Mapped[float | None] = mapped_column(Float, nullable=True)
    x_absolute: Mapped[int | None] = mapped_column(Integer, nullable=True)
    y_absolute: Mapped[int | None] = mapped_column(Integer, nullable=True)
    viewport_width: Mapped[int | None] = mapped_column(Integer, nullable=True)
    viewport_height: Mapped[int | None] = mapped_column(Integer, nullable=True)
    page_height: Mapped[int | None] = mapped_column(Integer, nullable=True)

    element_tag: Mapped[str | None] = mapped_column(String(32), nullable=True)
    element_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    element_class: Mapped[str | None] = mapped_column(String(200), nullable=True)
    element_text: Mapped[str | None] = mapped_column(String(100), nullable=True)
    device_type: Mapped[str | None] = mapped_column(String(16), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, index=True)


class KnownVisitor(Base):
    __tablename__ = "known_visitors"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    visitor_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    org_id: Mapped[str] = mapped_column(String(36), index=True)
    tenant_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    contact_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    first_seen: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    last_seen: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class KnownVisitorActivity(Base):
    __tablename__ = "known_visitor_activity"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    org_id: Mapped[str] = mapped_column(String(36), index=True)
    tenant_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    visitor_id: Mapped[str] = mapped_column(String(64), index=True)
    contact_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    session_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    page_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    event_type: Mapped[str] = mapped_column(String(32), default="identify")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, index=True)

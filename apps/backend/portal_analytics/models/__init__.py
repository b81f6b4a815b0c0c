from portal_analytics.models.analytics import (
    AnalyticsSession,
    Event,
    HeatmapClick,
    KnownVisitor,
    KnownVisitorActivity,
    PageView,
    ScrollDepth,
    WebVital,
)
from portal_analytics.models.tenancy import Organization, Project

__all__ = [
    "AnalyticsSession",
    "Event",
    "HeatmapClick",
    "KnownVisitor",
    "KnownVisitorActivity",
    "Organization",
    "PageView",
    "Project",
    "ScrollDepth",
    "WebVital",
]

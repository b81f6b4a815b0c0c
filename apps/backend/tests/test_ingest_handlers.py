from datetime import datetime

import pytest

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
from portal_analytics.services.ingest import dispatch

CHROME_ANDROID = (
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/126.0.0.0 Mobile Safari/537.36"
)
EDGE_WIN = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36 Edg/126.0.2592.87"
)

ORG = "6a0c7a57-2f0e-4c1e-9c53-0d8f3b1f0a01"
PROJECT = "1f2e3d4c-5b6a-4798-8a9b-0c1d2e3f4a5b"


def _session(db, session_id="sess-1"):
    db.expire_all()
    return db.get(AnalyticsSession, session_id)


# ---------------------------------------------------------------------------
# page views / events
# ---------------------------------------------------------------------------
def test_page_view_row(store, db):
    dispatch(
        store,
        "page_view",
        ORG,
        PROJECT,
        {
            "url": "https://acmeplumbing.com/services/drains?utm_source=google",
            "sessionId": "sess-1",
            "visitorId": "vis-1",
            "userAgent": CHROME_ANDROID,
            "screenWidth": 412,
            "viewportWidth": 411.43,
            "language": "en-US",
            "timestamp": 1_767_225_600_000,
            "properties": {"page": "Drain Cleaning"},
        },
    )

    row = db.query(PageView).one()
    assert row.org_id == ORG
    assert row.tenant_id == PROJECT
    assert row.path == "/services/drains"
    assert row.title == "Drain Cleaning"
    assert row.device_type == "mobile"
    assert row.browser == "Chrome"
    assert row.viewport_width == 411
    assert row.created_at.replace(tzinfo=None) == datetime(2026, 1, 1)


def test_page_view_defaults(store, db):
    dispatch(store, "page_view", ORG, None, {})

    row = db.query(PageView).one()
    assert row.path == "/"
    assert row.tenant_id is None
    assert row.title is None
    assert row.browser == "unknown"


def test_custom_event(store, db):
    dispatch(
        store,
        "event",
        ORG,
        PROJECT,
        {
            "eventName": "form_submit",
            "eventCategory": "lead",
            "eventValue": 120,
            "path": "/contact",
            "properties": {"form": "quote"},
        },
    )

    row = db.query(Event).one()
    assert row.event_name == "form_submit"
    assert row.event_category == "lead"
    assert row.event_value == 120
    assert row.properties == {"form": "quote"}


def test_event_name_prefers_event_key(store, db):
    dispatch(store, "event", ORG, PROJECT, {"event": "cta_click", "eventName": "ignored"})
    assert db.query(Event).one().event_name == "cta_click"


def test_event_without_name_is_dropped(store, db):
    dispatch(store, "event", ORG, PROJECT, {"path": "/contact"})
    assert db.query(Event).count() == 0


def test_unknown_type_becomes_custom_event(store, db):
    dispatch(store, "phone_click", ORG, PROJECT, {"path": "/", "properties": {"number": "555-0100"}})

    row = db.query(Event).one()
    assert row.event_name == "phone_click"
    assert row.properties == {"number": "555-0100"}


# ---------------------------------------------------------------------------
# sessions
# ---------------------------------------------------------------------------
def test_session_start(store, db):
    dispatch(
        store,
        "session",
        ORG,
        PROJECT,
        {
            "sessionId": "sess-1",
            "visitorId": "vis-1",
            "firstPage": "/",
            "referrer": "https://www.google.com/",
            "userAgent": EDGE_WIN,
            "utmSource": "google",
            "utmCampaign": "spring-promo",
        },
    )

    row = _session(db)
    assert row.org_id == ORG
    assert row.first_page == "/"
    assert row.browser == "Edge"
    assert row.os == "Windows"
    assert row.utm_source == "google"
    assert row.converted is False
    assert row.ended_at is None


def test_session_action_defaults_to_start(store, db):
    dispatch(store, "session", ORG, PROJECT, {"sessionId": "sess-1"})
    assert _session(db) is not None


def test_duplicate_session_start_is_idempotent(store, db):
    dispatch(store, "session", ORG, PROJECT, {"sessionId": "sess-1", "utmSource": "google"})
    dispatch(store, "session", ORG, PROJECT, {"sessionId": "sess-1", "utmSource": "facebook"})

    assert db.query(AnalyticsSession).count() == 1
    assert _session(db).utm_source == "google"


def test_session_without_id_is_dropped(store, db):
    dispatch(store, "session", ORG, PROJECT, {"action": "start"})
    assert db.query(AnalyticsSession).count() == 0


def test_session_update_overwrites_counters(store, db):
    dispatch(store, "session", ORG, PROJECT, {"sessionId": "sess-1"})
    dispatch(store, "session", ORG, PROJECT, {"sessionId": "sess-1", "action": "update", "pageCount": 3, "lastPage": "/b"})
    dispatch(store, "session", ORG, PROJECT, {"sessionId": "sess-1", "action": "update", "pageCount": 2})

    row = _session(db)
    assert row.page_count == 2
    # absent fields are left as they were
    assert row.last_page == "/b"
    assert row.updated_at is not None


def test_conversion_survives_later_update(store, db):
    dispatch(store, "session", ORG, PROJECT, {"sessionId": "sess-1"})
    dispatch(
        store,
        "session",
        ORG,
        PROJECT,
        {
            "sessionId": "sess-1",
            "action": "update",
            "converted": True,
            "conversionType": "signup",
            "conversionValue": 49,
        },
    )
    dispatch(store, "session", ORG, PROJECT, {"sessionId": "sess-1", "action": "update", "pageCount": 5})

    row = _session(db)
    assert row.converted is True
    assert row.conversion_type == "signup"
    assert row.conversion_value == 49
    assert row.page_count == 5


def test_converted_false_does_not_unset(store, db):
    dispatch(store, "session", ORG, PROJECT, {"sessionId": "sess-1"})
    dispatch(store, "session", ORG, PROJECT, {"sessionId": "sess-1", "action": "update", "converted": True, "conversionType": "call"})
    dispatch(store, "session", ORG, PROJECT, {"sessionId": "sess-1", "action": "update", "converted": False})

    row = _session(db)
    assert row.converted is True
    assert row.conversion_type == "call"


@pytest.mark.parametrize("flag", ["yes", 1, "form"])
def test_truthy_converted_value_stamps_conversion(store, db, flag):
    dispatch(store, "session", ORG, PROJECT, {"sessionId": "sess-1"})
    dispatch(
        store,
        "session",
        ORG,
        PROJECT,
        {"sessionId": "sess-1", "action": "update", "converted": flag, "conversionType": "form", "pageCount": 2},
    )

    row = _session(db)
    assert row.converted is True
    assert row.conversion_type == "form"
    assert row.page_count == 2


def test_session_end_stamps_ended_at(store, db):
    dispatch(store, "session", ORG, PROJECT, {"sessionId": "sess-1"})
    dispatch(store, "session", ORG, PROJECT, {"sessionId": "sess-1", "action": "end", "duration": 95.5, "eventCount": 4})

    row = _session(db)
    assert row.ended_at is not None
    assert row.duration_seconds == 95.5
    assert row.event_count == 4


def test_unknown_session_action_writes_nothing(store, db):
    dispatch(store, "session", ORG, PROJECT, {"sessionId": "sess-1"})
    dispatch(store, "session", ORG, PROJECT, {"sessionId": "sess-1", "action": "pause", "pageCount": 9})

    assert _session(db).page_count is None


# ---------------------------------------------------------------------------
# scroll depth / web vitals / heatmap
# ---------------------------------------------------------------------------
@pytest.mark.parametrize(
    "payload, depth, max_depth",
    [
        ({"depth": 50}, 50, 50),
        ({"maxDepthPercent": 75}, 75, 75),
        ({"depth": 25, "maxDepthPercent": 90}, 25, 90),
        ({}, 0, 0),
    ],
)
def test_scroll_depth_defaults(store, db, payload, depth, max_depth):
    dispatch(store, "scroll_depth", ORG, PROJECT, {"path": "/blog/post", **payload})

    row = db.query(ScrollDepth).one()
    assert row.depth == depth
    assert row.max_depth_percent == max_depth


def test_web_vitals_uppercases_metric(store, db):
    dispatch(store, "web_vitals", ORG, PROJECT, {"metricName": "lcp", "metricValue": 2300, "rating": "good"})

    row = db.query(WebVital).one()
    assert row.metric_name == "LCP"
    assert row.metric_value == 2300
    assert row.metric_rating == "good"
    assert row.page_path == "/"


def test_web_vitals_zero_value_is_kept(store, db):
    dispatch(store, "web_vitals", ORG, PROJECT, {"metric": "cls", "value": 0})
    assert db.query(WebVital).one().metric_value == 0


@pytest.mark.parametrize("payload", [{"metric": "LCP"}, {"value": 1200}])
def test_web_vitals_incomplete_is_dropped(store, db, payload):
    dispatch(store, "web_vitals", ORG, PROJECT, payload)
    assert db.query(WebVital).count() == 0


def test_heatmap_click_truncates_element_fields(store, db):
    dispatch(
        store,
        "heatmap_click",
        ORG,
        PROJECT,
        {
            "url": "https://acmeplumbing.com/pricing",
            "xPercent": 42.5,
            "yPercent": 10.1,
            "xAbsolute": 612.4,
            "elementTag": "BUTTON",
            "elementClass": "btn " * 100,
            "elementText": "Book now " * 20,
        },
    )

    row = db.query(HeatmapClick).one()
    assert row.page_path == "/pricing"
    assert row.x_absolute == 612
    assert len(row.element_class) == 200
    assert len(row.element_text) == 100


# ---------------------------------------------------------------------------
# identify
# ---------------------------------------------------------------------------
def test_identify_creates_then_updates_known_visitor(store, db):
    dispatch(store, "identify", ORG, PROJECT, {"visitorId": "vis-1", "email": "pat@example.com", "timestamp": 1_767_225_600_000})
    dispatch(
        store,
        "identify",
        ORG,
        PROJECT,
        {"visitorId": "vis-1", "contactId": "c-77", "email": "pat@example.com", "timestamp": 1_767_312_000_000},
    )

    db.expire_all()
    visitor = db.query(KnownVisitor).one()
    assert visitor.org_id == ORG
    assert visitor.contact_id == "c-77"
    assert visitor.first_seen.replace(tzinfo=None) == datetime(2026, 1, 1)
    assert visitor.last_seen.replace(tzinfo=None) == datetime(2026, 1, 2)

    activity = db.query(KnownVisitorActivity).all()
    assert len(activity) == 2
    assert {a.event_type for a in activity} == {"identify"}


def test_identify_numeric_contact_id(store, db):
    dispatch(store, "identify", ORG, PROJECT, {"visitorId": "vis-1", "contactId": 1234})
    assert db.query(KnownVisitor).one().contact_id == "1234"


@pytest.mark.parametrize("payload", [{"visitorId": "vis-1"}, {"email": "pat@example.com"}])
def test_identify_requires_contact_and_visitor(store, db, payload):
    dispatch(store, "identify", ORG, PROJECT, payload)
    assert db.query(KnownVisitor).count() == 0
    assert db.query(KnownVisitorActivity).count() == 0

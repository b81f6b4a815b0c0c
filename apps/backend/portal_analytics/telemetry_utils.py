from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlparse

UNKNOWN = "unknown"

_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)

_MOBILE_RE = re.compile(r"mobile", re.IGNORECASE)
_TABLET_RE = re.compile(r"tablet|ipad", re.IGNORECASE)

_CHROME_RE = re.compile(r"chrome", re.IGNORECASE)
_EDGE_RE = re.compile(r"edge|edg", re.IGNORECASE)
_FIREFOX_RE = re.compile(r"firefox", re.IGNORECASE)
_SAFARI_RE = re.compile(r"safari", re.IGNORECASE)

# checked in order; first match wins
_OS_PATTERNS = (
    (re.compile(r"windows", re.IGNORECASE), "Windows"),
    (re.compile(r"macintosh|mac os", re.IGNORECASE), "macOS"),
    (re.compile(r"linux", re.IGNORECASE), "Linux"),
    (re.compile(r"android", re.IGNORECASE), "Android"),
    (re.compile(r"iphone|ipad|ipod", re.IGNORECASE), "iOS"),
)


@dataclass(frozen=True)
class DeviceInfo:
    device_type: str
    browser: str
    os: str


def parse_user_agent(user_agent: str | None) -> DeviceInfo:
    """
    Classify a user agent into device class, browser and OS.

    Every check is ordered and the first hit wins, so Chromium Edge must be
    excluded from Chrome before it can fall through to the Edge branch.
    """
    if not user_agent:
        return DeviceInfo(device_type=UNKNOWN, browser=UNKNOWN, os=UNKNOWN)

    ua = user_agent

    device_type = "desktop"
    if _MOBILE_RE.search(ua):
        device_type = "mobile"
    elif _TABLET_RE.search(ua):
        device_type = "tablet"

    browser = UNKNOWN
    if _CHROME_RE.search(ua) and not _EDGE_RE.search(ua):
        browser = "Chrome"
    elif _FIREFOX_RE.search(ua):
        browser = "Firefox"
    elif _SAFARI_RE.search(ua) and not _CHROME_RE.search(ua):
        browser = "Safari"
    elif _EDGE_RE.search(ua):
        browser = "Edge"

    os_name = UNKNOWN
    for pattern, name in _OS_PATTERNS:
        if pattern.search(ua):
            os_name = name
            break

    return DeviceInfo(device_type=device_type, browser=browser, os=os_name)


def is_uuid(value: str | None) -> bool:
    return bool(value) and bool(_UUID_RE.match(value))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_ts(ts: Any) -> datetime:
    """
    Client timestamps arrive as epoch milliseconds (Date.now()) or ISO strings.
    Anything we can't read becomes "now".
    """
    if ts is None or ts == "" or isinstance(ts, bool):
        return utcnow()

    if isinstance(ts, (int, float)):
        try:
            return datetime.fromtimestamp(ts / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return utcnow()

    if isinstance(ts, str):
        raw = ts.strip()
        if raw.lstrip("-").isdigit():
            return parse_ts(int(raw))
        try:
            # datetime.fromisoformat doesn't like "Z" in py<3.11
            dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return utcnow()
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt

    return utcnow()


def resolve_path(path: str | None, url: str | None) -> str:
    if path:
        return path
    if url:
        parsed = urlparse(url)
        return parsed.path or "/"
    return "/"


def truncate(value: str | None, limit: int) -> str | None:
    if value is None:
        return None
    return str(value)[:limit]


def referrer_host(referrer: str) -> str:
    host = urlparse(referrer).hostname
    if not host:
        return referrer
    return host.removeprefix("www.")

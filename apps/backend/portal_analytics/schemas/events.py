# apps/backend/portal_analytics/schemas/events.py
from __future__ import annotations

from typing import Annotated, Any, Dict, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _whole_number(v: Any) -> Any:
  # browsers report fractional pixels (devicePixelRatio); columns are ints
  if isinstance(v, float):
    return round(v)
  return v


LooseInt = Annotated[Optional[int], BeforeValidator(_whole_number)]


def _truthy(v: Any) -> Any:
  # the tracker sends whatever the site set ("yes", 1, "form"); any truthy value counts
  if v is None:
    return None
  return bool(v)


LooseBool = Annotated[Optional[bool], BeforeValidator(_truthy)]


class IngestPayload(BaseModel):
  """Fields every tracker call may carry. Keys arrive camelCased from the JS tracker."""

  model_config = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="ignore",
    coerce_numbers_to_str=True,
  )

  session_id: Optional[str] = None
  # epoch ms or ISO string; parsed best-effort by the handlers
  timestamp: Any = None


class PageViewPayload(IngestPayload):
  path: Optional[str] = None
  url: Optional[str] = None
  title: Optional[str] = None
  referrer: Optional[str] = None
  visitor_id: Optional[str] = None
  user_agent: Optional[str] = None
  screen_width: LooseInt = None
  screen_height: LooseInt = None
  viewport_width: LooseInt = None
  viewport_height: LooseInt = None
  language: Optional[str] = None
  timezone: Optional[str] = None
  properties: Optional[Dict[str, Any]] = Field(default_factory=dict)


class EventPayload(IngestPayload):
  event: Optional[str] = None
  event_name: Optional[str] = None
  event_category: Optional[str] = None
  event_action: Optional[str] = None
  event_label: Optional[str] = None
  event_value: Optional[float] = None
  path: Optional[str] = None
  url: Optional[str] = None
  visitor_id: Optional[str] = None
  referrer: Optional[str] = None
  user_agent: Optional[str] = None
  properties: Optional[Dict[str, Any]] = Field(default_factory=dict)


class SessionPayload(IngestPayload):
  action: str = "start"  # start | update | end
  visitor_id: Optional[str] = None
  first_page: Optional[str] = None
  last_page: Optional[str] = None
  referrer: Optional[str] = None
  page_count: LooseInt = None
  event_count: LooseInt = None
  duration: Optional[float] = None
  user_agent: Optional[str] = None
  screen_width: LooseInt = None
  screen_height: LooseInt = None
  utm_source: Optional[str] = None
  utm_medium: Optional[str] = None
  utm_campaign: Optional[str] = None
  utm_term: Optional[str] = None
  utm_content: Optional[str] = None
  converted: LooseBool = None
  conversion_type: Optional[str] = None
  conversion_value: Optional[float] = None


class ScrollDepthPayload(IngestPayload):
  path: Optional[str] = None
  url: Optional[str] = None
  depth: Optional[float] = None
  max_depth_percent: Optional[float] = None
  time_to_25: Optional[float] = None
  time_to_50: Optional[float] = None
  time_to_75: Optional[float] = None
  time_to_100: Optional[float] = None
  total_time_seconds: Optional[float] = None
  device_type: Optional[str] = None


class WebVitalsPayload(IngestPayload):
  metric: Optional[str] = None
  metric_name: Optional[str] = None
  value: Optional[float] = None
  metric_value: Optional[float] = None
  rating: Optional[str] = None
  delta: Optional[float] = None
  path: Optional[str] = None
  url: Optional[str] = None
  device_type: Optional[str] = None
  connection_type: Optional[str] = None


class HeatmapClickPayload(IngestPayload):
  path: Optional[str] = None
  url: Optional[str] = None
  x_percent: Optional[float] = None
  y_percent: Optional[float] = None
  x_absolute: LooseInt = None
  y_absolute: LooseInt = None
  viewport_width: LooseInt = None
  viewport_height: LooseInt = None
  page_height: LooseInt = None
  element_tag: Optional[str] = None
  element_id: Optional[str] = None
  element_class: Optional[str] = None
  element_text: Optional[str] = None
  device_type: Optional[str] = None


class IdentifyPayload(IngestPayload):
  visitor_id: Optional[str] = None
  contact_id: Optional[str] = None
  email: Optional[str] = None
  path: Optional[str] = None

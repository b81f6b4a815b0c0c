from __future__ import annotations

from typing import Iterable

from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send


class DashboardCORSMiddleware(CORSMiddleware):
  """
  CORSMiddleware for the dashboard API that leaves public tracker paths alone.

  The ingest route is called from every tracked client site and answers its
  own preflight with a wildcard origin, so the configured dashboard origins
  must not apply to it.
  """

  def __init__(self, app: ASGIApp, public_paths: Iterable[str] = (), **kwargs) -> None:
    super().__init__(app, **kwargs)
    self.public_paths = frozenset(p.rstrip("/") for p in public_paths)

  async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
    if scope["type"] == "http" and scope["path"].rstrip("/") in self.public_paths:
      await self.app(scope, receive, send)
      return
    await super().__call__(scope, receive, send)

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import Headers

from portal_analytics.services.ingest import DEFAULT_TYPE, dispatch
from portal_analytics.services.store import SqlStore, get_store
from portal_analytics.services.tenants import resolve_tenant

logger = logging.getLogger(__name__)

router = APIRouter()

INGEST_PATH = "/analytics/ingest"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, X-Tenant-ID, X-Organization-Id, Authorization",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


def _reply(status_code: int, content: dict) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content, headers=CORS_HEADERS)


@router.options(INGEST_PATH)
def ingest_preflight():
    return Response(status_code=204, headers=CORS_HEADERS)


@router.api_route(INGEST_PATH, methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
def ingest_wrong_method():
    return _reply(405, {"error": "Method not allowed"})


def _ingest(store: SqlStore, headers: Headers, data: dict) -> JSONResponse:
    payload = dict(data)
    event_type = payload.pop("type", None) or DEFAULT_TYPE

    input_tenant_id = headers.get("x-tenant-id") or payload.get("tenantId")
    input_org_id = headers.get("x-organization-id") or payload.get("orgId")

    logger.debug(
        "received type=%s tenant=%s org=%s keys=%s",
        event_type, input_tenant_id, input_org_id, list(payload)[:5],
    )

    if not input_org_id and not input_tenant_id:
        return _reply(400, {"error": "Organization or Tenant ID required"})

    ctx = resolve_tenant(store, str(input_tenant_id) if input_tenant_id else None)

    org_id = str(input_org_id) if input_org_id else ctx.org_id
    project_id = ctx.project_id

    if not org_id:
        logger.info("skipping %s, unresolved tenant %r", event_type, input_tenant_id)
        return _reply(200, {"success": True, "skipped": "unresolved_tenant"})

    logger.info("ingest %s org=%s project=%s", event_type, org_id, project_id)
    dispatch(store, str(event_type), org_id, project_id, payload)

    return _reply(200, {"success": True})


@router.post(INGEST_PATH)
async def ingest(request: Request, store: SqlStore = Depends(get_store)):
    # analytics must never break the instrumented site: anything that goes
    # wrong past this point is logged and still answered with success
    try:
        raw = await request.body()
        data = json.loads(raw or b"{}")
        if not isinstance(data, dict):
            raise ValueError("payload must be a JSON object")

        # store calls are blocking; keep them off the event loop
        return await run_in_threadpool(_ingest, store, request.headers, data)
    except Exception as e:
        logger.exception("analytics ingest failed")
        return _reply(200, {"success": True, "error": str(e)})

from fastapi import APIRouter

from portal_analytics.api.ingest_routes import router as ingest_router
from portal_analytics.api.reporting_routes import router as reporting_router

router = APIRouter()

router.include_router(ingest_router, tags=["ingest"])
router.include_router(reporting_router, tags=["reports"])

from typing import Any, Dict, Optional

from openai import AsyncOpenAI
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from portal_analytics.core.openai_client import get_client, summarize_overview
from portal_analytics.services import reporting


async def build_insights(
    db: Session,
    scope: reporting.ReportScope,
    window: reporting.Window,
    client: Optional[AsyncOpenAI] = None,
) -> Dict[str, Any]:
    """
    AI summary of the overview report.
    If OpenAI isn't configured, returns an empty, disabled result instead of failing.
    """
    client = client or get_client()
    report = await run_in_threadpool(reporting.overview, db, scope, window)

    if client is None:
        return {
            "enabled": False,
            "message": "AI insights are not configured",
            "headline": "",
            "insights": [],
            "recommendations": [],
            "summary": report["summary"],
        }

    data = await summarize_overview(report, client=client)
    return {"enabled": True, **data, "summary": report["summary"]}

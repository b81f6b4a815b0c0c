import json
import re
from functools import lru_cache
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from .config import settings


class InsightsUnavailable(RuntimeError):
    """Raised when the model answer can't be turned into an insights object."""


@lru_cache(maxsize=1)
def get_client() -> Optional[AsyncOpenAI]:
    if not settings.openai_api_key:
        return None
    return AsyncOpenAI(api_key=settings.openai_api_key)


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def _extract_json(s: str) -> Dict[str, Any]:
    s = s.strip()
    if s.startswith("{") and s.endswith("}"):
        return json.loads(s)

    # Strip code fences
    s = re.sub(r"^```(json)?", "", s.strip(), flags=re.IGNORECASE).strip()
    s = re.sub(r"```$", "", s.strip()).strip()

    # First {...} block
    m = re.search(r"\{.*\}", s, flags=re.DOTALL)
    if not m:
        raise ValueError("No JSON object found in model output.")
    return json.loads(m.group(0))


def _clean_list(v: Any, limit: int = 5) -> List[str]:
    if not isinstance(v, list):
        return []
    out = []
    for item in v:
        if isinstance(item, str) and item.strip():
            out.append(item.strip())
        elif isinstance(item, dict):
            text = str(item.get("text") or item.get("title") or "").strip()
            if text:
                out.append(text)
    return out[:limit]


# -----------------------------------------------------------------------------
# Main
# -----------------------------------------------------------------------------
async def summarize_overview(overview: Dict[str, Any], client: Optional[AsyncOpenAI] = None) -> Dict[str, Any]:
    """
    Ask the chat model for a short, plain-language read of an overview report.
    Returns {"headline", "insights", "recommendations"}.
    """
    client = client or get_client()
    if client is None:
        raise InsightsUnavailable("OpenAI is not configured")

    sys = (
        "You are an analytics consultant for a marketing agency.\n"
        "You receive a JSON website analytics report for one client site.\n"
        "Return ONLY JSON with keys: headline (string), insights (array of strings), "
        "recommendations (array of strings).\n"
        "Rules:\n"
        "1) At most 5 insights and 5 recommendations, one sentence each.\n"
        "2) Quote the numbers you rely on.\n"
        "3) Do not invent metrics that are not in the report.\n"
    )
    user = f"Report:\n{json.dumps(overview, default=str)}\n\nReturn JSON now."

    res = await client.chat.completions.create(
        model=settings.openai_model,
        messages=[{"role": "system", "content": sys}, {"role": "user", "content": user}],
        temperature=0.3,
    )

    content = res.choices[0].message.content or "{}"
    try:
        data = _extract_json(content)
    except ValueError as e:
        # json.JSONDecodeError is a ValueError too
        raise InsightsUnavailable(f"Unreadable model output: {e}") from e

    return {
        "headline": str(data.get("headline") or "").strip(),
        "insights": _clean_list(data.get("insights")),
        "recommendations": _clean_list(data.get("recommendations")),
    }

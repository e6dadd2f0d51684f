"""
Web search via the Serper API, plus the response normalizer.

Search providers disagree on where the hits live. ``normalize_search_response``
sniffs the known shapes and falls back to an empty list, which the agent reads
as "no evidence found" rather than as an error.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import httpx
from langchain_core.tools import tool

from ..exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)


def _records(items: List[Any]) -> List[Dict[str, Any]]:
    # Hits are mappings; bare strings or numbers from a provider are dropped.
    return [item for item in items if isinstance(item, dict)]


def normalize_search_response(raw: Any) -> List[Dict[str, Any]]:
    """
    Extract the list of search hits from a provider response.

    Recognised shapes, checked in order:
        {"output": [{"value": "<json>"}]}   first output entry is the payload
        {"value": "<json list>"}             decoded list is the result
        {"value": '{"results": [...]}'}      decoded object's results
        {"results": [...]}
        {"organic": [...]}                   raw Serper response

    A ``value`` that is not valid JSON is logged and yields an empty list.
    Entries that are not mappings are dropped from whichever list is found.
    """
    output = raw.get("output", raw) if isinstance(raw, dict) else raw
    if isinstance(output, list):
        output = output[0] if output else None
    if not isinstance(output, dict):
        return []

    value = output.get("value")
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse search output value as JSON: {e}")
            return []
        if isinstance(parsed, list):
            return _records(parsed)
        if isinstance(parsed, dict) and isinstance(parsed.get("results"), list):
            return _records(parsed["results"])
        return []

    if isinstance(output.get("results"), list):
        return _records(output["results"])
    if isinstance(output.get("organic"), list):
        return _records(output["organic"])
    return []


class SerperClient:
    """Google Search via the Serper API."""

    BASE_URL = "https://google.serper.dev/search"

    def __init__(self, api_key: Optional[str] = None, timeout: float = 30):
        self.api_key = api_key or ""
        self.timeout = timeout

    async def search(self, query: str, num_results: int = 5) -> Dict[str, Any]:
        """Run one query and return the raw provider payload."""
        if not self.api_key:
            raise UpstreamServiceError("SERPER_API_KEY not configured", service="serper")

        headers = {"X-API-KEY": self.api_key, "Content-Type": "application/json"}
        payload = {"q": query, "num": max(1, min(num_results, 20))}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(self.BASE_URL, headers=headers, json=payload)
                resp.raise_for_status()
                return resp.json()
        except Exception as e:
            raise UpstreamServiceError(f"Search failed: {e}", service="serper") from e


async def search_google(
    client: SerperClient, query: str, n_results: int = 5
) -> Dict[str, Any]:
    """Core logic for the search tool; never raises."""
    try:
        raw = await client.search(query, n_results or 5)
    except UpstreamServiceError as e:
        logger.error(f"Google search failed for '{query}': {e}")
        return {"results": []}
    return {"results": normalize_search_response(raw), "raw": raw}


def get_search_tools(api_key: Optional[str] = None) -> list:
    """Generate search tools bound to a Serper API key."""
    client = SerperClient(api_key=api_key)

    @tool("search_google")
    async def search_google_tool(query: str, n_results: int = 5) -> dict:
        """
        Fetch information from Google for a specific search query.

        Use this when you need web-based information about a topic, fact or
        question. Returns several results that can support a comprehensive
        answer.

        Args:
            query: The search query to perform on Google.
            n_results: Number of results to return.
        """
        return await search_google(client, query, n_results)

    return [search_google_tool]

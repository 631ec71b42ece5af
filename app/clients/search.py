"""
Web search for vendors the agent cannot place (Brave Search REST API).

Only consulted when the first categorization comes back unsure; a failed
search leaves that first answer standing.
"""
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from app.core.errors import UpstreamError

logger = logging.getLogger(__name__)

_TAGS = re.compile(r"<[^>]+>")


@dataclass
class SearchResult:
    title: str
    description: str = ""
    url: str = ""


class VendorSearch(ABC):
    @abstractmethod
    async def search(self, query: str, count: int = 3) -> list[SearchResult]: ...


class BraveVendorSearch(VendorSearch):
    def __init__(self, http: httpx.AsyncClient, api_key: str, base_url: str):
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.headers = {"X-Subscription-Token": api_key, "Accept": "application/json"}

    async def search(self, query: str, count: int = 3) -> list[SearchResult]:
        try:
            response = await self.http.get(
                f"{self.base_url}/res/v1/web/search",
                params={"q": query, "count": count},
                headers=self.headers,
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamError(f"Web search failed: {e}") from e

        rows = (data.get("web") or {}).get("results", []) if isinstance(data, dict) else []
        return [
            SearchResult(
                title=_TAGS.sub("", row.get("title") or ""),
                description=_TAGS.sub("", row.get("description") or ""),
                url=row.get("url") or "",
            )
            for row in rows[:count]
            if isinstance(row, dict)
        ]


def format_search_results(results: list[SearchResult]) -> str:
    return "\n\n".join(
        "\n".join(part for part in (r.title, r.description, r.url) if part) for r in results
    )

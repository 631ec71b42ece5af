"""
Long-term memory of user corrections (Mem0 platform REST API).

The agent recalls these when categorizing a vendor; the feedback pipeline
writes one memory per approved correction.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from app.core.errors import UpstreamError

logger = logging.getLogger(__name__)


@dataclass
class MemoryHit:
    memory: str
    score: Optional[float] = None


class MemoryStore(ABC):
    @abstractmethod
    async def search(self, user_id: str, query: str, top_k: int = 5) -> list[MemoryHit]: ...

    @abstractmethod
    async def add(self, user_id: str, messages: list[dict], metadata: Optional[dict] = None) -> None: ...


class Mem0MemoryStore(MemoryStore):
    def __init__(self, http: httpx.AsyncClient, api_key: str, base_url: str):
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.headers = {"Authorization": f"Token {api_key}"}

    async def _post(self, path: str, payload: dict) -> Any:
        try:
            response = await self.http.post(f"{self.base_url}{path}", json=payload, headers=self.headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise UpstreamError(f"Memory store request failed: {e}") from e
        return response.json()

    async def search(self, user_id: str, query: str, top_k: int = 5) -> list[MemoryHit]:
        data = await self._post("/v1/memories/search/", {"query": query, "user_id": user_id, "top_k": top_k})
        rows = data.get("results", []) if isinstance(data, dict) else data
        return [
            MemoryHit(memory=row.get("memory") or "", score=row.get("score"))
            for row in rows or []
            if isinstance(row, dict)
        ]

    async def add(self, user_id: str, messages: list[dict], metadata: Optional[dict] = None) -> None:
        payload = {"messages": messages, "user_id": user_id}
        if metadata:
            payload["metadata"] = metadata
        await self._post("/v1/memories/", payload)


def format_memories(vendor: str, hits: list[MemoryHit]) -> str:
    if not hits:
        return f'No previous memories found for vendor "{vendor}".'

    lines = []
    for i, hit in enumerate(hits, start=1):
        relevance = f" (relevance: {hit.score * 100:.0f}%)" if hit.score else ""
        lines.append(f"{i}. {hit.memory or '(no content)'}{relevance}")
    return (
        f'Found {len(hits)} relevant memories for vendor "{vendor}":\n'
        + "\n".join(lines)
        + "\nUser preferences from past feedback take priority."
    )

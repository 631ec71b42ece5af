import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

import httpx

from app.core.errors import UpstreamError

logger = logging.getLogger(__name__)


@dataclass
class ReceivedEmail:
    id: str
    to: list[str] = field(default_factory=list)
    sender: str = ""
    subject: str = ""
    html: Optional[str] = None
    text: Optional[str] = None
    created_at: Optional[str] = None


class EmailProvider(ABC):
    @abstractmethod
    async def get_received_email(self, email_id: str) -> Optional[ReceivedEmail]:
        """Full content of an inbound email, or None if the provider does not know the id."""


class ResendEmailProvider(EmailProvider):
    def __init__(self, http: httpx.AsyncClient, api_key: Optional[str], base_url: str):
        self.http = http
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    async def get_received_email(self, email_id: str) -> Optional[ReceivedEmail]:
        if not self.api_key:
            raise UpstreamError("RESEND_API_KEY is not configured")

        try:
            response = await self.http.get(
                f"{self.base_url}/emails/receiving/{email_id}",
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPError as e:
            logger.exception("Resend request for %s failed", email_id)
            raise UpstreamError(f"Email provider unreachable: {e}") from e

        if response.status_code == 404:
            return None
        if response.is_error:
            logger.error("Resend returned %s for %s: %s", response.status_code, email_id, response.text[:200])
            raise UpstreamError(f"Email provider returned {response.status_code}")

        data = response.json()
        return ReceivedEmail(
            id=data.get("id", email_id),
            to=data.get("to") or [],
            sender=data.get("from") or "",
            subject=data.get("subject") or "",
            html=data.get("html"),
            text=data.get("text"),
            created_at=data.get("created_at"),
        )

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from openai import AsyncOpenAI

from app.agent.engine import LLMExpenseAgent
from app.agent.interfaces import ExpenseAgent
from app.clients.email import EmailProvider, ResendEmailProvider
from app.clients.memory import Mem0MemoryStore, MemoryStore
from app.clients.search import BraveVendorSearch
from app.config import Settings
from app.services.webhook import WebhookVerifier

logger = logging.getLogger(__name__)


@dataclass
class Container:
    """Long-lived clients, built once at startup and shared by every request."""

    settings: Settings
    agent: ExpenseAgent
    email_provider: EmailProvider
    verifier: WebhookVerifier
    memory: Optional[MemoryStore] = None
    http: Optional[httpx.AsyncClient] = None
    openai_client: Optional[AsyncOpenAI] = None

    @classmethod
    def build(cls, settings: Settings) -> "Container":
        http = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)

        memory = None
        if settings.MEM0_API_KEY:
            memory = Mem0MemoryStore(http, settings.MEM0_API_KEY, settings.MEM0_API_URL)
        else:
            logger.warning("MEM0_API_KEY not set; agent runs without long-term memory")

        search = None
        if settings.BRAVE_SEARCH_API_KEY:
            search = BraveVendorSearch(http, settings.BRAVE_SEARCH_API_KEY, settings.BRAVE_SEARCH_API_URL)
        else:
            logger.info("BRAVE_SEARCH_API_KEY not set; unknown vendors are categorized without web search")

        if not settings.OPENAI_API_KEY:
            logger.warning("OPENAI_API_KEY not set; agent calls will fail until it is configured")
        openai_client = AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY or "missing",
            max_retries=settings.AGENT_MAX_RETRIES,
            timeout=settings.AGENT_TIMEOUT_SECONDS,
        )

        if settings.is_dev:
            logger.warning("Development mode: webhook signatures are not verified")

        return cls(
            settings=settings,
            agent=LLMExpenseAgent(
                openai_client,
                model=settings.AGENT_MODEL,
                temperature=settings.AGENT_TEMPERATURE,
                timeout=settings.AGENT_TIMEOUT_SECONDS,
                memory=memory,
                memory_top_k=settings.MEMORY_TOP_K,
                search=search,
                search_count=settings.SEARCH_RESULT_COUNT,
            ),
            email_provider=ResendEmailProvider(http, settings.RESEND_API_KEY, settings.RESEND_API_URL),
            verifier=WebhookVerifier(settings.RESEND_WEBHOOK_SECRET, skip_verification=settings.is_dev),
            memory=memory,
            http=http,
            openai_client=openai_client,
        )

    async def close(self):
        if self.openai_client is not None:
            await self.openai_client.close()
        if self.http is not None:
            await self.http.aclose()

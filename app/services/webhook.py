"""
Inbound email pipeline.

verify -> filter -> dedup -> resolve user -> fetch -> normalize + cache lookup
  hit:  transaction from the cached category, no agent call        -> "cached"
  miss: agent categorizes, transaction persisted, cache upserted   -> "processed"
"""
import json
import logging
from typing import Mapping, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from svix.webhooks import Webhook, WebhookVerificationError

from app.agent.extraction import extract_expense_from_text
from app.agent.interfaces import AgentEmailInput, ExpenseAgent
from app.clients.email import EmailProvider, ReceivedEmail
from app.core.enums import RESEND_EMAIL_RECEIVED_EVENT, UNKNOWN_VENDOR, Confidence, TransactionSource, WebhookStatus
from app.core.errors import AuthenticationError, NotFoundError, ValidationError
from app.models.transaction import Transaction
from app.models.user import User
from app.repositories.interfaces import (
    CategoryRepository,
    DuplicateEmailError,
    TransactionRepository,
    UserRepository,
    VendorCacheRepository,
)
from app.schemas.webhook import ResendWebhookEvent, WebhookProcessResult
from app.utils.dates import now_local, parse_alert_date, parse_iso_datetime
from app.utils.vendor import normalize_vendor_name

logger = logging.getLogger(__name__)

SVIX_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")


class WebhookVerifier:
    def __init__(self, secret: Optional[str], skip_verification: bool = False):
        self.secret = secret
        self.skip_verification = skip_verification

    def verify(self, payload: bytes, headers: Mapping[str, str]) -> ResendWebhookEvent:
        """Check the Svix signature on the raw body, then the envelope shape."""
        if self.skip_verification:
            try:
                data = json.loads(payload)
            except ValueError as e:
                raise ValidationError("Webhook body is not valid JSON") from e
        else:
            if not self.secret:
                logger.error("RESEND_WEBHOOK_SECRET is not configured")
                raise AuthenticationError("Webhook verification is not configured")
            try:
                data = Webhook(self.secret).verify(payload, {h: headers.get(h, "") for h in SVIX_HEADERS})
            except WebhookVerificationError as e:
                logger.warning("Webhook signature verification failed: %s", e)
                raise AuthenticationError("Invalid webhook signature") from e

        try:
            return ResendWebhookEvent.model_validate(data)
        except PydanticValidationError as e:
            details = [{"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]} for err in e.errors()]
            raise ValidationError("Invalid webhook payload", details) from e


class WebhookService:
    def __init__(
        self,
        transactions: TransactionRepository,
        vendor_cache: VendorCacheRepository,
        users: UserRepository,
        categories: CategoryRepository,
        agent: ExpenseAgent,
        email_provider: EmailProvider,
    ):
        self.transactions = transactions
        self.vendor_cache = vendor_cache
        self.users = users
        self.categories = categories
        self.agent = agent
        self.email_provider = email_provider

    async def is_duplicate(self, resend_email_id: str) -> bool:
        return await self.transactions.find_by_resend_email_id(resend_email_id) is not None

    async def resolve_user(self, recipients: list[str]) -> Optional[User]:
        for address in recipients:
            user = await self.users.find_by_inbound_email(address)
            if user:
                return user
        return None

    async def _fetch_email(self, email_id: str) -> ReceivedEmail:
        email = await self.email_provider.get_received_email(email_id)
        if email is None:
            raise NotFoundError(f"Email {email_id} not found at the provider")
        return email

    async def handle_event(self, event: ResendWebhookEvent) -> WebhookProcessResult:
        if event.type != RESEND_EMAIL_RECEIVED_EVENT:
            logger.info("Ignoring webhook event type %s", event.type)
            return WebhookProcessResult(status=WebhookStatus.SKIPPED.value)

        email_id = event.data.email_id
        if await self.is_duplicate(email_id):
            logger.info("Email %s already processed", email_id)
            return WebhookProcessResult(status=WebhookStatus.DUPLICATE.value)

        email = None
        recipients = list(event.data.to or [])
        if not recipients:
            email = await self._fetch_email(email_id)
            recipients = email.to

        user = await self.resolve_user(recipients)
        if user is None:
            logger.warning("No user for inbound address(es) %s (email %s)", ", ".join(recipients) or "-", email_id)
            raise NotFoundError(f"No user is routed to {', '.join(recipients) or 'an empty recipient list'}")

        if email is None:
            email = await self._fetch_email(email_id)

        return await self._categorize_and_store(
            AgentEmailInput(
                user_id=user.id,
                resend_email_id=email_id,
                subject=email.subject or event.data.subject or "",
                text=email.text or "",
                html=email.html or "",
                received_at=parse_iso_datetime(email.created_at or event.data.created_at),
            )
        )

    async def _store(self, email: AgentEmailInput, **fields) -> Optional[Transaction]:
        try:
            return await self.transactions.create(
                user_id=email.user_id,
                description=email.subject,
                raw_email_subject=email.subject,
                resend_email_id=email.resend_email_id,
                source=TransactionSource.EMAIL.value,
                **fields,
            )
        except DuplicateEmailError:
            # A concurrent delivery of the same email won the insert
            logger.info("Email %s stored by a concurrent delivery", email.resend_email_id)
            return None

    async def _categorize_and_store(self, email: AgentEmailInput) -> WebhookProcessResult:
        extracted = extract_expense_from_text(email.body)

        if extracted and extracted.has_vendor:
            vendor = normalize_vendor_name(extracted.vendor)
            entry = await self.vendor_cache.lookup(email.user_id, vendor)
            if entry:
                transaction = await self._store(
                    email,
                    category_id=entry.category_id,
                    amount=extracted.amount,
                    vendor=vendor,
                    transaction_date=parse_alert_date(extracted.date_raw) or email.received_at or now_local(),
                    confidence=Confidence.HIGH.value,
                )
                if transaction is None:
                    return WebhookProcessResult(status=WebhookStatus.DUPLICATE.value)
                transaction_id, entry_id = transaction.id, entry.id
                try:
                    await self.vendor_cache.record_hit(entry_id)
                except SQLAlchemyError:
                    logger.exception("Failed to record cache hit for %s", vendor)
                logger.info("Email %s categorized from cache (%s)", email.resend_email_id, vendor)
                return WebhookProcessResult(status=WebhookStatus.CACHED.value, transaction_id=transaction_id)

        categories = await self.categories.list_for_user(email.user_id)
        # AgentError propagates: nothing is stored and the provider retries
        result = await self.agent.categorize(email, categories)
        if not result.is_transaction:
            logger.info("Email %s is not a transaction", email.resend_email_id)
            return WebhookProcessResult(status=WebhookStatus.SKIPPED.value)

        vendor = normalize_vendor_name(result.vendor or UNKNOWN_VENDOR)
        transaction = await self._store(
            email,
            category_id=result.category_id,
            amount=result.amount,
            vendor=vendor,
            transaction_date=result.transaction_date or email.received_at or now_local(),
            confidence=Confidence(result.confidence).value,
        )
        if transaction is None:
            return WebhookProcessResult(status=WebhookStatus.DUPLICATE.value)

        # The transaction is committed; a cache write failure must not make the provider redeliver
        transaction_id = transaction.id
        if vendor and vendor != UNKNOWN_VENDOR:
            try:
                await self.vendor_cache.upsert(email.user_id, vendor, result.category_id)
            except SQLAlchemyError:
                logger.exception("Failed to cache vendor %s for email %s", vendor, email.resend_email_id)

        logger.info(
            "Email %s categorized by agent as %s (%s)",
            email.resend_email_id, result.category_name, Confidence(result.confidence).value,
        )
        return WebhookProcessResult(status=WebhookStatus.PROCESSED.value, transaction_id=transaction_id)

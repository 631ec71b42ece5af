import logging
import re
import secrets
from datetime import timedelta
from typing import Optional

from app.config import settings
from app.core.enums import OAuthProvider
from app.core.seed import DEV_USER
from app.models.user import User
from app.repositories.interfaces import CategoryRepository, UserRepository
from app.utils.dates import now_local

logger = logging.getLogger(__name__)

_LOCAL_PART = re.compile(r"[^a-z0-9]+")


def build_inbound_email(email: str, user_id: str) -> str:
    local = _LOCAL_PART.sub("-", email.split("@")[0].lower()).strip("-") or "user"
    return f"{local}-{user_id[:8]}@{settings.INBOUND_EMAIL_DOMAIN}"


class AuthService:
    def __init__(self, users: UserRepository, categories: CategoryRepository):
        self.users = users
        self.categories = categories

    async def get_or_create_user(
        self,
        account_id: str,
        email: str,
        name: str,
        avatar_url: str = "",
        oauth_provider: OAuthProvider = OAuthProvider.GOOGLE,
    ) -> User:
        """First login creates the user and seeds default categories; later logins refresh name/avatar."""
        existing = await self.users.get(account_id)
        if existing:
            if existing.name != name or existing.avatar_url != avatar_url:
                return await self.users.update(existing, name=name, avatar_url=avatar_url)
            return existing

        user = await self.users.create(
            id=account_id,
            email=email,
            name=name,
            avatar_url=avatar_url,
            oauth_provider=oauth_provider.value,
            inbound_email=build_inbound_email(email, account_id),
        )
        await self.categories.seed_defaults(user.id)
        logger.info("Created user %s with default categories", user.id)
        return user

    async def get_or_create_dev_user(self) -> User:
        return await self.get_or_create_user(DEV_USER["id"], DEV_USER["email"], DEV_USER["name"])

    async def start_session(self, user: User) -> str:
        token = secrets.token_urlsafe(32)
        expires_at = now_local() + timedelta(days=settings.SESSION_TTL_DAYS)
        await self.users.create_session(user.id, token, expires_at)
        return token

    async def user_for_session(self, token: Optional[str]) -> Optional[User]:
        if not token:
            return None
        session = await self.users.find_session(token)
        if session is None or session.expires_at <= now_local():
            return None
        return await self.users.get(session.user_id)

    async def update_profile(self, user: User, **fields) -> User:
        return await self.users.update(user, **fields)

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.security import create_access_token, hash_password, verify_password
from app.domain.enums import UserRole
from app.domain.principal import Principal
from app.infra.db.models import User
from app.infra.db.repositories import ExpertProfileRepository, UserRepository
from app.services.errors import AuthenticationError, UsernameTakenError
from app.services.storage import storage_guard

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AuthResult:
    access_token: str
    token_type: str
    expires_at: datetime
    user: User


class AuthService:
    def __init__(
        self,
        session: AsyncSession,
        users: UserRepository | None = None,
        profiles: ExpertProfileRepository | None = None,
    ) -> None:
        self.session = session
        self.users = users or UserRepository(session)
        self.profiles = profiles or ExpertProfileRepository(session)
        self.settings = get_settings()

    async def register(
        self,
        username: str,
        password: str,
        role: UserRole = UserRole.QUESTIONER,
    ) -> AuthResult:
        normalized_username = username.strip().lower()
        if not normalized_username:
            raise ValueError("Username cannot be empty.")
        with storage_guard("register"):
            if await self.users.get_by_username(normalized_username) is not None:
                raise UsernameTakenError(normalized_username)

            user = await self.users.create(
                username=normalized_username,
                password_hash=hash_password(password),
                role=role,
            )
            if role == UserRole.EXPERT:
                await self.profiles.create(user.id)

            await self.session.commit()
            await self.session.refresh(user)
        logger.info("Registered %s account %s", role.value, user.id)
        return self._issue(user)

    async def login(self, username: str, password: str) -> AuthResult:
        normalized_username = username.strip().lower()
        if not normalized_username:
            raise AuthenticationError()

        with storage_guard("login"):
            user = await self.users.get_by_username(normalized_username)
        if user is None:
            raise AuthenticationError()
        if not user.is_active:
            raise AuthenticationError("Account is inactive")
        if not verify_password(password, user.password_hash):
            raise AuthenticationError()

        with storage_guard("login"):
            await self.users.touch_last_active(user)
            await self.session.commit()
            await self.session.refresh(user)
        return self._issue(user)

    async def current_user(self, principal: Principal) -> User:
        with storage_guard("current_user"):
            user = await self.users.get_by_id(principal.user_id)
        if user is None or not user.is_active:
            raise AuthenticationError("Session user no longer exists")
        return user

    def _issue(self, user: User) -> AuthResult:
        token, expires_at = create_access_token(
            user_id=user.id,
            role=user.role,
            secret=self.settings.auth_secret,
            ttl_minutes=self.settings.auth_token_ttl_minutes,
        )
        return AuthResult(
            access_token=token,
            token_type="bearer",
            expires_at=expires_at,
            user=user,
        )

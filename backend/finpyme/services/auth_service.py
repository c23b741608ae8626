"""Authentication service."""

import structlog
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from finpyme.core.exceptions import AlreadyExistsError, UnauthorizedError
from finpyme.core.security import create_access_token, hash_password, verify_password
from finpyme.models.user import User
from finpyme.schemas.user import AuthResponse, UserLogin, UserRegister, UserResponse

logger = structlog.get_logger()


class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def register(self, data: UserRegister) -> AuthResponse:
        """Create the user and return a session token. Email and username must be unused."""
        result = await self.db.execute(
            select(User).where(or_(User.email == data.email, User.username == data.username))
        )
        if result.scalars().first():
            raise AlreadyExistsError("User")

        user = User(
            username=data.username,
            email=data.email,
            password_hash=hash_password(data.password),
            company_name=data.company_name,
            tax_id=data.tax_id,
            preferred_currency=data.preferred_currency,
            preferred_dollar_type=data.preferred_dollar_type,
        )
        self.db.add(user)
        await self.db.flush()
        await self.db.refresh(user)

        logger.info("user_registered", user_id=user.id)
        return self._session_for(user)

    async def login(self, data: UserLogin) -> AuthResponse:
        result = await self.db.execute(select(User).where(User.email == data.email))
        user = result.scalar_one_or_none()

        if not user or not verify_password(data.password, user.password_hash):
            logger.warning("login_failed", email=data.email)
            raise UnauthorizedError("Credenciales inválidas")

        logger.info("user_logged_in", user_id=user.id)
        return self._session_for(user)

    @staticmethod
    def _session_for(user: User) -> AuthResponse:
        return AuthResponse(
            token=create_access_token(user.id, user.email),
            user=UserResponse.model_validate(user),
        )

"""Security utilities: password hashing, JWT issuing/validation, auth dependencies."""

from datetime import datetime, timedelta, timezone

import bcrypt
import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finpyme.config import settings
from finpyme.core.database import get_db
from finpyme.core.exceptions import ForbiddenError, UnauthorizedError

logger = structlog.get_logger()

BCRYPT_ROUNDS = 12


# ── Passwords ─────────────────────────────────────


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# ── Tokens ────────────────────────────────────────


def create_access_token(user_id: int, email: str) -> str:
    """Issue an HS256 access token carrying the user id and email."""
    expires = datetime.now(timezone.utc) + timedelta(
        minutes=settings.jwt_access_token_expire_minutes
    )
    payload = {"sub": str(user_id), "email": email, "exp": expires}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Decode and validate a token; raises 401 when invalid or expired."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        raise UnauthorizedError("Token inválido o expirado") from e

    if not payload.get("sub"):
        raise UnauthorizedError("Token inválido o expirado")
    return payload


# ── Auth Dependencies ─────────────────────────────
# auto_error=False so a missing header maps to 401 (HTTPBearer defaults to 403)
security_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security_scheme),
    db: AsyncSession = Depends(get_db),
):
    """FastAPI dependency: validate the bearer token and return the local user."""
    from finpyme.models.user import User

    if credentials is None or not credentials.credentials:
        raise UnauthorizedError()

    payload = decode_token(credentials.credentials)
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError) as e:
        raise UnauthorizedError("Token inválido o expirado") from e

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise UnauthorizedError("Usuario no encontrado")
    return user


async def get_owner(user_id: int, current_user=Depends(get_current_user)):
    """FastAPI dependency for `/{user_id}` routes: the token must belong to that user."""
    if current_user.id != user_id:
        logger.warning(
            "ownership_mismatch",
            token_user_id=current_user.id,
            requested_user_id=user_id,
        )
        raise ForbiddenError()
    return current_user

import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.config import settings
from app.core.database import get_db
from app.models.user import User

logger = logging.getLogger(__name__)

# Clerk issues the session tokens on the frontend; there is no local login route.
bearer_scheme = HTTPBearer(auto_error=False)


def decode_session_token(token: str) -> dict:
    """Verify a Clerk session JWT with the instance's PEM public key."""
    if not settings.CLERK_JWT_KEY:
        logger.error("CLERK_JWT_KEY is not set; rejecting session token")
        raise JWTError("Session token verification key not configured")
    return jwt.decode(
        token,
        settings.CLERK_JWT_KEY,
        algorithms=[settings.CLERK_JWT_ALGORITHM],
        options={"verify_aud": False},
    )


async def get_user_by_id(user_id: str, db: AsyncSession):
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalars().first()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
):
    credentials_exception = HTTPException(
        status_code=401,
        detail="Invalid token",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception
    try:
        payload = decode_session_token(credentials.credentials)
        user_id = payload.get("sub")
        if user_id is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception
    user = await get_user_by_id(user_id, db)
    if user is None:
        # not synced yet by the Clerk webhook, or already deleted
        raise credentials_exception
    return user

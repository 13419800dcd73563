from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from . import models, schemas
from .config import settings
from .database import get_db
from .errors import AccountDisabled, Forbidden, NotFound, Unauthenticated

bearer_scheme = HTTPBearer(auto_error=False)


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> schemas.TokenData:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Session expired")
    except jwt.InvalidTokenError:
        raise Unauthenticated("Invalid token")
    if payload.get("id") is None or payload.get("email") is None:
        raise Unauthenticated("Invalid token")
    return schemas.TokenData(id=payload["id"], email=payload["email"], role=payload.get("role", ""))


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> schemas.CurrentUser:
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Unauthorized, no token sent")
    token_data = decode_access_token(credentials.credentials)

    user = await db.get(models.User, token_data.id)
    if user is None:
        raise NotFound("User not found")
    if not user.enabled:
        raise AccountDisabled("This user is banned")
    # role comes from the live record so a demotion applies before the token expires
    return schemas.CurrentUser(id=user.id, email=user.email, role=user.role)


async def require_admin(
    current_user: schemas.CurrentUser = Depends(get_current_user),
) -> schemas.CurrentUser:
    if current_user.role != models.Role.ADMIN.value:
        raise Forbidden("Access Denied: Admin only")
    return current_user


async def require_catalog_writer(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[schemas.CurrentUser]:
    """Gate for mutating catalog routes; admin-only unless the policy is switched off."""
    if not settings.CATALOG_WRITE_REQUIRES_ADMIN:
        return None
    current_user = await get_current_user(credentials, db)
    return await require_admin(current_user)

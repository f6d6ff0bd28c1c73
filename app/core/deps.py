import uuid

from fastapi import Depends, HTTPException, status, Query
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.core.config import settings
from app.core.db import get_db
from app.modules.auth.models import User, UserRole
from app.modules.auth.schemas import TokenData

# We set auto_error=False so we can manually check for token (query or header)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login", auto_error=False)

async def _user_from_token(db: AsyncSession, token: str | None) -> User | None:
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        user_id: str = payload.get("sub")
        if user_id is None:
            return None
        token_data = TokenData(id=user_id)
    except JWTError:
        return None

    try:
        u_id = uuid.UUID(token_data.id)
    except ValueError:
        return None

    result = await db.execute(select(User).where(User.id == u_id))
    return result.scalars().first()

async def get_current_user(
    token_query: str | None = Query(None, alias="token"),
    token_header: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )

    user = await _user_from_token(db, token_query or token_header)
    # Banned users are treated as signed out
    if user is None or user.banned:
        raise credentials_exception
    return user

async def get_current_user_optional(
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> User | None:
    user = await _user_from_token(db, token)
    if user is None or user.banned:
        return None
    return user

async def get_current_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    if current_user.role != UserRole.ADMIN:
        raise HTTPException(status_code=403, detail="Forbidden - Admin only")
    return current_user

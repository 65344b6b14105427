"""
FastAPI dependencies for authentication and user-scoped services.
"""
from typing import Annotated
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database.base import utcnow
from app.core.database.engine import get_db, get_session_factory
from app.core.errors import NotAuthenticatedError, PermissionDeniedError
from app.features.users.auth import verify_jwt_token, get_appwrite_user
from app.features.users.identity import UserDirectory
from app.features.users.models import User
from app.features.users.preferences import PreferenceStore


security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> User:
    """
    Get the current authenticated user from JWT token.
    
    This dependency:
    1. Extracts JWT from Authorization header
    2. Verifies JWT with Appwrite
    3. Looks up or creates user in local database
    4. Updates last_login_at timestamp
    """
    if credentials is None:
        raise NotAuthenticatedError()
    
    payload = verify_jwt_token(credentials.credentials)
    appwrite_user_id = payload.get("userId")
    
    if not appwrite_user_id:
        raise NotAuthenticatedError("Invalid token payload")
    
    result = await db.execute(
        select(User).where(User.appwrite_id == appwrite_user_id)
    )
    user = result.scalar_one_or_none()
    
    # If user doesn't exist locally, fetch from Appwrite and mirror it
    if user is None:
        appwrite_user = await get_appwrite_user(appwrite_user_id)
        
        user = User(
            appwrite_id=appwrite_user_id,
            email=appwrite_user.get("email", ""),
            name=appwrite_user.get("name") or None,
            last_login_at=utcnow(),
        )
        db.add(user)
    else:
        user.last_login_at = utcnow()
    await db.commit()
    
    if not user.is_active:
        raise PermissionDeniedError("User account is deactivated")
    
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]


def get_user_directory(session_factory: SessionFactory) -> UserDirectory:
    return UserDirectory(session_factory)


def get_preference_store(session_factory: SessionFactory) -> PreferenceStore:
    return PreferenceStore(session_factory)


def get_authorization_header(request) -> str:
    """
    Extract authorization header for rate limiting.
    Used with slowapi Limiter.
    """
    auth = request.headers.get("Authorization", "")
    return auth or "anonymous"

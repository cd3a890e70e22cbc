"""
FastAPI Dependencies
Database sessions, services and bearer-token authentication
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.db.database import get_db
from marketplace.models.user import User, UserType
from marketplace.services.auth_service import AuthService
from marketplace.utils.exceptions import UnauthorizedError
from marketplace.utils.file_storage import S3FileStorage

logger = logging.getLogger(__name__)

# Security scheme for Cognito access tokens
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_file_storage(request: Request) -> S3FileStorage:
    return request.app.state.file_storage


async def _authenticate(auth_service: AuthService, token: str) -> User:
    try:
        return await auth_service.validate_user(token)
    except UnauthorizedError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> User:
    """
    Get the authenticated user from the bearer access token

    Raises:
        HTTPException: 401 if the token is invalid or the user is unknown
    """
    return await _authenticate(auth_service, credentials.credentials)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Optional[User]:
    """Authenticated user if a bearer token was sent, else None"""
    if not credentials:
        return None
    return await _authenticate(auth_service, credentials.credentials)


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.type != UserType.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user


# Type aliases for cleaner route signatures
DatabaseDep = Annotated[AsyncSession, Depends(get_db)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
FileStorageDep = Annotated[S3FileStorage, Depends(get_file_storage)]
CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[Optional[User], Depends(get_optional_user)]
AdminUser = Annotated[User, Depends(require_admin)]

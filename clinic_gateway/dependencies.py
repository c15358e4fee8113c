"""FastAPI dependencies."""

from collections.abc import Callable, Coroutine
from datetime import UTC, datetime
from typing import Annotated, Any

import redis
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from clinic_gateway.core.clinic_api import ClinicApiClient, get_clinic_client
from clinic_gateway.core.redis_client import CacheManager, get_redis_client
from clinic_gateway.core.security import decode_access_token, session_from_payload
from clinic_gateway.schemas.auth import Role, Session

# Security
security = HTTPBearer()


def get_now() -> datetime:
    """Current time for business rules; overridden in tests."""
    return datetime.now(UTC)


def get_cache_manager(
    redis_client: Annotated[redis.Redis, Depends(get_redis_client)],
) -> CacheManager:
    """Cache manager over the shared Redis client."""
    return CacheManager(redis_client)


async def get_current_session(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> Session:
    """
    Build the caller's session from the bearer token.

    Args:
        credentials: Bearer token credentials

    Returns:
        Session carried by the token

    Raises:
        HTTPException: If token is invalid or expired
    """
    payload = decode_access_token(credentials.credentials)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    session = session_from_payload(payload)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session claims",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return session


def require_role(role: Role) -> Callable[..., Coroutine[Any, Any, Session]]:
    """
    Dependency factory restricting an endpoint to one role.

    Args:
        role: Role the caller must have

    Returns:
        Dependency yielding the caller's session
    """

    async def checker(
        session: Annotated[Session, Depends(get_current_session)],
    ) -> Session:
        if session.role != role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{role.name.capitalize()} access required",
            )
        return session

    return checker


# Type aliases for dependency injection
ClinicClient = Annotated[ClinicApiClient, Depends(get_clinic_client)]
CacheManagerDep = Annotated[CacheManager, Depends(get_cache_manager)]
CurrentSession = Annotated[Session, Depends(get_current_session)]
PatientSession = Annotated[Session, Depends(require_role(Role.PATIENT))]
DoctorSession = Annotated[Session, Depends(require_role(Role.DOCTOR))]
Now = Annotated[datetime, Depends(get_now)]

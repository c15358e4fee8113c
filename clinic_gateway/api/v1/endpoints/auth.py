"""Authentication endpoints."""

from fastapi import APIRouter, status

from clinic_gateway.dependencies import CacheManagerDep, ClinicClient, CurrentSession
from clinic_gateway.schemas.auth import (
    Credentials,
    LoginResponse,
    MessageResponse,
    Session,
    Token,
    TokenRefresh,
)
from clinic_gateway.services.auth_service import AuthService

router = APIRouter()


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Log in with email and password",
)
async def login(
    request: Credentials,
    clinic: ClinicClient,
    cache_manager: CacheManagerDep,
) -> LoginResponse:
    """
    Verify credentials with the clinic API and return session tokens.

    The returned role decides which screens the client opens: ``user``
    for patients, ``doc`` for doctors.
    """
    auth_service = AuthService(clinic, cache_manager)
    return await auth_service.login(request.email, request.password)


@router.post(
    "/register",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Authentication"],
    summary="Register a patient account",
)
async def register(
    request: Credentials,
    clinic: ClinicClient,
    cache_manager: CacheManagerDep,
) -> MessageResponse:
    """Create a patient account in the clinic API."""
    auth_service = AuthService(clinic, cache_manager)
    await auth_service.register(request.email, request.password)
    return MessageResponse(message="User registered successfully")


@router.post(
    "/refresh",
    response_model=Token,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Refresh access token",
)
async def refresh_token(
    request: TokenRefresh,
    clinic: ClinicClient,
    cache_manager: CacheManagerDep,
) -> Token:
    """Exchange a refresh token for a new token pair."""
    auth_service = AuthService(clinic, cache_manager)
    return auth_service.refresh_access_token(request.refresh_token)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Authentication"],
    summary="Logout and revoke tokens",
)
async def logout(
    request: TokenRefresh,
    clinic: ClinicClient,
    cache_manager: CacheManagerDep,
) -> None:
    """Logout user by revoking refresh token."""
    auth_service = AuthService(clinic, cache_manager)
    auth_service.revoke_token(request.refresh_token)


@router.get(
    "/me",
    response_model=Session,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Current session",
)
async def me(session: CurrentSession) -> Session:
    """Return the session carried by the access token."""
    return session

"""Authentication service: clinic API login plus gateway session tokens."""

from datetime import UTC, datetime

import structlog

from clinic_gateway.core.clinic_api import ClinicApiClient
from clinic_gateway.core.exceptions import UnauthorizedException
from clinic_gateway.core.redis_client import CacheManager
from clinic_gateway.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    session_claims,
    session_from_payload,
)
from clinic_gateway.schemas.auth import LoginResponse, Session, Token, UserResponse

logger = structlog.get_logger()


class AuthService:
    """Authentication service for login, registration and token lifecycle."""

    def __init__(self, clinic: ClinicApiClient, cache_manager: CacheManager):
        """Initialize auth service with the clinic client and cache manager."""
        self.clinic = clinic
        self.cache = cache_manager

    @staticmethod
    def _blacklist_key(token: str) -> str:
        """Cache key marking a revoked refresh token."""
        return f"blacklist:{token}"

    async def login(self, email: str, password: str) -> LoginResponse:
        """
        Verify credentials with the clinic API and open a session.

        Args:
            email: Account email
            password: Account password

        Returns:
            Token pair and account information

        Raises:
            UnauthorizedException: If the clinic API rejects the credentials
        """
        identity = await self.clinic.login(email, password)

        session = Session(user_id=identity.id, email=identity.email, role=identity.role)
        tokens = self.create_tokens(session)

        logger.info("user_logged_in", user_id=session.user_id, role=session.role.value)

        return LoginResponse(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            token_type=tokens.token_type,
            user=UserResponse(
                id=identity.id,
                email=identity.email,
                role=identity.role,
                account_status=identity.account_status,
                account_type=identity.account_type,
            ),
        )

    async def register(self, email: str, password: str) -> None:
        """Create a patient account in the clinic API."""
        await self.clinic.register(email, password)
        logger.info("user_registered", email=email)

    def create_tokens(self, session: Session) -> Token:
        """
        Create access and refresh tokens for a session.

        Args:
            session: Authenticated session

        Returns:
            Token pair (access and refresh)
        """
        claims = session_claims(session)
        return Token(
            access_token=create_access_token(data=claims),
            refresh_token=create_refresh_token(data=claims),
            token_type="bearer",
        )

    def refresh_access_token(self, refresh_token: str) -> Token:
        """
        Create a new token pair from a refresh token.

        Raises:
            UnauthorizedException: If refresh token is invalid or revoked
        """
        payload = decode_refresh_token(refresh_token)
        if payload is None:
            raise UnauthorizedException("Invalid refresh token")

        session = session_from_payload(payload)
        if session is None:
            raise UnauthorizedException("Invalid refresh token")

        if self.cache.exists(self._blacklist_key(refresh_token)):
            raise UnauthorizedException("Token has been revoked")

        return self.create_tokens(session)

    def revoke_token(self, token: str) -> None:
        """
        Revoke a refresh token until it would have expired anyway.

        Args:
            token: Token to revoke
        """
        payload = decode_refresh_token(token)
        if payload is None:
            # Already unusable
            return

        ttl = max(int(payload["exp"] - datetime.now(UTC).timestamp()), 1)
        if not self.cache.set(self._blacklist_key(token), "1", ttl=ttl):
            logger.warning("token_revocation_not_stored")

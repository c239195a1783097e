"""
Authentication Service

Login, registration and token verification.

DESIGN DECISION:
- Passwords are hashed with bcrypt through passlib; plain passwords
  are never stored or logged
- Tokens are HMAC-signed JWTs (python-jose) carrying the user id in
  `sub`, plus `email`, a unique `jti`, `iss`, `aud` and `exp`
- Every login failure looks the same to the caller (None). The log
  says which check failed.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from uuid import UUID, uuid4

import structlog
from jose import JWTError, jwt
from passlib.context import CryptContext

from finance_tracker.config import JwtSettings
from finance_tracker.models.finance import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    User,
)
from finance_tracker.services.storage import DuplicateError, UnitOfWork


logger = structlog.get_logger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


class AuthService:
    """Issues and verifies tokens for registered users."""

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        jwt_settings: JwtSettings,
    ):
        self._uow_factory = uow_factory
        self._jwt = jwt_settings

    async def login(self, request: LoginRequest) -> Optional[LoginResponse]:
        """
        Check credentials and issue a token.

        Returns:
            None for an unknown email, an inactive user or a wrong password
        """
        logger.info("login_attempt", email=request.email)

        async with self._uow_factory() as uow:
            user = await uow.users.get_by_email(request.email)

        if user is None:
            logger.warning("login_failed", email=request.email, reason="user_not_found")
            return None

        if not user.is_active:
            logger.warning("login_failed", email=request.email, reason="user_inactive")
            return None

        if not verify_password(request.password, user.password_hash):
            logger.warning("login_failed", email=request.email, reason="invalid_password")
            return None

        token, expires_at = self.create_token(user)
        logger.info("login_succeeded", email=request.email, user_id=str(user.id))
        return LoginResponse(token=token, email=user.email, expires_at=expires_at)

    async def register(self, request: RegisterRequest) -> Optional[UUID]:
        """
        Create an active user.

        Returns:
            The new user id, or None if the email is already registered
        """
        user = User(
            email=request.email,
            password_hash=hash_password(request.password),
        )
        try:
            async with self._uow_factory() as uow:
                await uow.users.add(user)
        except DuplicateError:
            logger.warning("registration_rejected", email=request.email, reason="duplicate_email")
            return None

        logger.info("user_registered", email=user.email, user_id=str(user.id))
        return user.id

    async def seed_admin(self, email: str, password: str) -> bool:
        """
        Create the admin user if it does not exist yet.

        Returns:
            True if a user was created
        """
        async with self._uow_factory() as uow:
            if await uow.users.get_by_email(email) is not None:
                return False
            await uow.users.add(User(email=email, password_hash=hash_password(password)))

        logger.info("admin_user_seeded", email=email)
        return True

    def create_token(self, user: User) -> tuple[str, datetime]:
        """Sign a token for the user. Returns (token, expires_at in UTC)."""
        expires_at = datetime.now(timezone.utc) + timedelta(hours=self._jwt.expiration_hours)
        claims = {
            "sub": str(user.id),
            "email": user.email,
            "jti": str(uuid4()),
            "iss": self._jwt.issuer,
            "aud": self._jwt.audience,
            "exp": expires_at,
        }
        token = jwt.encode(claims, self._jwt.secret_key, algorithm=self._jwt.algorithm)
        return token, expires_at

    def decode_token(self, token: str) -> Optional[UUID]:
        """
        Verify signature, expiry, issuer and audience.

        Returns:
            The user id from `sub`, or None if the token is not acceptable
        """
        try:
            claims = jwt.decode(
                token,
                self._jwt.secret_key,
                algorithms=[self._jwt.algorithm],
                audience=self._jwt.audience,
                issuer=self._jwt.issuer,
            )
            return UUID(claims["sub"])
        except (JWTError, KeyError, ValueError) as e:
            logger.warning("token_rejected", error=str(e))
            return None

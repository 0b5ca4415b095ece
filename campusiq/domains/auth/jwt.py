# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""JWT token handling for the identity collaborator.

Tokens carry the caller's id, display name, administrative role and
account kind. Decoding a token yields the Actor passed to every boundary
call.

Example:
    >>> jwt_manager = JWTManager(get_settings().jwt)
    >>> token = jwt_manager.create_access_token(actor)
    >>> jwt_manager.decode_actor(token)
    Actor(id='admin-1', ...)
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, jwt
from pydantic import BaseModel, ValidationError

from campusiq.core.config.settings import JWTSettings
from campusiq.models.common import AccountKind, Actor, Role

logger = logging.getLogger(__name__)


class TokenPayload(BaseModel):
    """JWT access token payload.

    Attributes:
        sub: Subject (user id).
        name: Display name.
        role: Administrative role, absent for non-admin accounts.
        account: Account kind.
        exp: Expiration timestamp.
        iat: Issued at timestamp.
        jti: Token id.
    """

    sub: str
    name: str = ""
    role: Role | None = None
    account: AccountKind = AccountKind.ADMIN
    exp: int
    iat: int
    jti: str

    def to_actor(self) -> Actor:
        return Actor(id=self.sub, name=self.name, role=self.role, account=self.account)


class JWTError(Exception):
    """Base exception for JWT operations."""

    pass


class TokenExpiredError(JWTError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(JWTError):
    """Raised when a token is invalid."""

    pass


class JWTManager:
    """JWT token creation and validation.

    Attributes:
        _settings: JWT configuration settings.
    """

    def __init__(self, settings: JWTSettings) -> None:
        self._settings = settings

    def create_access_token(self, actor: Actor) -> str:
        """Create an access token for ``actor``.

        Args:
            actor: Identity to encode.

        Returns:
            JWT access token string.
        """
        now = datetime.now(timezone.utc)
        exp = now + timedelta(minutes=self._settings.access_token_expire_minutes)

        payload = {
            "sub": actor.id,
            "name": actor.name,
            "role": actor.role.value if actor.role else None,
            "account": actor.account.value,
            "exp": int(exp.timestamp()),
            "iat": int(now.timestamp()),
            "jti": secrets.token_urlsafe(16),
        }

        return jwt.encode(
            payload,
            self._settings.secret_key.get_secret_value(),
            algorithm=self._settings.algorithm,
        )

    def decode_token(self, token: str) -> TokenPayload:
        """Decode and validate a JWT token.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is malformed, badly signed or
                carries unknown claims values.
        """
        try:
            payload = jwt.decode(
                token,
                self._settings.secret_key.get_secret_value(),
                algorithms=[self._settings.algorithm],
            )
            return TokenPayload.model_validate(payload)
        except ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except ValidationError as e:
            logger.warning("Token claims rejected: %s", e.error_count())
            raise InvalidTokenError("Invalid token claims")
        except Exception as e:
            logger.warning("Token decode failed: %s", str(e))
            raise InvalidTokenError(f"Invalid token: {str(e)}")

    def decode_actor(self, token: str) -> Actor:
        """Decode a token straight into the calling Actor."""
        return self.decode_token(token).to_actor()

    def verify_token(self, token: str) -> bool:
        """Check whether ``token`` decodes cleanly."""
        try:
            self.decode_token(token)
            return True
        except (TokenExpiredError, InvalidTokenError):
            return False

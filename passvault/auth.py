"""
Authentication — Bearer tokens mapping a request to a stable user id.

The signing secret is injected into ``TokenAuthority`` at construction; it is
never read from module state by the encryption core.

Security Note:
    Never log tokens or the signing secret. Only log user ids.
"""
import os
import base64
import secrets
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from aiohttp import web
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger("passvault.auth")

DEFAULT_EXPIRATION = timedelta(days=7)
BEARER_PREFIX = "Bearer "


class TokenPayload(BaseModel):
    """Identity carried by a verified token."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    email: str


def generate_signing_secret() -> str:
    """Generate a random 32-byte signing secret as a base64 string.

    This is a utility for operators to generate new secrets.
    """
    return base64.b64encode(secrets.token_bytes(32)).decode("ascii")


class TokenAuthority:
    """Issues and verifies HMAC-signed JWTs with an injected secret."""

    def __init__(
        self,
        secret: str,
        expires_in: timedelta = DEFAULT_EXPIRATION,
        algorithm: str = "HS256",
    ):
        if not secret:
            raise ValueError("Token signing secret cannot be empty")
        self._secret = secret
        self._expires_in = expires_in
        self._algorithm = algorithm

    def __repr__(self) -> str:
        return f"<TokenAuthority algorithm={self._algorithm}>"

    @classmethod
    def from_env(cls) -> "TokenAuthority":
        """Build an authority from the JWT_SECRET environment variable.

        Raises:
            RuntimeError: If JWT_SECRET is not set.
        """
        secret = os.environ.get("JWT_SECRET")
        if not secret:
            raise RuntimeError(
                "JWT_SECRET environment variable is not set"
            )
        return cls(secret)

    def issue(self, user_id: Any, email: str) -> str:
        """Return a signed token for ``user_id``."""
        now = datetime.now(timezone.utc)
        claims = {
            "sub": str(user_id),
            "email": email,
            "iat": now,
            "exp": now + self._expires_in,
        }
        logger.debug("Issued token for user=%s", user_id)
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> Optional[TokenPayload]:
        """Return the token identity, or None if it is invalid or expired."""
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.InvalidTokenError as err:
            logger.debug("Rejected token: %s", type(err).__name__)
            return None
        return TokenPayload(user_id=claims["sub"], email=claims.get("email", ""))

    def user_from_request(self, request: web.Request) -> Optional[TokenPayload]:
        """Read ``Authorization: Bearer <token>`` from an aiohttp request."""
        header = request.headers.get("Authorization", "")
        if not header.startswith(BEARER_PREFIX):
            return None
        token = header[len(BEARER_PREFIX):].strip()
        if not token:
            return None
        return self.verify(token)

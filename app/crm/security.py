"""
Credential hashing and bearer-token issuing.

Both are injected into the customer service / auth blueprint rather than called
inline, so core logic can be exercised without real cryptography.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from werkzeug.security import check_password_hash, generate_password_hash

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
DEFAULT_ROLE = "ROLE_USER"


class InvalidToken(Exception):
    pass


class PasswordHasher:
    """One-way credential hashing (werkzeug scrypt/pbkdf2 via generate_password_hash)."""

    def hash(self, plaintext: str) -> str:
        return generate_password_hash(plaintext)

    def verify(self, password_hash: str, plaintext: str) -> bool:
        return check_password_hash(password_hash, plaintext)


@dataclass(frozen=True)
class TokenIssuer:
    secret_key: str
    issuer: str
    expiration: timedelta

    def issue(self, subject: str, roles: list[str] | tuple[str, ...]) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            "sub": subject,
            "scopes": list(roles),
            "iss": self.issuer,
            "iat": now,
            "exp": now + self.expiration,
        }
        return jwt.encode(claims, self.secret_key, algorithm=ALGORITHM)

    def decode(self, token: str) -> dict[str, Any]:
        try:
            claims = jwt.decode(token, self.secret_key, algorithms=[ALGORITHM], issuer=self.issuer)
        except JWTError as e:
            logger.warning("JWT decode error: %s", e)
            raise InvalidToken(str(e)) from e
        if not claims.get("sub"):
            raise InvalidToken("Token has no subject")
        return claims


def token_issuer_from_config(config: dict) -> TokenIssuer:
    return TokenIssuer(
        secret_key=config["JWT_SECRET_KEY"],
        issuer=config.get("JWT_ISSUER") or "customer-service",
        expiration=timedelta(days=int(config.get("JWT_EXPIRATION_DAYS") or 15)),
    )

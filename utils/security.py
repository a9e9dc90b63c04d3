"""
security helpers:
- Argon2 password hashing via argon2-cffi
- Access/refresh JWT issuing and verification via PyJWT
- JTI generation for token identifiers
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError

logger = logging.getLogger(__name__)

ph = PasswordHasher()

ACCESS = "access"
REFRESH = "refresh"
REQUIRED_CLAIMS = ["sub", "exp", "iat", "type"]


class TokenError(Exception):
    """Base class for token verification failures."""

    reason = "Invalid token"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.reason)


class ExpiredToken(TokenError):
    reason = "Token expired"


class InvalidSignature(TokenError):
    reason = "Invalid token signature"


class MalformedToken(TokenError):
    reason = "Malformed token"


@dataclass(frozen=True)
class TokenSettings:
    access_token_secret: str
    access_token_ttl: timedelta
    refresh_token_secret: str
    refresh_token_ttl: timedelta
    algorithm: str = "HS256"

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "TokenSettings":
        return cls(
            access_token_secret=config["ACCESS_TOKEN_SECRET"],
            access_token_ttl=config["ACCESS_TOKEN_TTL"],
            refresh_token_secret=config["REFRESH_TOKEN_SECRET"],
            refresh_token_ttl=config["REFRESH_TOKEN_TTL"],
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
        )

    def secret_for(self, kind: str) -> str:
        if kind == ACCESS:
            return self.access_token_secret
        if kind == REFRESH:
            return self.refresh_token_secret
        raise ValueError(f"Unknown token kind: {kind!r}")

    def ttl_for(self, kind: str) -> timedelta:
        if kind == ACCESS:
            return self.access_token_ttl
        if kind == REFRESH:
            return self.refresh_token_ttl
        raise ValueError(f"Unknown token kind: {kind!r}")


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a plaintext password using argon2.
    Any failure, including a corrupt or missing hash, counts as a mismatch.
    """
    try:
        return ph.verify(password_hash, password)
    except VerifyMismatchError:
        return False
    except Exception as exc:
        logger.warning("Password verification failed: %s", exc.__class__.__name__)
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def issue_token(
    user_id: str,
    kind: str,
    settings: TokenSettings,
    extra_claims: Dict[str, Any] | None = None,
) -> str:
    """
    Create a signed token of the given kind ("access" or "refresh") for user_id.
    The secret and lifetime are picked from settings by kind.
    """
    secret = settings.secret_for(kind)
    now = _now()
    payload: Dict[str, Any] = dict(extra_claims or {})
    payload.update(
        {
            "sub": str(user_id),
            "type": kind,
            "iat": int(now.timestamp()),
            "exp": int((now + settings.ttl_for(kind)).timestamp()),
            "jti": generate_jti(),
        }
    )
    return jwt.encode(payload, secret, algorithm=settings.algorithm)


def verify_token(token: str, kind: str, settings: TokenSettings) -> Dict[str, Any]:
    """
    Decode and validate a token of the given kind and return its claims.
    Raises ExpiredToken, InvalidSignature or MalformedToken.
    """
    secret = settings.secret_for(kind)
    if not isinstance(token, str) or not token:
        raise MalformedToken("Token is missing")
    try:
        decoded = jwt.decode(
            token,
            secret,
            algorithms=[settings.algorithm],
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError:
        raise ExpiredToken()
    except jwt.InvalidSignatureError:
        raise InvalidSignature()
    except jwt.InvalidTokenError as exc:
        raise MalformedToken(f"Malformed token: {exc}")

    if decoded.get("type") != kind:
        raise MalformedToken("Wrong token type")
    return decoded

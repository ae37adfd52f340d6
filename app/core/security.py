from __future__ import annotations

import base64
import hashlib
import hmac
import json
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from app.domain.enums import UserRole

PASSWORD_SCHEME = "pbkdf2_sha256"
PASSWORD_ITERATIONS = 260_000
TOKEN_VERSION = 1


class InvalidTokenError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class SessionClaims:
    user_id: UUID
    role: UserRole
    expires_at: datetime


def _encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _decode(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def _pbkdf2(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)


def hash_password(password: str) -> str:
    """Return ``scheme$iterations$salt$digest`` for storage in ``users.password_hash``."""
    if not password:
        raise ValueError("Password cannot be empty.")
    salt = secrets.token_bytes(16)
    digest = _pbkdf2(password, salt, PASSWORD_ITERATIONS)
    return "$".join((PASSWORD_SCHEME, str(PASSWORD_ITERATIONS), _encode(salt), _encode(digest)))


def verify_password(password: str, stored_hash: str) -> bool:
    parts = stored_hash.split("$")
    if len(parts) != 4 or parts[0] != PASSWORD_SCHEME:
        return False
    try:
        iterations, salt, expected = int(parts[1]), _decode(parts[2]), _decode(parts[3])
    except (ValueError, TypeError):
        return False
    return hmac.compare_digest(_pbkdf2(password, salt, iterations), expected)


def _signature(body: str, secret: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), body.encode("utf-8"), hashlib.sha256).digest()


def create_access_token(
    *,
    user_id: UUID,
    role: UserRole,
    secret: str,
    ttl_minutes: int,
) -> tuple[str, datetime]:
    issued_at = datetime.now(UTC)
    expires_at = issued_at + timedelta(minutes=ttl_minutes)
    claims = {
        "v": TOKEN_VERSION,
        "uid": str(user_id),
        "role": role.value,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
        # Two tokens minted in the same second still differ.
        "jti": secrets.token_hex(8),
    }
    body = _encode(json.dumps(claims, separators=(",", ":"), sort_keys=True).encode("utf-8"))
    return f"{body}.{_encode(_signature(body, secret))}", expires_at


def _read_claims(body: str) -> dict[str, Any]:
    try:
        claims = json.loads(_decode(body))
    except (ValueError, TypeError) as exc:
        raise InvalidTokenError("Malformed token payload") from exc
    if not isinstance(claims, dict) or claims.get("v") != TOKEN_VERSION:
        raise InvalidTokenError("Unsupported token payload")
    return claims


def decode_access_token(token: str, secret: str) -> SessionClaims:
    """Verify signature, version and expiry; raise ``InvalidTokenError`` otherwise."""
    body, _, signature = token.partition(".")
    if not body or not signature:
        raise InvalidTokenError("Malformed token")
    try:
        provided = _decode(signature)
    except (ValueError, TypeError) as exc:
        raise InvalidTokenError("Malformed token signature") from exc
    if not hmac.compare_digest(_signature(body, secret), provided):
        raise InvalidTokenError("Invalid token signature")

    claims = _read_claims(body)
    try:
        session_claims = SessionClaims(
            user_id=UUID(str(claims["uid"])),
            role=UserRole(str(claims["role"])),
            expires_at=datetime.fromtimestamp(int(claims["exp"]), UTC),
        )
    except (KeyError, ValueError, TypeError) as exc:
        raise InvalidTokenError("Malformed token payload") from exc

    if session_claims.expires_at <= datetime.now(UTC):
        raise InvalidTokenError("Token expired")
    return session_claims

"""JWT helpers for identifying the caller of HTTP and WebSocket endpoints."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from src.blueprint.core.config import get_settings
from src.blueprint.models.enums import SubscriptionTier


@dataclass(frozen=True)
class Principal:
    """The authenticated tenant behind a request or live connection."""

    user_id: UUID
    email: str | None
    tier: SubscriptionTier


def create_access_token(
    subject: str | UUID,
    email: str | None = None,
    tier: SubscriptionTier | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Create JWT access token."""
    settings = get_settings()

    if expires_delta:
        expire = datetime.now(UTC) + expires_delta
    else:
        expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode: dict[str, Any] = {
        "sub": str(subject),
        "exp": expire,
        "type": "access",
    }
    if email is not None:
        to_encode["email"] = email
    if tier is not None:
        to_encode["tier"] = tier.value
    return jwt.encode(  # type: ignore[no-any-return]
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_token(token: str) -> dict[str, Any] | None:
    """Decode and validate JWT token. Returns None on any error."""
    settings = get_settings()
    try:
        return jwt.decode(  # type: ignore[no-any-return]
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None


def principal_from_token(token: str) -> Principal | None:
    """Resolve an access token to a Principal, or None if it is unusable.

    Tokens without a tier claim fall back to the configured default tier.
    """
    payload = decode_token(token)
    if payload is None or payload.get("type") != "access":
        return None

    try:
        user_id = UUID(payload.get("sub") or "")
    except ValueError:
        return None

    tier_value = payload.get("tier") or get_settings().default_subscription_tier
    try:
        tier = SubscriptionTier(tier_value)
    except ValueError:
        return None

    return Principal(user_id=user_id, email=payload.get("email"), tier=tier)

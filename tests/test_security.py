"""Tests for access token decoding and principal resolution."""

from datetime import timedelta
from uuid import uuid4

from jose import jwt

from src.blueprint.core.config import get_settings
from src.blueprint.core.security import create_access_token, decode_token, principal_from_token
from src.blueprint.models.enums import SubscriptionTier


class TestDecodeToken:
    """Tests for decode_token()."""

    def test_round_trip(self):
        user_id = uuid4()
        payload = decode_token(create_access_token(user_id))

        assert payload is not None
        assert payload["sub"] == str(user_id)
        assert payload["type"] == "access"

    def test_expired_token(self):
        """Expired tokens decode to None."""
        token = create_access_token(uuid4(), expires_delta=timedelta(seconds=-1))
        assert decode_token(token) is None

    def test_wrong_signature(self):
        settings = get_settings()
        token = jwt.encode(
            {"sub": str(uuid4()), "type": "access"},
            "another-secret-that-is-also-long-enough",
            algorithm=settings.jwt_algorithm,
        )
        assert decode_token(token) is None

    def test_garbage(self):
        assert decode_token("not-a-jwt") is None


class TestPrincipalFromToken:
    """Tests for principal_from_token()."""

    def test_carries_email_and_tier(self):
        user_id = uuid4()
        token = create_access_token(user_id, email="owner@example.com", tier=SubscriptionTier.PRO)

        principal = principal_from_token(token)

        assert principal is not None
        assert principal.user_id == user_id
        assert principal.email == "owner@example.com"
        assert principal.tier is SubscriptionTier.PRO

    def test_missing_tier_uses_default(self):
        principal = principal_from_token(create_access_token(uuid4()))

        assert principal is not None
        assert principal.tier is SubscriptionTier(get_settings().default_subscription_tier)
        assert principal.email is None

    def test_unknown_tier_is_rejected(self):
        settings = get_settings()
        token = jwt.encode(
            {"sub": str(uuid4()), "type": "access", "tier": "platinum"},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )
        assert principal_from_token(token) is None

    def test_non_access_token_is_rejected(self):
        """Refresh tokens cannot be used to call the API."""
        settings = get_settings()
        token = jwt.encode(
            {"sub": str(uuid4()), "type": "refresh"},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )
        assert principal_from_token(token) is None

    def test_subject_must_be_uuid(self):
        assert principal_from_token(create_access_token("not-a-uuid")) is None

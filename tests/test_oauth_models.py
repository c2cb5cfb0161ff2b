"""
Unit tests for the OAuth2 Pydantic models.
"""

import pytest
from datetime import datetime, timedelta, timezone

from pydantic import ValidationError

from src.shared.oauth_models import (
    AccessToken,
    AuthorizationRequest,
    HttpTrace,
    OAuthError,
    TokenRequest,
    TokenResponse,
)

NOW = datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)


class TestAuthorizationRequest:
    """Test cases for AuthorizationRequest."""

    def test_query_order_and_defaults(self):
        request = AuthorizationRequest(
            client_id="test",
            redirect_uri="http://localhost:3000/callback",
            scope="user_profile",
            state="abc"
        )

        assert request.to_query() == [
            ("client_id", "test"),
            ("redirect_uri", "http://localhost:3000/callback"),
            ("response_type", "code"),
            ("scope", "user_profile"),
            ("state", "abc"),
        ]

    def test_state_required(self):
        with pytest.raises(ValidationError):
            AuthorizationRequest(client_id="test", redirect_uri="http://x/cb", state="")

    def test_only_code_response_type(self):
        with pytest.raises(ValidationError):
            AuthorizationRequest(client_id="test", redirect_uri="http://x/cb", state="s",
                                 response_type="token")


class TestTokenRequest:
    """Test cases for TokenRequest."""

    def test_form_with_body_credentials(self):
        request = TokenRequest(code="c", redirect_uri="http://x/cb", client_id="id", client_secret="pw")

        assert request.to_form() == {
            "grant_type": "authorization_code",
            "code": "c",
            "redirect_uri": "http://x/cb",
            "client_id": "id",
            "client_secret": "pw",
        }

    def test_form_without_secret(self):
        request = TokenRequest(code="c", redirect_uri="http://x/cb", client_id="id")

        assert "client_secret" not in request.to_form()

    def test_code_required(self):
        with pytest.raises(ValidationError):
            TokenRequest(code="", redirect_uri="http://x/cb", client_id="id")


class TestTokenResponse:
    """Test cases for TokenResponse conversion."""

    def test_expiry_from_expires_in(self):
        token = TokenResponse(access_token="t", expires_in=3600).to_access_token(now=NOW)

        assert token.expiry == NOW + timedelta(hours=1)

    def test_string_expires_in(self):
        assert TokenResponse(access_token="t", expires_in="60").expires_in == 60

    @pytest.mark.parametrize("expires_in", [None, 0, ""])
    def test_no_expiry(self, expires_in):
        token = TokenResponse(access_token="t", expires_in=expires_in).to_access_token(now=NOW)

        assert token.expiry is None

    def test_extra_fields_ignored(self):
        response = TokenResponse(access_token="t", id_token="x", custom=1)

        assert response.access_token == "t"

    def test_empty_token_type_defaults_to_bearer(self):
        assert TokenResponse(access_token="t", token_type="").to_access_token().token_type == "Bearer"


class TestAccessToken:
    """Validity rules for AccessToken."""

    def test_valid_without_expiry(self):
        assert AccessToken(access_token="t").is_valid(NOW)

    def test_empty_token_invalid(self):
        assert not AccessToken(access_token="").is_valid(NOW)

    def test_expired_token_invalid(self):
        token = AccessToken(access_token="t", expiry=NOW - timedelta(seconds=1))

        assert token.is_expired(NOW)
        assert not token.is_valid(NOW)

    def test_token_expiring_within_delta_invalid(self):
        token = AccessToken(access_token="t", expiry=NOW + timedelta(seconds=9))

        assert not token.is_valid(NOW)

    def test_token_with_time_left_valid(self):
        token = AccessToken(access_token="t", expiry=NOW + timedelta(seconds=11))

        assert token.is_valid(NOW)

    def test_token_is_immutable(self):
        token = AccessToken(access_token="t")

        with pytest.raises(ValidationError):
            token.access_token = "other"


class TestOAuthError:
    """Test cases for OAuthError."""

    def test_str_with_description(self):
        assert str(OAuthError(error="invalid_grant", error_description="Bad code")) == "invalid_grant: Bad code"

    def test_str_without_description(self):
        assert str(OAuthError(error="invalid_client")) == "invalid_client"


class TestHttpTrace:
    """Test cases for HttpTrace."""

    def test_failed_flag(self):
        ok = HttpTrace(label="User info", method="GET", url="http://x", status="200 OK")
        failed = HttpTrace(label="User info", method="GET", url="http://x", error="boom")

        assert not ok.failed
        assert failed.failed

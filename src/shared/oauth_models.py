"""
OAuth2 Pydantic models for the authorization-code flow.

This module defines the data passed between the trace client and the
identity provider: the authorization request, the token request and
response, the access token kept for one callback, and the HTTP trace
record captured for every bearer-authenticated call.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Tokens are treated as expired slightly before their actual expiry
EXPIRY_DELTA = timedelta(seconds=10)


class GrantType(str, Enum):
    """OAuth2 grant types."""
    AUTHORIZATION_CODE = "authorization_code"


class ResponseType(str, Enum):
    """OAuth2 response types."""
    CODE = "code"


class TokenType(str, Enum):
    """OAuth token types."""
    BEARER = "Bearer"


class AuthorizationRequest(BaseModel):
    """
    OAuth2 authorization request model.

    Holds the query parameters sent to the provider's authorization endpoint.
    """
    model_config = ConfigDict(use_enum_values=True, frozen=True)

    client_id: str = Field(..., min_length=1, description="OAuth client identifier")
    redirect_uri: str = Field(..., min_length=1, description="Client redirect URI")
    scope: str = Field(default="", description="Space separated requested scopes")
    state: str = Field(..., min_length=1, description="CSRF protection state parameter")
    response_type: ResponseType = Field(
        default=ResponseType.CODE.value,
        description="OAuth response type (must be 'code')"
    )

    def to_query(self) -> List[Tuple[str, str]]:
        """Query parameters in the order providers conventionally expect them."""
        params = [
            ("client_id", self.client_id),
            ("redirect_uri", self.redirect_uri),
            ("response_type", self.response_type),
        ]
        if self.scope:
            params.append(("scope", self.scope))
        params.append(("state", self.state))
        return params


class TokenRequest(BaseModel):
    """
    OAuth2 token request model for the authorization-code grant.

    The client secret is only included in the form body when the client
    authenticates with body credentials rather than HTTP Basic.
    """
    model_config = ConfigDict(use_enum_values=True)

    grant_type: GrantType = Field(default=GrantType.AUTHORIZATION_CODE.value, description="OAuth grant type")
    code: str = Field(..., min_length=1, description="Authorization code")
    redirect_uri: str = Field(..., min_length=1, description="Client redirect URI")
    client_id: str = Field(..., min_length=1, description="OAuth client identifier")
    client_secret: Optional[str] = Field(default=None, description="Client secret for body authentication")

    def to_form(self) -> Dict[str, str]:
        """Form-encoded body for the token endpoint."""
        return self.model_dump(exclude_none=True)


class TokenResponse(BaseModel):
    """
    OAuth2 token response model.

    Providers differ in how strictly they follow RFC 6749, so only the
    access token field is required to exist (it may still be empty, which
    the exchanger reports as an invalid token).
    """
    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(default="", description="OAuth access token")
    token_type: str = Field(default=TokenType.BEARER.value, description="Token type")
    expires_in: Optional[int] = Field(default=None, description="Token lifetime in seconds")
    scope: Optional[str] = Field(default=None, description="Granted scope")
    refresh_token: Optional[str] = Field(default=None, description="Refresh token (optional)")

    @field_validator('expires_in', mode='before')
    @classmethod
    def parse_expires_in(cls, v):
        """Accept numeric strings, which form-encoded responses always carry."""
        if v in (None, ""):
            return None
        return int(v)

    def to_access_token(self, now: Optional[datetime] = None) -> "AccessToken":
        """
        Convert the wire response into an AccessToken with an absolute expiry.

        A missing or zero ``expires_in`` means the token does not expire.
        """
        now = now or datetime.now(timezone.utc)
        expiry = None
        if self.expires_in:
            expiry = now + timedelta(seconds=self.expires_in)
        return AccessToken(
            access_token=self.access_token,
            token_type=self.token_type or TokenType.BEARER.value,
            expiry=expiry,
            refresh_token=self.refresh_token,
            scope=self.scope
        )


class OAuthError(BaseModel):
    """
    OAuth2 error response model.

    Standard error response format as defined in RFC 6749.
    """
    model_config = ConfigDict(extra="ignore")

    error: str = Field(..., description="Error code")
    error_description: Optional[str] = Field(
        default=None,
        description="Human-readable error description"
    )
    error_uri: Optional[str] = Field(
        default=None,
        description="URI with error information"
    )

    def __str__(self) -> str:
        if self.error_description:
            return f"{self.error}: {self.error_description}"
        return self.error


class AccessToken(BaseModel):
    """
    Access token obtained for a single callback request.

    Never persisted and never logged.
    """
    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = TokenType.BEARER.value
    expiry: Optional[datetime] = None
    refresh_token: Optional[str] = None
    scope: Optional[str] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expiry is None:
            return False
        now = now or datetime.now(timezone.utc)
        return self.expiry - EXPIRY_DELTA < now

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """True when the token is non-empty and not expired."""
        return bool(self.access_token) and not self.is_expired(now)


class HttpTrace(BaseModel):
    """
    Full record of one outbound call.

    Either the response fields or ``error`` are populated, never both.
    """
    label: str
    method: str
    url: str
    request_headers: List[Tuple[str, str]] = Field(default_factory=list)
    request_body: str = ""
    status: Optional[str] = None
    response_headers: List[Tuple[str, str]] = Field(default_factory=list)
    response_body: Optional[str] = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

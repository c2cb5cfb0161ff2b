"""
Client configuration for the OAuth2 trace client.

The configuration is read once at startup from ``OAUTH_TRACE_*`` environment
variables, validated, and frozen. The app factory receives it explicitly;
nothing in the request path mutates it.
"""

import os
import secrets
from typing import List, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError

ENV_PREFIX = "OAUTH_TRACE_"

# Defaults point at the CLARIN pilot provider the harness was written for
DEFAULT_PROVIDER = "https://pilot1.idm.clarin.eu"


class ClientConfig(BaseModel):
    """Immutable OAuth2 client and listener settings."""

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(default="test", min_length=1)
    client_secret: str = Field(default="Abcdefghij", repr=False)
    redirect_uri: str = "http://localhost:3000/callback"
    scopes: List[str] = Field(default_factory=lambda: ["user_profile"])
    auth_url: str = f"{DEFAULT_PROVIDER}/oauth2-as/oauth2-authz"
    token_url: str = f"{DEFAULT_PROVIDER}/oauth2/token"
    token_validation_url: str = f"{DEFAULT_PROVIDER}/oauth2/tokeninfo"
    user_info_url: str = f"{DEFAULT_PROVIDER}/oauth2/userinfo"
    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)
    http_timeout: float = Field(default=10.0, gt=0)
    state_ttl: int = Field(default=600, gt=0)
    session_secret: str = Field(default_factory=lambda: secrets.token_urlsafe(32), repr=False)
    token_auth_style: Literal["body", "basic"] = "body"

    @field_validator('redirect_uri', 'auth_url', 'token_url', 'token_validation_url', 'user_info_url')
    @classmethod
    def validate_http_url(cls, v):
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"must be an http(s) URL, got {v!r}")
        return v

    @field_validator('scopes', mode='before')
    @classmethod
    def split_scopes(cls, v):
        """Accept a comma or whitespace separated string as well as a list."""
        if isinstance(v, str):
            return [s for s in v.replace(",", " ").split() if s]
        return v

    @property
    def scope(self) -> str:
        return " ".join(self.scopes)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ClientConfig":
        """
        Build the configuration from environment variables.

        Unset variables keep their defaults. Raises ConfigError when a value
        fails validation.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigError(f"Invalid {ENV_PREFIX}* configuration: {e}") from e

    def summary(self) -> dict:
        """Non-secret settings for startup logging."""
        return {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": self.scope,
            "auth_url": self.auth_url,
            "token_url": self.token_url,
            "token_validation_url": self.token_validation_url,
            "user_info_url": self.user_info_url,
            "http_timeout": self.http_timeout,
            "token_auth_style": self.token_auth_style
        }

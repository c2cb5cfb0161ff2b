"""
Stub OAuth2 identity provider.

A local stand-in for the real provider so the trace client can be exercised
end to end without network access. It auto-approves every authorization
request for a single demo subject and serves the same paths as the pilot
provider:

- `GET /oauth2-as/oauth2-authz` - authorization endpoint
- `POST /oauth2/token` - authorization-code grant
- `GET /oauth2/tokeninfo` - token validation (bearer)
- `GET /oauth2/userinfo` - user information (bearer)
"""

import base64
import binascii
import re
from datetime import timedelta
from typing import Optional, Tuple
from urllib.parse import urlencode

from fastapi import FastAPI, Form, Header
from fastapi.responses import JSONResponse, RedirectResponse

from ..shared.crypto_utils import constant_time_compare
from ..shared.logging_utils import OAuthLogger
from ..shared.oauth_models import GrantType, ResponseType, TokenType
from .storage import AccessTokenStore, AuthCodeStore

logger = OAuthLogger("PROVIDER")

BEARER_TOKEN_PATTERN = re.compile(r'^Bearer\s+([A-Za-z0-9\-._~+/]+=*)$')

DEMO_SUBJECT = {
    "sub": "alice",
    "name": "Alice Demo",
    "email": "alice@example.com"
}


def _oauth_error(error: str, description: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "error_description": description}
    )


def _basic_credentials(authorization: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    if not authorization or not authorization.startswith("Basic "):
        return None, None
    try:
        decoded = base64.b64decode(authorization[6:]).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None, None
    client_id, _, client_secret = decoded.partition(":")
    return client_id, client_secret


def create_app(client_id: str = "test",
               client_secret: str = "Abcdefghij",
               token_lifetime: timedelta = timedelta(hours=1)) -> FastAPI:
    """
    Create a stub provider that knows a single client.

    Args:
        client_id: Accepted client identifier
        client_secret: Accepted client secret
        token_lifetime: Lifetime advertised and enforced for access tokens
    """
    app = FastAPI(title="Stub OAuth2 Provider", version="1.0.0")
    codes = AuthCodeStore()
    tokens = AccessTokenStore(token_lifetime)
    app.state.codes = codes
    app.state.tokens = tokens
    app_client_id = client_id
    app_client_secret = client_secret

    def bearer_grant(authorization: Optional[str]):
        match = BEARER_TOKEN_PATTERN.match(authorization or "")
        if not match:
            return None
        return tokens.lookup(match.group(1))

    @app.get("/oauth2-as/oauth2-authz")
    async def authorize(client_id: str, redirect_uri: str, state: str,
                        response_type: str = ResponseType.CODE.value, scope: str = ""):
        """Auto-approve the request and redirect back with a code."""
        if not constant_time_compare(client_id, app_client_id):
            return _oauth_error("unauthorized_client", "Unknown client_id")

        params = {"state": state}
        if response_type != ResponseType.CODE.value:
            params["error"] = "unsupported_response_type"
        else:
            params["code"] = codes.store_code(client_id, redirect_uri, scope, DEMO_SUBJECT["sub"])

        separator = "&" if "?" in redirect_uri else "?"
        return RedirectResponse(f"{redirect_uri}{separator}{urlencode(params)}", status_code=302)

    @app.post("/oauth2/token")
    async def token(grant_type: str = Form(...),
                    code: str = Form(...),
                    redirect_uri: str = Form(...),
                    client_id: Optional[str] = Form(None),
                    client_secret: Optional[str] = Form(None),
                    authorization: Optional[str] = Header(None)):
        """Exchange an authorization code for a bearer token."""
        basic_id, basic_secret = _basic_credentials(authorization)
        presented_id = basic_id or client_id
        presented_secret = basic_secret if basic_id else client_secret

        if not (constant_time_compare(presented_id, app_client_id)
                and constant_time_compare(presented_secret, app_client_secret)):
            return _oauth_error("invalid_client", "Client authentication failed", 401)

        if grant_type != GrantType.AUTHORIZATION_CODE.value:
            return _oauth_error("unsupported_grant_type", f"Unsupported grant_type '{grant_type}'")

        grant = codes.consume_code(code, presented_id, redirect_uri)
        if grant is None:
            logger.log_error("invalid_grant", "Unknown, expired or reused authorization code")
            return _oauth_error("invalid_grant", "Invalid authorization code")

        access_token = tokens.issue(presented_id, grant['scope'], grant['subject'])
        return JSONResponse(
            content={
                "access_token": access_token,
                "token_type": TokenType.BEARER.value,
                "expires_in": int(token_lifetime.total_seconds()),
                "scope": grant['scope']
            },
            headers={"Cache-Control": "no-store"}
        )

    @app.get("/oauth2/tokeninfo")
    async def tokeninfo(authorization: Optional[str] = Header(None)):
        grant = bearer_grant(authorization)
        if grant is None:
            return _oauth_error("invalid_token", "Token is missing, unknown or expired", 401)
        return {
            "client_id": grant['client_id'],
            "scope": grant['scope'],
            "sub": grant['subject'],
            "exp": int(grant['expires_at'].timestamp())
        }

    @app.get("/oauth2/userinfo")
    async def userinfo(authorization: Optional[str] = Header(None)):
        grant = bearer_grant(authorization)
        if grant is None:
            return _oauth_error("invalid_token", "Token is missing, unknown or expired", 401)
        return DEMO_SUBJECT

    return app


if __name__ == "__main__":
    import uvicorn

    logger.log_startup("127.0.0.1", 3001, {"client_id": "test"})
    uvicorn.run(create_app(), host="127.0.0.1", port=3001)

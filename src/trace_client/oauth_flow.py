"""
OAuth2 authorization-code flow against the configured identity provider.

This module covers the protocol side of the trace client:
- building the authorization redirect URL
- exchanging the authorization code for an access token
- calling bearer-protected endpoints with full request/response capture
- orchestrating one callback from state check to rendered trace
"""

import asyncio
from typing import MutableMapping, Optional
from urllib.parse import parse_qsl, urlencode

import httpx
from pydantic import ValidationError

from ..shared.logging_utils import OAuthLogger
from ..shared.oauth_models import (
    AccessToken,
    AuthorizationRequest,
    HttpTrace,
    OAuthError,
    TokenRequest,
    TokenResponse,
)
from .config import ClientConfig
from .errors import (
    AuthorizationDenied,
    DownstreamCallFailed,
    ExchangeFailed,
    InvalidToken,
)
from .state_store import consume_state
from .trace import render_trace

logger = OAuthLogger("TRACE-CLIENT")

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "text/plain")
MAX_ERROR_BODY = 512


def build_authorization_url(config: ClientConfig, state: str) -> str:
    """
    Build the provider authorization URL for one login attempt.

    Args:
        config: Client configuration
        state: State value issued for this attempt

    Returns:
        str: Authorization URL with client_id, redirect_uri, response_type,
            scope and state query parameters
    """
    auth_request = AuthorizationRequest(
        client_id=config.client_id,
        redirect_uri=config.redirect_uri,
        scope=config.scope,
        state=state
    )
    separator = "&" if "?" in config.auth_url else "?"
    return f"{config.auth_url}{separator}{urlencode(auth_request.to_query())}"


def _describe_transport_error(error: httpx.HTTPError) -> str:
    detail = str(error)
    name = type(error).__name__
    return f"{name}: {detail}" if detail else name


def _parse_token_body(response: httpx.Response) -> dict:
    content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type in FORM_CONTENT_TYPES:
        return dict(parse_qsl(response.text))

    try:
        values = response.json()
    except ValueError as e:
        raise ExchangeFailed(
            f"Token endpoint returned an unreadable body ({content_type or 'no content type'})",
            status_code=response.status_code
        ) from e

    if not isinstance(values, dict):
        raise ExchangeFailed("Token endpoint returned JSON that is not an object",
                             status_code=response.status_code)
    return values


def _exchange_error(response: httpx.Response) -> ExchangeFailed:
    """Turn a non-success token response into ExchangeFailed."""
    try:
        oauth_error = OAuthError(**_parse_token_body(response))
        detail = str(oauth_error)
        error_code = oauth_error.error
    except (ExchangeFailed, ValidationError, TypeError):
        detail = response.text[:MAX_ERROR_BODY]
        error_code = None

    status = f"{response.status_code} {response.reason_phrase}".strip()
    return ExchangeFailed(
        f"Token endpoint answered {status}: {detail}",
        error_code=error_code,
        status_code=response.status_code
    )


async def exchange_code(http: httpx.AsyncClient, config: ClientConfig, code: str) -> AccessToken:
    """
    Exchange an authorization code for an access token.

    Args:
        http: HTTP client used for the outbound call
        config: Client configuration
        code: Authorization code received on the callback

    Returns:
        AccessToken: Token that is non-empty and not yet expired

    Raises:
        ExchangeFailed: empty code, transport error, non-2xx status or
            unreadable response
        InvalidToken: provider returned an empty or already-expired token
    """
    if not code:
        raise ExchangeFailed("Callback is missing the authorization code", error_code="missing_code")

    token_request = TokenRequest(
        code=code,
        redirect_uri=config.redirect_uri,
        client_id=config.client_id,
        client_secret=config.client_secret if config.token_auth_style == "body" else None
    )
    auth = None
    if config.token_auth_style == "basic":
        auth = httpx.BasicAuth(config.client_id, config.client_secret)

    logger.log_http_request(
        "POST", config.token_url, "PROVIDER",
        {
            "grant_type": token_request.grant_type,
            "code": code,
            "redirect_uri": config.redirect_uri,
            "client_id": config.client_id,
            "client_auth": config.token_auth_style
        }
    )

    try:
        response = await http.post(
            config.token_url,
            data=token_request.to_form(),
            headers={"Accept": "application/json"},
            auth=auth
        )
    except httpx.HTTPError as e:
        logger.log_error("network_error", _describe_transport_error(e), {"token_url": config.token_url})
        raise ExchangeFailed(
            f"Failed to reach token endpoint: {_describe_transport_error(e)}",
            error_code="network_error"
        ) from e

    if not response.is_success:
        error = _exchange_error(response)
        logger.log_oauth_message(
            "PROVIDER", "TRACE-CLIENT",
            "Token Exchange Failed",
            {"status_code": response.status_code, "error": error.description},
            success=False
        )
        raise error

    try:
        token = TokenResponse(**_parse_token_body(response)).to_access_token()
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidToken(f"Token response could not be interpreted: {e}") from e

    if not token.access_token:
        raise InvalidToken("Token response did not contain an access token")
    if not token.is_valid():
        raise InvalidToken(f"Access token already expired at {token.expiry.isoformat()}")

    logger.log_oauth_message(
        "PROVIDER", "TRACE-CLIENT",
        "Token Exchange Success",
        {
            "access_token": token.access_token,
            "token_type": token.token_type,
            "expiry": token.expiry.isoformat() if token.expiry else "none",
            "scope": token.scope
        }
    )
    return token


async def _send(http: httpx.AsyncClient, url: str, headers: dict) -> httpx.Response:
    try:
        return await http.get(url, headers=headers)
    except httpx.HTTPError as e:
        raise DownstreamCallFailed(_describe_transport_error(e), url=url) from e


async def authenticated_get(http: httpx.AsyncClient, label: str, url: str,
                            token: AccessToken) -> HttpTrace:
    """
    GET a bearer-protected endpoint and capture the full exchange.

    Transport failures do not propagate: the returned trace carries the
    request detail and the DownstreamCallFailed description instead of a
    response, so the caller can still render the other endpoint.
    """
    headers = [("Authorization", f"Bearer {token.access_token}")]
    trace = HttpTrace(label=label, method="GET", url=url, request_headers=headers, request_body="")

    logger.log_http_request("GET", url, "RESOURCE", {"label": label, "authorization": headers[0][1]})

    try:
        response = await _send(http, url, dict(headers))
    except DownstreamCallFailed as e:
        logger.log_error(e.error_code, e.description, {"label": label, "url": url})
        return trace.model_copy(update={"error": f"{e.kind}: {e.description}"})

    logger.log_oauth_message(
        "RESOURCE", "TRACE-CLIENT",
        f"{label} Response",
        {"status_code": response.status_code, "content_length": len(response.content)},
        success=response.is_success
    )
    return trace.model_copy(update={
        "status": f"{response.status_code} {response.reason_phrase}".strip(),
        "response_headers": list(response.headers.multi_items()),
        "response_body": response.text
    })


async def run_callback(config: ClientConfig,
                       session: MutableMapping,
                       state: Optional[str],
                       code: Optional[str],
                       error: Optional[str] = None,
                       error_description: Optional[str] = None,
                       transport: Optional[httpx.AsyncBaseTransport] = None) -> str:
    """
    Run the callback half of the flow and return the rendered trace.

    The state is checked before any network call. Both downstream calls are
    issued concurrently once the token is valid; the rendered order is
    always validation first, then user info.

    Raises:
        FlowError: any of StateMismatch, AuthorizationDenied, ExchangeFailed,
            InvalidToken
    """
    logger.log_oauth_message(
        "PROVIDER", "TRACE-CLIENT",
        "Authorization Callback Received",
        {"state": state, "code": code, "error": error}
    )

    consume_state(session, state, config.state_ttl)

    if error:
        raise AuthorizationDenied(error_description or "Provider did not grant authorization",
                                  error_code=error)

    async with httpx.AsyncClient(timeout=httpx.Timeout(config.http_timeout),
                                 transport=transport) as http:
        token = await exchange_code(http, config, code)
        validation, user_info = await asyncio.gather(
            authenticated_get(http, "Token validation", config.token_validation_url, token),
            authenticated_get(http, "User info", config.user_info_url, token)
        )

    return render_trace(state, code, token, validation, user_info)

"""
OAuth2 Trace Client Application

This FastAPI application drives an authorization-code flow against a
configured identity provider and answers the callback with the raw trace of
the token exchange and of two bearer-authenticated calls (token validation
and user info).

Endpoints:
- `/` - landing page with a login link
- `/login` - issues a state value and redirects to the provider
- `/callback` - exchanges the code and renders the diagnostic trace
- `/health` - health check
"""

from pathlib import Path
from typing import Optional

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware

from ..shared.logging_utils import OAuthLogger
from .config import ClientConfig
from .errors import FlowError, StateMismatch
from .oauth_flow import build_authorization_url, run_callback
from .state_store import issue_state
from .trace import render_error

SERVICE_NAME = "oauth-trace-client"

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
logger = OAuthLogger("TRACE-CLIENT")


def get_config(request: Request) -> ClientConfig:
    return request.app.state.config


def get_transport(request: Request) -> Optional[httpx.AsyncBaseTransport]:
    return request.app.state.transport


async def index(request: Request, config: ClientConfig = Depends(get_config)):
    """Landing page with a login link."""
    return templates.TemplateResponse(request, "index.html", {
        "title": "OAuth2 authorization-code test client",
        "client_id": config.client_id,
        "scope": config.scope,
        "auth_url": config.auth_url
    })


async def login(request: Request, config: ClientConfig = Depends(get_config)):
    """
    Start a login attempt.

    Generates a state value, records it in the signed session, and redirects
    the browser to the provider's authorization endpoint with a 307.
    """
    state = issue_state(request.session, config.state_ttl)
    authorization_url = build_authorization_url(config, state)

    logger.log_oauth_message(
        "TRACE-CLIENT", "USER-BROWSER",
        "Authorization Redirect",
        {
            "client_id": config.client_id,
            "redirect_uri": config.redirect_uri,
            "scope": config.scope,
            "state": state,
            "authorization_url": authorization_url
        }
    )

    return RedirectResponse(authorization_url, status_code=307)


async def callback(request: Request,
                   state: Optional[str] = None,
                   code: Optional[str] = None,
                   error: Optional[str] = None,
                   error_description: Optional[str] = None,
                   config: ClientConfig = Depends(get_config),
                   transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport)):
    """
    Handle the provider callback.

    Every flow error is rendered into the plain-text body; the request still
    completes with status 200.
    """
    try:
        body = await run_callback(
            config, request.session, state, code,
            error=error,
            error_description=error_description,
            transport=transport
        )
    except StateMismatch as e:
        logger.log_oauth_message(
            "TRACE-CLIENT", "TRACE-CLIENT",
            "State Validation Failed",
            {"received_state": state, "security_risk": "Possible CSRF attack"},
            success=False
        )
        body = render_error(e)
    except FlowError as e:
        logger.log_error(e.error_code, e.description, {"kind": e.kind})
        body = render_error(e, state=state, code=code)

    return PlainTextResponse(body)


async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": SERVICE_NAME}


def create_app(config: ClientConfig,
               transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    """
    Create the trace client application.

    Args:
        config: Immutable client configuration
        transport: Optional httpx transport for outbound calls (tests inject
            a stub provider here)

    Returns:
        FastAPI: Configured application
    """
    app = FastAPI(
        title="OAuth2 Trace Client",
        description="Authorization-code flow test client that renders raw request/response traces",
        version="1.0.0"
    )
    app.state.config = config
    app.state.transport = transport

    app.add_middleware(
        SessionMiddleware,
        secret_key=config.session_secret,
        max_age=config.state_ttl,
        same_site="lax"
    )

    app.add_api_route("/", index, methods=["GET"], response_class=HTMLResponse)
    app.add_api_route("/login", login, methods=["GET"])
    app.add_api_route("/callback", callback, methods=["GET"], response_class=PlainTextResponse)
    app.add_api_route("/health", health_check, methods=["GET"])
    return app


def main():
    """Run the trace client with configuration from the environment."""
    import uvicorn

    config = ClientConfig.from_env()
    logger.log_startup(config.host, config.port, config.summary())
    uvicorn.run(create_app(config), host=config.host, port=config.port, log_level="info")


if __name__ == "__main__":
    main()

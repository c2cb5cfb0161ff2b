"""
Pytest configuration and shared fixtures for the OAuth2 trace client tests.

The trace client's outbound calls go through an injected httpx transport,
so every test runs against an in-process stub of the identity provider.
"""

import pytest
from typing import Callable, Dict, List, Tuple, Union
from urllib.parse import parse_qs, urlparse

import httpx
from fastapi.testclient import TestClient

from src.trace_client.config import ClientConfig
from src.trace_client.main import create_app

PROVIDER = "https://idp.test"
ACCESS_TOKEN = "stub-access-token-5f2c9a7e41b3"

Action = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class StubProvider:
    """
    Programmable stand-in for the identity provider and resource endpoints.

    Routes are keyed by (method, URL without query); every request that
    reaches the stub is recorded.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.routes: Dict[Tuple[str, str], Action] = {}

    def on(self, method: str, url: str, action: Action):
        self.routes[(method, url)] = action

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        action = self.routes.get((request.method, url))
        if action is None:
            return httpx.Response(404, text="no stub route")
        if callable(action):
            return action(request)
        # fresh copy per request, a Response instance is bound to one request
        return httpx.Response(action.status_code, headers=action.headers, content=action.content)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls_to(self, url: str) -> List[httpx.Request]:
        return [r for r in self.requests if str(r.url).split("?")[0] == url]


@pytest.fixture
def client_config() -> ClientConfig:
    """Configuration pointing every endpoint at the stub provider."""
    return ClientConfig(
        client_id="trace-test",
        client_secret="s3cret-value",
        redirect_uri="http://testserver/callback",
        scopes=["user_profile", "email"],
        auth_url=f"{PROVIDER}/oauth2-as/oauth2-authz",
        token_url=f"{PROVIDER}/oauth2/token",
        token_validation_url=f"{PROVIDER}/oauth2/tokeninfo",
        user_info_url=f"{PROVIDER}/oauth2/userinfo",
        http_timeout=2.0,
        session_secret="test-session-secret"
    )


@pytest.fixture
def provider(client_config) -> StubProvider:
    """Stub provider answering every endpoint successfully."""
    stub = StubProvider()
    stub.on("POST", client_config.token_url, httpx.Response(200, json={
        "access_token": ACCESS_TOKEN,
        "token_type": "Bearer",
        "expires_in": 3600,
        "scope": "user_profile email"
    }))
    stub.on("GET", client_config.token_validation_url, httpx.Response(200, json={
        "client_id": "trace-test",
        "scope": "user_profile email",
        "exp": 1893456000
    }))
    stub.on("GET", client_config.user_info_url, httpx.Response(
        200,
        json={"sub": "alice", "email": "alice@example.com"},
        headers={"X-Request-Id": "req-42"}
    ))
    return stub


@pytest.fixture
def client(client_config, provider) -> TestClient:
    """Test client for the trace client application."""
    return TestClient(create_app(client_config, transport=provider.transport))


def start_login(client: TestClient) -> str:
    """Hit /login without following the redirect and return the issued state."""
    response = client.get("/login", follow_redirects=False)
    assert response.status_code == 307
    query = parse_qs(urlparse(response.headers["location"]).query)
    return query["state"][0]


@pytest.fixture(autouse=True)
def disable_logging():
    """Disable logging during tests to reduce noise."""
    import logging
    logging.disable(logging.CRITICAL)
    yield
    logging.disable(logging.NOTSET)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "security: marks tests as security-focused tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        if "integration" in item.nodeid:
            item.add_marker(pytest.mark.integration)
        elif "security" in item.nodeid or "state" in item.nodeid:
            item.add_marker(pytest.mark.security)
        else:
            item.add_marker(pytest.mark.unit)

"""
Unit tests for the plain-text trace renderer.
"""

from src.shared.oauth_models import AccessToken, HttpTrace
from src.trace_client.errors import DownstreamCallFailed, ExchangeFailed, StateMismatch
from src.trace_client.trace import render_error, render_http_trace, render_trace

TOKEN = AccessToken(access_token="tok-123456")
HEADERS = [("Authorization", "Bearer tok-123456")]


def ok_trace(label):
    return HttpTrace(
        label=label, method="GET", url=f"https://idp.test/{label.lower().replace(' ', '')}",
        request_headers=HEADERS, status="200 OK",
        response_headers=[("content-type", "application/json"), ("set-cookie", "a=1"), ("set-cookie", "b=2")],
        response_body='{"ok": true}'
    )


class TestRenderHttpTrace:
    """Rendering of one request/response record."""

    def test_successful_exchange_layout(self):
        text = render_http_trace(ok_trace("User info"))

        assert text == (
            "User info:\n"
            "  Request:\n"
            "    URL: https://idp.test/userinfo\n"
            "    Method: GET\n"
            "    Headers: Authorization=Bearer [access token]\n"
            "    Body: \n"
            "  Response:\n"
            "    Status: 200 OK\n"
            "    Headers:\n"
            "    content-type=application/json\n"
            "    set-cookie=a=1\n"
            "    set-cookie=b=2\n"
            '    Body: {"ok": true}\n'
        )

    def test_failed_call_layout(self):
        trace = HttpTrace(label="Token validation", method="GET", url="https://idp.test/tokeninfo",
                          request_headers=HEADERS, error="DownstreamCallFailed: ReadTimeout")

        text = render_http_trace(trace)

        assert text.endswith("    Body: \n  Request failed. DownstreamCallFailed: ReadTimeout\n")
        assert "Response:" not in text


class TestRenderTrace:
    """Rendering of the whole callback."""

    def test_token_appears_once(self):
        text = render_trace("st4te", "c0de", TOKEN, ok_trace("Token validation"), ok_trace("User info"))

        assert text.count("tok-123456") == 1
        lines = text.splitlines()
        assert lines[0] == "Generated state:            st4te"
        assert lines[1] == "Authorization code:         c0de, state=st4te"
        assert lines[2] == "Exchanged for Access token: tok-123456, state=st4te"
        assert lines[3] == ""
        assert lines[4] == "Token validation:"

    def test_validation_precedes_user_info(self):
        text = render_trace("s", "c", TOKEN, ok_trace("Token validation"), ok_trace("User info"))

        assert text.index("Token validation:") < text.index("User info:")


class TestRenderError:
    """Rendering of flow errors."""

    def test_error_kind_and_message(self):
        assert render_error(StateMismatch("no match")) == "StateMismatch: no match\n"

    def test_error_with_flow_context(self):
        text = render_error(ExchangeFailed("provider said no"), state="s1", code="c1")

        assert text.startswith("Generated state:            s1\n")
        assert "Authorization code:         c1, state=s1\n" in text
        assert text.endswith("\nExchangeFailed: provider said no\n")
        assert "Exchanged for Access token" not in text

    def test_downstream_error_kind(self):
        assert render_error(DownstreamCallFailed("refused", url="http://x")).startswith("DownstreamCallFailed:")

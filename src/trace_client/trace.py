"""
Plain-text rendering of a traced authorization-code flow.

Pure string assembly: nothing here performs I/O or raises.
"""

from typing import Iterable, List, Optional, Tuple

from ..shared.oauth_models import AccessToken, HttpTrace
from .errors import FlowError

LABEL_WIDTH = 28
MASKED_CREDENTIAL = "Bearer [access token]"


def _line(label: str, value: str) -> str:
    return f"{label:<{LABEL_WIDTH}}{value}\n"


def _masked(headers: Iterable[Tuple[str, str]]) -> List[Tuple[str, str]]:
    # the token itself is printed once, on the exchange line
    return [
        (name, MASKED_CREDENTIAL if name.lower() == "authorization" else value)
        for name, value in headers
    ]


def render_http_trace(trace: HttpTrace) -> str:
    """Render one request/response record."""
    result = f"{trace.label}:\n"
    result += "  Request:\n"
    result += f"    URL: {trace.url}\n"
    result += f"    Method: {trace.method}\n"
    for name, value in _masked(trace.request_headers):
        result += f"    Headers: {name}={value}\n"
    result += f"    Body: {trace.request_body}\n"

    if trace.failed:
        result += f"  Request failed. {trace.error}\n"
        return result

    result += "  Response:\n"
    result += f"    Status: {trace.status}\n"
    result += "    Headers:\n"
    for name, value in trace.response_headers:
        result += f"    {name}={value}\n"
    result += f"    Body: {trace.response_body or ''}\n"
    return result


def render_flow_header(state: Optional[str], code: Optional[str] = None,
                       token: Optional[AccessToken] = None) -> str:
    result = _line("Generated state:", state or "")
    if code is not None:
        result += _line("Authorization code:", f"{code}, state={state}")
    if token is not None:
        result += _line("Exchanged for Access token:", f"{token.access_token}, state={state}")
    return result


def render_trace(state: str, code: str, token: AccessToken,
                 validation: HttpTrace, user_info: HttpTrace) -> str:
    """
    Render the full diagnostic text for a completed callback.

    Order is fixed: state, code, token, validation trace, user-info trace.
    """
    result = render_flow_header(state, code, token)
    result += "\n"
    result += render_http_trace(validation)
    result += "\n"
    result += render_http_trace(user_info)
    return result


def render_error(error: FlowError, state: Optional[str] = None,
                 code: Optional[str] = None) -> str:
    """Render a flow error, preceded by whatever the flow had established."""
    result = ""
    if state is not None or code is not None:
        result += render_flow_header(state, code)
        result += "\n"
    result += f"{error.kind}: {error.description}\n"
    return result

"""
Error taxonomy for the traced authorization-code flow.

Every error carries a short machine-readable code and a description. All of
them are recovered at the callback handler and rendered into the response
body; none of them stops the server.
"""


class FlowError(Exception):
    """Base class for errors raised while handling one callback."""

    error_code = "flow_error"

    def __init__(self, description: str, error_code: str = None):
        self.description = description
        if error_code:
            self.error_code = error_code
        super().__init__(description)

    @property
    def kind(self) -> str:
        return type(self).__name__


class StateMismatch(FlowError):
    """Callback state does not match an issued, unconsumed login attempt."""

    error_code = "invalid_state"


class AuthorizationDenied(FlowError):
    """Provider redirected back with an ``error`` instead of a code."""

    error_code = "access_denied"


class ExchangeFailed(FlowError):
    """Code-for-token exchange failed in transport or at the provider."""

    error_code = "token_exchange_failed"

    def __init__(self, description: str, error_code: str = None, status_code: int = None):
        self.status_code = status_code
        super().__init__(description, error_code)


class InvalidToken(FlowError):
    """Exchange succeeded but the token is empty or already expired."""

    error_code = "invalid_token"


class DownstreamCallFailed(FlowError):
    """Transport error calling the validation or user-info endpoint."""

    error_code = "downstream_call_failed"

    def __init__(self, description: str, url: str = None):
        self.url = url
        super().__init__(description)


class ConfigError(ValueError):
    """Configuration rejected at startup."""

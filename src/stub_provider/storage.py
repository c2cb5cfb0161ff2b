"""
In-memory storage for the stub identity provider.

Authorization codes are one-time and expire after a few minutes; access
tokens expire after their advertised lifetime. Nothing survives a restart.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from ..shared.crypto_utils import StateGenerator, constant_time_compare
from ..shared.logging_utils import OAuthLogger

logger = OAuthLogger("PROVIDER")

CODE_LIFETIME = timedelta(minutes=10)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class AuthCodeStore:
    """One-time authorization codes bound to a client and redirect URI."""

    def __init__(self):
        self._codes: Dict[str, Dict] = {}

    def store_code(self, client_id: str, redirect_uri: str, scope: str, subject: str) -> str:
        self.cleanup_expired_codes()
        code = StateGenerator.generate_secure_token(32)
        self._codes[code] = {
            'client_id': client_id,
            'redirect_uri': redirect_uri,
            'scope': scope,
            'subject': subject,
            'expires_at': _now() + CODE_LIFETIME
        }
        logger.log_oauth_message(
            "PROVIDER", "PROVIDER",
            "Authorization Code Issued",
            {"code": code, "client_id": client_id, "scope": scope}
        )
        return code

    def consume_code(self, code: str, client_id: str, redirect_uri: str) -> Optional[Dict]:
        """
        Remove and return the code's grant, or None when the code is unknown,
        expired, or was issued to a different client or redirect URI.
        """
        grant = self._codes.pop(code, None)
        if grant is None or grant['expires_at'] < _now():
            return None
        if grant['client_id'] != client_id or grant['redirect_uri'] != redirect_uri:
            return None
        return grant

    def cleanup_expired_codes(self) -> int:
        now = _now()
        expired = [code for code, grant in self._codes.items() if grant['expires_at'] < now]
        for code in expired:
            del self._codes[code]
        return len(expired)


class AccessTokenStore:
    """Bearer tokens issued by the token endpoint."""

    def __init__(self, lifetime: timedelta = timedelta(hours=1)):
        self.lifetime = lifetime
        self._tokens: Dict[str, Dict] = {}

    def issue(self, client_id: str, scope: str, subject: str) -> str:
        self.cleanup_expired_tokens()
        token = StateGenerator.generate_secure_token(48)
        self._tokens[token] = {
            'client_id': client_id,
            'scope': scope,
            'subject': subject,
            'expires_at': _now() + self.lifetime
        }
        return token

    def lookup(self, token: str) -> Optional[Dict]:
        for candidate, grant in self._tokens.items():
            if constant_time_compare(candidate, token):
                if grant['expires_at'] < _now():
                    return None
                return grant
        return None

    def cleanup_expired_tokens(self) -> int:
        now = _now()
        expired = [token for token, grant in self._tokens.items() if grant['expires_at'] < now]
        for token in expired:
            del self._tokens[token]
        return len(expired)

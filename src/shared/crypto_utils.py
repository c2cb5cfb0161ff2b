"""
Random value utilities for the OAuth2 authorization-code flow.

This module generates the anti-forgery state parameter and the opaque
credentials issued by the stub provider, and provides the constant-time
comparison used when a state value comes back on the callback.
"""

import secrets
import base64


class StateGenerator:
    """
    Generator for unpredictable, URL-safe random values.

    State values are drawn from the operating system CSPRNG so that two
    concurrent login attempts never share a value in practice and an
    attacker cannot guess the next one.
    """

    STATE_BYTES = 16

    @staticmethod
    def generate_secure_token(length: int = 32) -> str:
        """
        Generate a cryptographically secure random token.

        Args:
            length: Number of random bytes to generate (default: 32)

        Returns:
            str: Base64url encoded token without padding

        Example:
            token = StateGenerator.generate_secure_token()
            # Returns: "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
        """
        return base64.urlsafe_b64encode(
            secrets.token_bytes(length)
        ).decode('utf-8').rstrip('=')

    @staticmethod
    def generate_state() -> str:
        """
        Generate a state parameter for CSRF protection.

        Returns:
            str: 22 character base64url string carrying 128 random bits
        """
        return StateGenerator.generate_secure_token(StateGenerator.STATE_BYTES)


def constant_time_compare(a: str, b: str) -> bool:
    """
    Perform constant-time string comparison.

    Args:
        a: First string
        b: Second string

    Returns:
        bool: True if strings are equal, False otherwise
    """
    if not isinstance(a, str) or not isinstance(b, str):
        return False
    return secrets.compare_digest(a.encode('utf-8'), b.encode('utf-8'))

"""
Login attempt registry kept in the signed browser session.

Each ``/login`` issues a fresh state value and records it with its issue
time. The callback must present one of the recorded values before it
expires; the value is removed on first use so a replayed callback fails.
The session cookie is signed by Starlette's SessionMiddleware, so the
browser can carry the pending attempts but cannot forge them.

All pending attempts of one browser share that single cookie, and each
response overwrites it. Sequential logins from several tabs all stay
valid, but two ``/login`` requests in flight at the same moment race:
the cookie written last wins and the other tab's callback fails with
StateMismatch.
"""

import time
from typing import MutableMapping, Optional

from ..shared.crypto_utils import StateGenerator, constant_time_compare
from .errors import StateMismatch

SESSION_KEY = "oauth_pending_states"
MAX_PENDING_ATTEMPTS = 16


def _pending(session: MutableMapping) -> dict:
    return dict(session.get(SESSION_KEY) or {})


def _prune(pending: dict, ttl: int, now: float) -> dict:
    fresh = {s: issued for s, issued in pending.items() if now - issued <= ttl}
    if len(fresh) > MAX_PENDING_ATTEMPTS:
        newest = sorted(fresh.items(), key=lambda item: item[1])[-MAX_PENDING_ATTEMPTS:]
        fresh = dict(newest)
    return fresh


def issue_state(session: MutableMapping, ttl: int, now: Optional[float] = None) -> str:
    """Generate a state value and record it as a pending login attempt."""
    now = time.time() if now is None else now
    state = StateGenerator.generate_state()

    pending = _pending(session)
    pending[state] = now
    session[SESSION_KEY] = _prune(pending, ttl, now)
    return state


def consume_state(session: MutableMapping, state: Optional[str], ttl: int,
                  now: Optional[float] = None) -> None:
    """
    Check the callback state against the pending attempts and consume it.

    Raises:
        StateMismatch: state is missing, was never issued to this browser,
            was already used, or has expired
    """
    now = time.time() if now is None else now
    if not state:
        raise StateMismatch("Callback is missing the state parameter")

    pending = _pending(session)
    match = None
    for candidate in pending:
        if constant_time_compare(candidate, state):
            match = candidate

    if match is None:
        session[SESSION_KEY] = _prune(pending, ttl, now)
        raise StateMismatch(
            "State parameter does not match any login started from this browser. "
            "Possible CSRF attack."
        )

    issued_at = pending.pop(match)
    session[SESSION_KEY] = _prune(pending, ttl, now)

    if now - issued_at > ttl:
        raise StateMismatch(f"State parameter expired after {ttl} seconds")

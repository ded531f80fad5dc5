"""
api/limiter.py -- Shared slowapi rate limiter for brute-force mitigation.

One Limiter instance backs every decorated route so they share a counter
store; api/main.py mounts it as middleware and api/routes/v1/auth.py applies
the login limit. Counters are in-process memory: each uvicorn worker keeps
its own, which is acceptable for a single-node deployment.

The login limit is read from Settings at request time (slowapi accepts a
zero-argument callable), so LOGIN_RATE_LIMIT can be changed per environment
and tests can raise it without patching the decorator.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")


def login_rate_limit() -> str:
    """Return the configured limit string for POST /auth/login, e.g. "10/minute"."""
    return get_settings().login_rate_limit

"""Environment driven settings for urlsweep.

All knobs use the ``URLSWEEP_`` prefix. Values are read when the helper is
called (not at import time) so tests can monkeypatch the environment.
"""
from __future__ import annotations

import os

DEFAULT_CONCURRENCY = 30
DEFAULT_TIMEOUT_SECONDS = 5
MAX_CONCURRENCY = 100
MAX_TIMEOUT_SECONDS = 120
MAX_REDIRECTS = 10
MAX_BODY_BYTES = 2 << 20  # 2 MiB
DEFAULT_USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36'
)
DEFAULT_RATE_LIMIT = '30 per minute'
VERSION = '0.1.0'


def _env_int(name: str, default: int) -> int:
    """Return a positive int from the environment, ``default`` when unset or invalid."""
    try:
        v = int(os.environ.get(name, '') or '0')
        if v > 0:
            return v
    except ValueError:
        pass
    return default


def _env_float(name: str, default: float) -> float:
    try:
        v = float(os.environ.get(name, '') or '0')
        if v > 0:
            return v
    except ValueError:
        pass
    return default


def default_concurrency() -> int:
    return _env_int('URLSWEEP_DEFAULT_CONCURRENCY', DEFAULT_CONCURRENCY)


def default_timeout() -> float:
    return _env_float('URLSWEEP_DEFAULT_TIMEOUT', DEFAULT_TIMEOUT_SECONDS)


def max_concurrency() -> int:
    return _env_int('URLSWEEP_MAX_CONCURRENCY', MAX_CONCURRENCY)


def max_timeout() -> float:
    return _env_float('URLSWEEP_MAX_TIMEOUT', MAX_TIMEOUT_SECONDS)


def max_redirects() -> int:
    return _env_int('URLSWEEP_MAX_REDIRECTS', MAX_REDIRECTS)


def max_body_bytes() -> int:
    return _env_int('URLSWEEP_MAX_BODY_BYTES', MAX_BODY_BYTES)


def user_agent() -> str:
    return os.environ.get('URLSWEEP_USER_AGENT') or DEFAULT_USER_AGENT


def rate_limit() -> str:
    return os.environ.get('URLSWEEP_RATE_LIMIT') or DEFAULT_RATE_LIMIT


def limiter_storage_uri() -> str:
    # Redis when provided, otherwise in-memory limiter storage
    return os.environ.get('URLSWEEP_REDIS_URL') or 'memory://'

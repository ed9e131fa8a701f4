"""Single-URL fetcher.

One GET per URL, no retries. ``timeout`` is a wall-clock deadline for the
whole fetch: name lookup, connect, request, every redirect hop and the body
read all draw from the same budget. Redirects are followed by hand (not by
requests) so each hop only gets the time that is left and the hop limit is
ours.

The hops run on a helper thread while the caller waits on the deadline. When
it passes the caller raises FetchTimeoutError and the fetch's sockets are
shut down, so a server trickling bytes cannot hold a row past ``timeout`` and
the abandoned helper unwinds on its next recv.

Failures are raised as ``FetchError`` subclasses; the pipeline turns them
into row errors.
"""
from __future__ import annotations

import concurrent.futures
import logging
import socket
import threading
import time
from http.cookiejar import DefaultCookiePolicy
from typing import List, Optional, Tuple, Union
from urllib.parse import urljoin, urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.connection import HTTPConnection, HTTPSConnection
from urllib3.connectionpool import HTTPConnectionPool, HTTPSConnectionPool

from . import config
from .exceptions import FetchTimeoutError, InvalidURLError, NetworkError
from .models import FetchResult

log = logging.getLogger('urlsweep.fetch')

CHUNK_SIZE = 8192

_INVALID_URL_EXC = (
    requests.exceptions.InvalidURL,
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
)

_local = threading.local()


class _Watchdog:
    """Wall-clock guard for one fetch.

    Sockets opened or reused on behalf of the fetch are registered here; once
    the deadline passes ``expire`` shuts them down, which wakes any recv still
    blocked on headers or body.
    """

    def __init__(self) -> None:
        self.expired = threading.Event()
        self.status_code: Optional[int] = None
        self._socks: List[socket.socket] = []
        self._lock = threading.Lock()

    def watch(self, sock: socket.socket) -> None:
        with self._lock:
            self._socks.append(sock)
            expired = self.expired.is_set()
        if expired:
            _shutdown(sock)

    def expire(self) -> None:
        with self._lock:
            self.expired.set()
            socks = list(self._socks)
        for sock in socks:
            _shutdown(sock)


def _shutdown(sock: socket.socket) -> None:
    try:
        # base shutdown: SSLSocket.shutdown drops its SSL object under a live reader
        socket.socket.shutdown(sock, socket.SHUT_RDWR)
    except OSError:
        pass  # already closed


def _watch(sock: Optional[socket.socket]) -> None:
    watchdog = getattr(_local, 'watchdog', None)
    if watchdog is not None and sock is not None:
        watchdog.watch(sock)


class _WatchedConnectionMixin:
    def connect(self):
        super().connect()
        _watch(self.sock)

    def request(self, *args, **kwargs):
        # pooled keep-alive connections skip connect()
        _watch(self.sock)
        return super().request(*args, **kwargs)


class _WatchedHTTPConnection(_WatchedConnectionMixin, HTTPConnection):
    pass


class _WatchedHTTPSConnection(_WatchedConnectionMixin, HTTPSConnection):
    pass


class _WatchedHTTPConnectionPool(HTTPConnectionPool):
    ConnectionCls = _WatchedHTTPConnection


class _WatchedHTTPSConnectionPool(HTTPSConnectionPool):
    ConnectionCls = _WatchedHTTPSConnection


class WatchedAdapter(HTTPAdapter):
    """HTTPAdapter whose connections report their sockets to the running fetch."""

    def init_poolmanager(self, *args, **kwargs):
        super().init_poolmanager(*args, **kwargs)
        self.poolmanager.pool_classes_by_scheme = {
            'http': _WatchedHTTPConnectionPool,
            'https': _WatchedHTTPSConnectionPool,
        }


def build_session(pool_size: int = 10) -> requests.Session:
    """Session shared by all workers of one scan.

    Cookies are refused so rows stay independent of each other.
    """
    session = requests.Session()
    adapter = WatchedAdapter(pool_connections=pool_size, pool_maxsize=pool_size, max_retries=0)
    session.mount('http://', adapter)
    session.mount('https://', adapter)
    session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
    session.headers.update({
        'User-Agent': config.user_agent(),
        'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
        'Accept-Language': 'en-US,en;q=0.9',
    })
    return session


def validate_url(url: str) -> None:
    """Raise InvalidURLError unless ``url`` is an absolute http(s) URL with a host."""
    try:
        parsed = urlparse(url)
        parsed.port  # raises on a non-numeric or out-of-range port
    except ValueError as e:
        raise InvalidURLError(url, str(e)) from e
    if not parsed.scheme:
        raise InvalidURLError(url, 'missing scheme')
    if parsed.scheme.lower() not in ('http', 'https'):
        raise InvalidURLError(url, f'unsupported scheme {parsed.scheme!r}')
    if not parsed.hostname:
        raise InvalidURLError(url, 'missing host')


def classify_error(err: Union[Exception, str]) -> str:
    """Classify a network failure.

    Returns:
        One of: timeout, dns, ssl, conn, redirect, other
    """
    msg = str(err).lower()
    if isinstance(err, requests.exceptions.Timeout) or 'timed out' in msg or 'timeout' in msg:
        return 'timeout'
    if isinstance(err, requests.exceptions.TooManyRedirects) or 'redirect' in msg:
        return 'redirect'
    if (isinstance(err, socket.gaierror) or 'nxdomain' in msg or 'name or service not known' in msg
            or 'nameresolutionerror' in msg or 'getaddrinfo failed' in msg
            or 'nodename nor servname' in msg or 'failed to resolve' in msg):
        return 'dns'
    if isinstance(err, requests.exceptions.SSLError) or 'ssl' in msg or 'certificate' in msg:
        return 'ssl'
    if 'connection refused' in msg or 'connection reset' in msg or 'network is unreachable' in msg:
        return 'conn'
    return 'other'


def _read_body(resp: requests.Response, url: str, deadline: float, timeout: float, cap: int) -> Tuple[bytes, bool]:
    buff = []
    remaining_bytes = cap
    truncated = False
    try:
        for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
            if time.monotonic() >= deadline:
                raise FetchTimeoutError(url, timeout, status_code=resp.status_code)
            if not chunk:
                continue
            if len(chunk) > remaining_bytes:
                buff.append(chunk[:remaining_bytes])
                truncated = True
                break
            buff.append(chunk)
            remaining_bytes -= len(chunk)
    except requests.exceptions.RequestException as e:
        # requests reports a stalled body read as ConnectionError(ReadTimeoutError)
        if time.monotonic() >= deadline or classify_error(e) == 'timeout':
            raise FetchTimeoutError(url, timeout, status_code=resp.status_code) from e
        raise NetworkError(url, f'body read failed: {e}', classify_error(e), status_code=resp.status_code) from e
    return b''.join(buff), truncated


def _follow(
    url: str,
    timeout: float,
    follow_redirect: bool,
    sess: requests.Session,
    hop_limit: int,
    cap: int,
    deadline: float,
    watchdog: _Watchdog,
) -> FetchResult:
    current = url
    hops = 0
    while True:
        left = deadline - time.monotonic()
        if left <= 0 or watchdog.expired.is_set():
            raise FetchTimeoutError(url, timeout)
        try:
            resp = sess.get(current, timeout=(left, left), allow_redirects=False, stream=True)
        except requests.exceptions.Timeout as e:
            raise FetchTimeoutError(url, timeout) from e
        except _INVALID_URL_EXC as e:
            raise InvalidURLError(url, str(e)) from e
        except requests.exceptions.RequestException as e:
            category = classify_error(e)
            if category == 'timeout' or watchdog.expired.is_set() or time.monotonic() >= deadline:
                raise FetchTimeoutError(url, timeout) from e
            raise NetworkError(url, str(e), category) from e
        with resp:
            target = sess.get_redirect_target(resp) if follow_redirect else None
            if target:
                if hops >= hop_limit:
                    raise NetworkError(url, f'too many redirects (limit {hop_limit})', 'redirect',
                                       status_code=resp.status_code)
                nxt = urljoin(resp.url, target)
                try:
                    validate_url(nxt)
                except InvalidURLError as e:
                    raise NetworkError(url, f'bad redirect target {nxt!r}: {e.message}', 'redirect',
                                       status_code=resp.status_code) from e
                log.debug('redirect url=%s hop=%d status=%d -> %s', url, hops + 1, resp.status_code, nxt)
                current = nxt
                hops += 1
                continue
            watchdog.status_code = resp.status_code
            body, truncated = _read_body(resp, url, deadline, timeout, cap)
            if watchdog.expired.is_set():
                raise FetchTimeoutError(url, timeout, status_code=resp.status_code)
            if truncated:
                log.debug('body truncated url=%s cap=%d', url, cap)
            return FetchResult(
                status_code=resp.status_code,
                headers=resp.headers,
                body=body,
                final_url=resp.url,
                truncated=truncated,
                redirects=hops,
            )


def fetch(
    url: str,
    timeout: float,
    follow_redirect: bool,
    session: Optional[requests.Session] = None,
    max_redirects: Optional[int] = None,
    max_body_bytes: Optional[int] = None,
) -> FetchResult:
    """Fetch ``url`` and return the terminal response.

    With ``follow_redirect`` false a 3xx response is returned as-is. Raises
    InvalidURLError (no connection attempted), NetworkError or
    FetchTimeoutError. Returns or raises within ``timeout`` seconds.
    """
    validate_url(url)
    hop_limit = config.max_redirects() if max_redirects is None else max_redirects
    cap = config.max_body_bytes() if max_body_bytes is None else max_body_bytes
    own_session = session is None
    sess = session or build_session(pool_size=1)
    deadline = time.monotonic() + timeout
    watchdog = _Watchdog()
    future: concurrent.futures.Future = concurrent.futures.Future()

    def run():
        _local.watchdog = watchdog
        try:
            future.set_result(_follow(url, timeout, follow_redirect, sess, hop_limit, cap, deadline, watchdog))
        except Exception as e:
            future.set_exception(e)
        finally:
            _local.watchdog = None
            if own_session:
                sess.close()

    threading.Thread(target=run, name='urlsweep-fetch', daemon=True).start()
    try:
        return future.result(timeout=max(0.0, deadline - time.monotonic()))
    except concurrent.futures.TimeoutError:
        watchdog.expire()
        log.debug('deadline hit url=%s timeout=%s', url, timeout)
        raise FetchTimeoutError(url, timeout, status_code=watchdog.status_code) from None

"""Per-URL pipeline: fetch one URL, analyze the page, produce its row.

Every failure is recovered here and written into ``ScanRow.error``; nothing a
single URL does can escape into the scheduler.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

import requests

from . import metrics
from .analyzer import analyze
from .exceptions import FetchError
from .fetcher import fetch
from .logging_utils import log_suppressed
from .models import ScanRow

log = logging.getLogger('urlsweep.pipeline')

Pipeline = Callable[[str], ScanRow]


def scan_url(
    url: str,
    timeout: float,
    follow_redirect: bool,
    session: Optional[requests.Session] = None,
) -> ScanRow:
    """Fetch and analyze ``url``.

    The row fails when the fetch fails, when the terminal status is >= 400
    (``"HTTP 404"``) or when analysis blows up. ``status_code`` is kept on the
    row whenever a status line was received, failed or not.
    """
    row = ScanRow(url=url)
    with metrics.track_active_fetch() as tracker:
        try:
            result = fetch(url, timeout, follow_redirect, session=session)
        except FetchError as e:
            row.status_code = e.status_code
            row.error = e.describe()
            metrics.record_fetch_error(e.kind)
            log_suppressed(log, f'url={url} err={row.error}', f'fetch:{e.kind}')
            return row
        row.status_code = result.status_code
        row.final_url = result.final_url
        try:
            analysis = analyze(result.body, result.headers)
        except Exception as e:
            log.exception('analysis failed url=%s status=%s', url, result.status_code)
            row.error = f'analysis failed: {e}'
            metrics.record_fetch_error('analysis')
        else:
            row.title = analysis.title
            row.components = analysis.components
        if result.status_code >= 400:
            http_error = f'HTTP {result.status_code}'
            row.error = f'{http_error}; {row.error}' if row.error else http_error
            metrics.record_fetch_error('http')
            log_suppressed(log, f'url={url} err={row.error}', 'fetch:http')
        log.debug('scanned url=%s status=%d redirects=%d components=%d ms=%d',
                  url, result.status_code, result.redirects, len(row.components), int(tracker.duration * 1000))
    return row


def make_pipeline(
    timeout: float,
    follow_redirect: bool,
    session: Optional[requests.Session] = None,
) -> Pipeline:
    def run(url: str) -> ScanRow:
        return scan_url(url, timeout, follow_redirect, session=session)
    return run

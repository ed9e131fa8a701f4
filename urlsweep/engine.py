"""Scan engine: one ScanRequest in, one ScanResponse out.

Order of work:
 1. validate the request (precondition failures raise)
 2. load the URL list (precondition failures raise)
 3. scan under the concurrency cap and aggregate rows
 4. hand the response to the report writer and attach its path
 5. optionally delete the source file

Only steps 1, 2 and 5 raise. Per-URL failures are data in ``rows``; a report
that cannot be written leaves ``report_path`` empty.
"""
from __future__ import annotations

import logging
import os
import threading
import time
from typing import Callable, Optional

import requests

from . import metrics
from .aggregator import RowObserver, aggregate
from .exceptions import ReportWriteError, SourceDeleteError, UrlSweepException, ValidationError
from .fetcher import build_session
from .loader import load_urls
from .models import INPUT_FORMATS, ScanRequest, ScanResponse
from .pipeline import Pipeline, make_pipeline
from .report import write_report
from .scheduler import scan

log = logging.getLogger('urlsweep.engine')

ReportWriter = Callable[[ScanResponse, str, Optional[str]], str]

remove_input_file = os.remove


def validate_request(request: ScanRequest) -> None:
    if not request.input_file_path:
        raise ValidationError('inputFilePath', 'input file path is required')
    if isinstance(request.concurrency, bool) or not isinstance(request.concurrency, int) or request.concurrency < 1:
        raise ValidationError('concurrency', f'must be a positive integer, got {request.concurrency!r}')
    if (isinstance(request.timeout_seconds, bool) or not isinstance(request.timeout_seconds, (int, float))
            or not request.timeout_seconds > 0):
        raise ValidationError('timeoutSeconds', f'must be a positive number, got {request.timeout_seconds!r}')
    if request.input_format not in INPUT_FORMATS:
        raise ValidationError('inputFormat', f'expected one of {", ".join(INPUT_FORMATS)}')


def run_scan(
    request: ScanRequest,
    *,
    writer: ReportWriter = write_report,
    cancel_event: Optional[threading.Event] = None,
    on_row: Optional[RowObserver] = None,
    session: Optional[requests.Session] = None,
    pipeline: Optional[Pipeline] = None,
) -> ScanResponse:
    """Run one batch scan.

    Raises ValidationError, InputFileError or EmptyInputError before any
    fetch, and SourceDeleteError after the report is written when the source
    file could not be removed.
    """
    started = time.time()
    try:
        validate_request(request)
        urls = load_urls(request.input_file_path, request.input_format)
    except UrlSweepException as e:
        log.warning('scan rejected path=%s err=%s', request.input_file_path, e.message)
        metrics.record_scan('precondition', time.time() - started)
        raise

    log.info('scan start path=%s urls=%d concurrency=%d timeout=%s follow_redirect=%s',
             request.input_file_path, len(urls), request.concurrency, request.timeout_seconds,
             request.follow_redirect)
    own_session = session is None and pipeline is None
    sess = build_session(pool_size=min(request.concurrency, len(urls))) if own_session else session
    try:
        pipe = pipeline or make_pipeline(request.timeout_seconds, request.follow_redirect, session=sess)
        results = scan(urls, pipe, request.concurrency, cancel_event=cancel_event)
        response = aggregate(len(urls), results, urls=urls, on_row=on_row)
    except Exception:
        metrics.record_scan('error', time.time() - started)
        raise
    finally:
        if own_session and sess is not None:
            sess.close()

    try:
        response.report_path = writer(response, request.input_file_path, request.output_dir or None)
    except ReportWriteError as e:
        log.error('report not written: %s', e.message)
        response.report_path = ''

    duration = time.time() - started
    log.info('scan done path=%s total=%d succeeded=%d failed=%d total200=%d report=%s seconds=%.2f',
             request.input_file_path, response.total_urls, response.succeeded, response.failed,
             response.total_200_lines, response.report_path or '-', duration)
    metrics.record_scan('ok', duration)

    if request.delete_source_after_run:
        try:
            remove_input_file(request.input_file_path)
        except OSError as e:
            raise SourceDeleteError(request.input_file_path, e.strerror or str(e)) from e
        log.info('source file deleted path=%s', request.input_file_path)
    return response

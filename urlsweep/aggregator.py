"""Fold the scheduler's ``(index, row)`` stream into a ScanResponse.

The aggregator is the only consumer of the stream, so its counters need no
lock. ``succeeded``/``failed`` split on the row's error; ``total200Lines``
counts terminal status 200 whatever the row's outcome.
"""
from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from . import metrics
from .exceptions import AggregationError
from .models import ScanResponse, ScanRow

log = logging.getLogger('urlsweep.aggregator')

MISSING_ERROR = 'scan result missing'

RowObserver = Callable[[int, ScanRow], None]


def aggregate(
    total: int,
    results: Iterable[Tuple[int, ScanRow]],
    urls: Optional[Sequence[str]] = None,
    on_row: Optional[RowObserver] = None,
) -> ScanResponse:
    """Build the response (``report_path`` left empty) with rows in input order."""
    slots: List[Optional[ScanRow]] = [None] * total
    for index, row in results:
        if not 0 <= index < total:
            raise AggregationError(f'result index {index} outside 0..{total - 1}', details={'index': index})
        if slots[index] is not None:
            raise AggregationError(f'duplicate result for index {index}', details={'index': index, 'url': row.url})
        slots[index] = row
        if on_row is not None:
            on_row(index, row)

    response = ScanResponse(total_urls=total)
    for i, row in enumerate(slots):
        if row is None:
            url = urls[i] if urls is not None and i < len(urls) else ''
            log.error('no result for index=%d url=%s', i, url)
            row = ScanRow(url=url, error=MISSING_ERROR)
        if row.ok:
            response.succeeded += 1
        else:
            response.failed += 1
        if row.status_code == 200:
            response.total_200_lines += 1
        metrics.record_row(row.ok)
        response.rows.append(row)
    return response

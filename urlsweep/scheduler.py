"""Bounded worker pool.

A BoundedSemaphore sized to the concurrency cap is acquired before each task
is handed to the thread pool and released when the task is done, so task N+1
is only admitted once one of the first N has finished. Completed rows are
pushed onto a queue (the single result sink) and drained by the caller's
thread; completion order is arbitrary and each item carries its input index.
"""
from __future__ import annotations

import concurrent.futures
import logging
import queue
import threading
from typing import Iterator, Optional, Sequence, Tuple

from .models import ScanRow
from .pipeline import Pipeline

log = logging.getLogger('urlsweep.scheduler')

CANCELLED_ERROR = 'scan cancelled'


def scan(
    urls: Sequence[str],
    pipeline: Pipeline,
    concurrency: int,
    cancel_event: Optional[threading.Event] = None,
) -> Iterator[Tuple[int, ScanRow]]:
    """Run ``pipeline`` once per URL with at most ``concurrency`` in flight.

    Yields exactly one ``(index, row)`` per URL. When ``cancel_event`` is set,
    URLs not yet admitted get a ``scan cancelled`` row without being fetched;
    tasks already running finish normally.
    """
    if concurrency < 1:
        raise ValueError(f'concurrency must be >= 1, got {concurrency}')
    total = len(urls)
    if total == 0:
        return
    workers = min(concurrency, total)
    gate = threading.BoundedSemaphore(workers)
    sink: 'queue.Queue[Tuple[int, ScanRow]]' = queue.Queue()

    def cancelled() -> bool:
        return cancel_event is not None and cancel_event.is_set()

    def run(index: int, url: str) -> None:
        try:
            try:
                row = pipeline(url)
            except Exception as e:
                log.exception('pipeline crashed url=%s', url)
                row = ScanRow(url=url, error=f'internal error: {e}')
            sink.put((index, row))
        finally:
            gate.release()

    delivered = 0
    log.info('dispatch start urls=%d workers=%d', total, workers)
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers, thread_name_prefix='urlsweep') as executor:
        for index, url in enumerate(urls):
            if not cancelled():
                gate.acquire()
                if cancelled():
                    gate.release()
                    sink.put((index, ScanRow(url=url, error=CANCELLED_ERROR)))
                else:
                    executor.submit(run, index, url)
            else:
                sink.put((index, ScanRow(url=url, error=CANCELLED_ERROR)))
            # hand over whatever finished meanwhile
            while True:
                try:
                    item = sink.get_nowait()
                except queue.Empty:
                    break
                delivered += 1
                yield item
        while delivered < total:
            item = sink.get()
            delivered += 1
            yield item
    log.info('dispatch done urls=%d cancelled=%s', total, cancelled())

"""Input loader: turn the request's input file into an ordered URL list.

Two layouts are understood:

``plain``
    one URL per line; surrounding whitespace stripped, blank lines skipped,
    duplicates and order preserved.
``status-lines``
    output of dirsearch/httpx style tools (``200 123B 0.001s http://...``).
    Only records whose status is 200, 301 or 403 are kept, the first
    http(s) URL on the line is taken and repeated URLs are dropped.
"""
from __future__ import annotations

import logging
import re
from typing import Iterable, List

from .exceptions import EmptyInputError, InputFileError, ValidationError
from .models import INPUT_FORMATS

log = logging.getLogger('urlsweep.loader')

STATUS_LINE_RE = re.compile(r'^\s*(200|301|403)\b')
URL_RE = re.compile(r'''https?://[^\s"'<>]+''')


def parse_plain(lines: Iterable[str]) -> List[str]:
    out: List[str] = []
    for line in lines:
        line = line.strip()
        if not line:
            continue
        out.append(line)
    return out


def parse_status_lines(lines: Iterable[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for line in lines:
        if not STATUS_LINE_RE.match(line):
            continue
        m = URL_RE.search(line)
        if not m:
            continue
        url = m.group(0)
        if url in seen:
            continue
        seen.add(url)
        out.append(url)
    return out


def load_urls(path: str, input_format: str = 'plain') -> List[str]:
    """Read ``path`` and return its URLs in file order.

    Raises InputFileError when the file cannot be opened or read and
    EmptyInputError when it yields no URL. Both happen before any scanning.
    """
    if input_format not in INPUT_FORMATS:
        raise ValidationError('inputFormat', f'expected one of {", ".join(INPUT_FORMATS)}')
    try:
        with open(path, 'r', encoding='utf-8-sig', errors='replace') as fh:
            lines = fh.read().splitlines()
    except OSError as e:
        raise InputFileError(path, e.strerror or str(e)) from e
    if input_format == 'status-lines':
        urls = parse_status_lines(lines)
    else:
        urls = parse_plain(lines)
    log.info('loaded input path=%s format=%s lines=%d urls=%d', path, input_format, len(lines), len(urls))
    if not urls:
        raise EmptyInputError(path)
    return urls

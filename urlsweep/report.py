"""Markdown report writer.

Each scan appends one section to ``<input stem>_report.md`` so a report file
accumulates the history of scans over the same input.
"""
from __future__ import annotations

import logging
import os
import time
from typing import Optional

from .exceptions import ReportWriteError
from .models import ScanResponse

log = logging.getLogger('urlsweep.report')

TABLE_HEADER = '| URL | Title | Components | Error |\n| --- | --- | --- | --- |\n'
EMPTY_ROW = '| N/A | N/A | N/A | No URL found |\n'


def report_file_name(input_file_path: str) -> str:
    base = os.path.basename(input_file_path)
    stem, _ = os.path.splitext(base)
    return f'{stem or "scan"}_report.md'


def report_path_for(input_file_path: str, output_dir: Optional[str] = None) -> str:
    directory = (output_dir or '').strip() or os.path.dirname(input_file_path)
    return os.path.join(directory, report_file_name(input_file_path))


def escape_cell(value: str) -> str:
    value = value.replace('\r\n', '\n').replace('\r', '\n')
    value = value.replace('\n', '<br/>')
    return value.replace('|', '\\|')


def render_section(response: ScanResponse, input_file_path: str, now: Optional[float] = None) -> str:
    stamp = time.strftime('%Y-%m-%d %H:%M:%S', time.localtime(now))
    parts = [
        f'## Scan Report - {stamp}\n',
        f'- Input File: `{input_file_path}`\n',
        f'- Total 200 Lines: {response.total_200_lines}\n',
        f'- Total URLs: {response.total_urls}\n',
        f'- Succeeded: {response.succeeded}\n',
        f'- Failed: {response.failed}\n\n',
        TABLE_HEADER,
    ]
    if not response.rows:
        parts.append(EMPTY_ROW)
    for row in response.rows:
        components = ', '.join(row.components) if row.components else 'N/A'
        cells = (row.url, row.title or 'N/A', components, row.error or '-')
        parts.append('| ' + ' | '.join(escape_cell(c) for c in cells) + ' |\n')
    parts.append('\n')
    return ''.join(parts)


def write_report(response: ScanResponse, input_file_path: str, output_dir: Optional[str] = None) -> str:
    """Append the scan section to the report file and return its path.

    Raises ReportWriteError when the file cannot be opened or written.
    """
    path = report_path_for(input_file_path, output_dir)
    section = render_section(response, input_file_path)
    try:
        with open(path, 'a', encoding='utf-8') as fh:
            fh.write(section)
    except OSError as e:
        raise ReportWriteError(path, e.strerror or str(e)) from e
    log.info('report appended path=%s rows=%d', path, len(response.rows))
    return path

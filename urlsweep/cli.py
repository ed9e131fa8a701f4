"""Batch URL scanner CLI.

Reads a text file with one URL per line, scans every URL and appends a
Markdown report next to the input (or into --output-dir).

Usage:
  urlsweep urls.txt --concurrency 30 --timeout 5 > summary.txt
Options:
  --concurrency / -c    Max simultaneous fetches (default 30)
  --timeout / -t        Per-URL deadline in seconds (default 5)
  --no-follow-redirect  Report 3xx responses instead of following them
  --output-dir          Directory for the report (default: input's directory)
  --status-lines        Input is dirsearch/httpx output ("200 12B 0.1s URL")
  --delete-source       Remove the input file after the report is written
  --json                Print the full response as JSON
"""
from __future__ import annotations

import argparse
import json
import sys
from typing import List, Optional

from . import config
from .engine import run_scan
from .exceptions import UrlSweepException
from .logging_utils import configure_logging
from .models import ScanRequest

EXIT_OK = 0
EXIT_ALL_FAILED = 1
EXIT_PRECONDITION = 2


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog='urlsweep', description='Fetch a list of URLs and report titles and components.')
    ap.add_argument('file', help='File with one URL per line')
    ap.add_argument('-c', '--concurrency', type=int, default=config.default_concurrency())
    ap.add_argument('-t', '--timeout', type=float, default=config.default_timeout())
    ap.add_argument('--no-follow-redirect', dest='follow_redirect', action='store_false',
                    help='Treat 3xx responses as final')
    ap.add_argument('--output-dir', default='', help='Report directory (default: next to the input file)')
    ap.add_argument('--status-lines', action='store_true', help='Parse dirsearch/httpx style status lines')
    ap.add_argument('--delete-source', action='store_true', help='Delete the input file after the scan')
    ap.add_argument('--json', action='store_true', help='Print the full response as JSON')
    ap.add_argument('--log-level', default=None, help='Override URLSWEEP_LOG_LEVEL')
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    request = ScanRequest(
        input_file_path=args.file,
        concurrency=min(args.concurrency, config.max_concurrency()),
        timeout_seconds=min(args.timeout, config.max_timeout()),
        follow_redirect=args.follow_redirect,
        output_dir=args.output_dir,
        delete_source_after_run=args.delete_source,
        input_format='status-lines' if args.status_lines else 'plain',
    )
    try:
        response = run_scan(request)
    except UrlSweepException as e:
        print(f'Error: {e.message}', file=sys.stderr)
        return EXIT_PRECONDITION

    if args.json:
        print(json.dumps(response.to_dict(), ensure_ascii=False, indent=2))
    else:
        print(f'Total URLs: {response.total_urls}')
        print(f'Succeeded: {response.succeeded}')
        print(f'Failed: {response.failed}')
        print(f'Total 200 Lines: {response.total_200_lines}')
        print(f'Report: {response.report_path or "(not written)"}')
    if response.total_urls and response.failed == response.total_urls:
        return EXIT_ALL_FAILED
    return EXIT_OK


if __name__ == '__main__':
    sys.exit(main())

"""Request, row and response records exchanged with the scan engine.

Wire names are camelCase (``inputFilePath``, ``totalUrls`` ...); attribute
names are snake_case.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from . import config
from .exceptions import ValidationError

INPUT_FORMATS = ('plain', 'status-lines')


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


@dataclass(frozen=True)
class ScanRequest:
    input_file_path: str
    concurrency: int = config.DEFAULT_CONCURRENCY
    timeout_seconds: float = config.DEFAULT_TIMEOUT_SECONDS
    follow_redirect: bool = True
    output_dir: str = ''
    delete_source_after_run: bool = False
    input_format: str = 'plain'

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ScanRequest':
        """Build a request from the wire payload.

        Missing concurrency/timeout take the configured defaults; values above
        the caps are clamped. Non-positive values are kept as-is so that
        validation can reject them.
        """
        concurrency = data.get('concurrency')
        timeout = data.get('timeoutSeconds')
        if isinstance(concurrency, bool):
            raise ValidationError('concurrency', f'not an integer: {concurrency!r}')
        if isinstance(timeout, bool):
            raise ValidationError('timeoutSeconds', f'not a number: {timeout!r}')
        try:
            concurrency = config.default_concurrency() if concurrency in (None, '') else int(concurrency)
        except (TypeError, ValueError):
            raise ValidationError('concurrency', f'not an integer: {concurrency!r}')
        try:
            timeout = config.default_timeout() if timeout in (None, '') else float(timeout)
        except (TypeError, ValueError):
            raise ValidationError('timeoutSeconds', f'not a number: {timeout!r}')
        return cls(
            input_file_path=str(data.get('inputFilePath') or '').strip(),
            concurrency=min(concurrency, config.max_concurrency()),
            timeout_seconds=min(timeout, config.max_timeout()),
            follow_redirect=_as_bool(data.get('followRedirect', True)),
            output_dir=str(data.get('outputDir') or '').strip(),
            delete_source_after_run=_as_bool(data.get('deleteSourceAfterRun', False)),
            input_format=str(data.get('inputFormat') or 'plain'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'inputFilePath': self.input_file_path,
            'concurrency': self.concurrency,
            'timeoutSeconds': self.timeout_seconds,
            'followRedirect': self.follow_redirect,
            'outputDir': self.output_dir,
            'deleteSourceAfterRun': self.delete_source_after_run,
            'inputFormat': self.input_format,
        }


@dataclass
class ScanRow:
    url: str
    title: str = ''
    components: List[str] = field(default_factory=list)
    error: str = ''
    # terminal HTTP status; None when no status line was received
    status_code: Optional[int] = None
    final_url: str = ''

    @property
    def ok(self) -> bool:
        return not self.error

    def to_dict(self) -> Dict[str, Any]:
        return {
            'url': self.url,
            'title': self.title,
            'components': list(self.components),
            'error': self.error,
        }


@dataclass
class ScanResponse:
    report_path: str = ''
    total_200_lines: int = 0
    total_urls: int = 0
    succeeded: int = 0
    failed: int = 0
    rows: List[ScanRow] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'reportPath': self.report_path,
            'total200Lines': self.total_200_lines,
            'totalUrls': self.total_urls,
            'succeeded': self.succeeded,
            'failed': self.failed,
            'rows': [r.to_dict() for r in self.rows],
        }


@dataclass
class FetchResult:
    status_code: int
    headers: Mapping[str, str]
    body: bytes
    final_url: str
    truncated: bool = False
    redirects: int = 0

"""Tests for urlsweep.metrics and urlsweep.logging_utils."""
import logging

from prometheus_client import REGISTRY


def _sample(name, labels=None):
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestMetrics:
    def test_record_row(self):
        from urlsweep.metrics import record_row

        before = _sample('urlsweep_rows_total', {'status': 'failed'})
        record_row(False)
        assert _sample('urlsweep_rows_total', {'status': 'failed'}) == before + 1

    def test_record_fetch_error(self):
        from urlsweep.metrics import record_fetch_error

        before = _sample('urlsweep_fetch_errors_total', {'kind': 'timeout'})
        record_fetch_error('timeout')
        assert _sample('urlsweep_fetch_errors_total', {'kind': 'timeout'}) == before + 1

    def test_track_active_fetch(self):
        from urlsweep.metrics import track_active_fetch

        base = _sample('urlsweep_active_fetches')
        with track_active_fetch() as t:
            assert _sample('urlsweep_active_fetches') == base + 1
            assert t.duration >= 0
        assert _sample('urlsweep_active_fetches') == base

    def test_get_metrics_returns_bytes(self):
        from urlsweep.metrics import get_metrics, get_content_type

        assert isinstance(get_metrics(), bytes)
        assert get_content_type().startswith('text/plain')


class TestLogSuppression:
    def test_throttles_after_sample(self, caplog):
        from urlsweep.logging_utils import log_suppressed, get_suppressed_snapshot

        logger = logging.getLogger('urlsweep.test')
        with caplog.at_level(logging.INFO, logger='urlsweep.test'):
            for i in range(5):
                count = log_suppressed(logger, f'url=u{i} err=timeout', 'fetch:timeout', sample=2, cooldown=3600)
        assert count == 5
        assert len([r for r in caplog.records if r.name == 'urlsweep.test']) == 2
        snap = get_suppressed_snapshot()
        assert snap[f'urlsweep.test:fetch:timeout:{logging.INFO}']['count'] == 5

    def test_reset(self):
        from urlsweep.logging_utils import log_suppressed, reset_suppressed_state, get_suppressed_snapshot

        log_suppressed(logging.getLogger('urlsweep.test'), 'x', 'ctx')
        reset_suppressed_state()
        assert get_suppressed_snapshot() == {}

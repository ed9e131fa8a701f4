import logging
import os
import threading
import time
from logging.handlers import RotatingFileHandler
from typing import Dict, Tuple

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'

_SuppressionKey = Tuple[str, str, int]
_SuppressionState = Dict[str, float | int]

_SUPPRESSION_LOCK = threading.Lock()
_SUPPRESSION_STATE: Dict[_SuppressionKey, _SuppressionState] = {}


def configure_logging(level_name: str | None = None) -> int:
    """Install the root handler and, when URLSWEEP_LOG_FILE is set, a rotating file handler.

    Returns the numeric level in effect.
    """
    level_name = (level_name or os.environ.get('URLSWEEP_LOG_LEVEL', 'INFO')).upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    log_file = os.environ.get('URLSWEEP_LOG_FILE')
    if log_file:
        try:
            max_bytes = int(os.environ.get('URLSWEEP_LOG_MAX_BYTES', str(5 * 1024 * 1024)))
            backup = int(os.environ.get('URLSWEEP_LOG_BACKUP_COUNT', '5'))
            fh = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup)
            fh.setLevel(level)
            fh.setFormatter(logging.Formatter(LOG_FORMAT))
            logging.getLogger().addHandler(fh)
            logging.getLogger(__name__).info(
                'RotatingFileHandler attached path=%s max_bytes=%d backups=%d',
                log_file, max_bytes, backup)
        except (OSError, ValueError) as e:
            logging.getLogger(__name__).warning('failed attaching RotatingFileHandler for %s: %s', log_file, e)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('werkzeug').setLevel(logging.WARNING)
    return level


def log_suppressed(
    logger: logging.Logger,
    message: str,
    context: str,
    *,
    level: int = logging.INFO,
    sample: int = 20,
    cooldown: float = 30.0,
) -> int:
    """Emit a throttled log entry for repeated per-URL failures.

    Parameters
    ----------
    logger: logging.Logger
        Target logger to write into.
    message: str
        Text of this occurrence (usually the row's error).
    context: str
        Identifier of the failure site, e.g. ``fetch:timeout``.
    level: int
        Logging level; defaults to ``INFO``.
    sample: int
        Emit the first ``sample`` occurrences before throttling kicks in.
    cooldown: float
        Minimum seconds between emissions once the initial sample budget is
        exhausted.

    Returns
    -------
    int
        Total number of times this ``context`` has requested logging
        (including suppressed writes).
    """
    now = time.time()
    key: _SuppressionKey = (logger.name, context, level)
    with _SUPPRESSION_LOCK:
        state = _SUPPRESSION_STATE.setdefault(key, {'count': 0, 'last_emit': 0.0})
        state['count'] = int(state['count']) + 1
        count = int(state['count'])
        last_emit = float(state.get('last_emit', 0.0))
        should_emit = count <= sample or (now - last_emit) >= cooldown
        if should_emit:
            state['last_emit'] = now
    if should_emit:
        logger.log(level, '%s %s (occurrences=%d)', context, message, count)
    return count


def get_suppressed_snapshot() -> Dict[str, Dict[str, float | int]]:
    """Return a shallow copy of suppression counters for observability."""
    with _SUPPRESSION_LOCK:
        snapshot: Dict[str, Dict[str, float | int]] = {}
        for (logger_name, context, level), state in _SUPPRESSION_STATE.items():
            key = f'{logger_name}:{context}:{level}'
            snapshot[key] = {
                'count': int(state.get('count', 0)),
                'last_emit': float(state.get('last_emit', 0.0)),
            }
    return snapshot


def reset_suppressed_state() -> None:
    """Clear suppression counters. Useful for unit tests."""
    with _SUPPRESSION_LOCK:
        _SUPPRESSION_STATE.clear()

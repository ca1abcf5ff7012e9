import logging
import os
import threading
import time
from logging.handlers import RotatingFileHandler
from typing import Dict, Optional, Tuple

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'

_SuppressionKey = Tuple[str, str, int]
_SuppressionState = Dict[str, float | int]

_SUPPRESSION_LOCK = threading.Lock()
_SUPPRESSION_STATE: Dict[_SuppressionKey, _SuppressionState] = {}


def configure_logging(level_name: str = 'INFO', log_file: Optional[str] = None) -> int:
    """Configure root logging once for the process and return the level used.

    Unknown level names fall back to INFO. When ``log_file`` is given a
    RotatingFileHandler is attached, sized by ``ZAPIT_LOG_MAX_BYTES`` and
    ``ZAPIT_LOG_BACKUP_COUNT``.
    """
    level = getattr(logging, (level_name or 'INFO').upper(), logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)
    if log_file:
        try:
            max_bytes = int(os.environ.get('ZAPIT_LOG_MAX_BYTES', str(5 * 1024 * 1024)))
            backup = int(os.environ.get('ZAPIT_LOG_BACKUP_COUNT', '5'))
            fh = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup)
            fh.setLevel(level)
            fh.setFormatter(logging.Formatter(LOG_FORMAT))
            logging.getLogger().addHandler(fh)
            logging.getLogger('zapit').info(
                'RotatingFileHandler attached path=%s max_bytes=%d backups=%d', log_file, max_bytes, backup)
        except (OSError, ValueError) as e:
            logging.getLogger('zapit').warning('failed attaching RotatingFileHandler for %s err=%s', log_file, e)
    logging.getLogger('werkzeug').setLevel(logging.WARNING)
    logging.getLogger('zapit').info('Logging initialized at level %s', logging.getLevelName(level))
    return level


def log_suppressed(
    logger: logging.Logger,
    exc: Exception,
    context: str,
    *,
    level: int = logging.WARNING,
    sample: int = 5,
    cooldown: float = 60.0,
) -> int:
    """Emit a throttled log entry for repeated soft failures.

    The first ``sample`` occurrences per ``(logger, context, level)`` are
    always written; afterwards at most one entry per ``cooldown`` seconds.
    Returns the total number of requests for this context, suppressed ones
    included.
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
        logger.log(level, '%s err=%s (suppressed=%d)', context, exc, max(0, count - 1))
    return count


def get_suppressed_snapshot() -> Dict[str, Dict[str, float | int]]:
    """Return a copy of the suppression counters keyed ``logger:context:level``."""
    with _SUPPRESSION_LOCK:
        return {
            f'{logger_name}:{context}:{level}': {
                'count': int(state.get('count', 0)),
                'last_emit': float(state.get('last_emit', 0.0)),
            }
            for (logger_name, context, level), state in _SUPPRESSION_STATE.items()
        }


def reset_suppressed_state() -> None:
    with _SUPPRESSION_LOCK:
        _SUPPRESSION_STATE.clear()

import logging
import threading
from typing import Dict, Optional

from ..models import URLInfo

_LOG = logging.getLogger('zapit.storage.memory')


class MemoryDatabase:
    """Process-local verdict store for tests and single-process deployments.

    No persistence, no network, no timeout. A lock serializes access so the
    store is safe to share across request threads.
    """

    def __init__(self, initial: Optional[Dict[str, URLInfo]] = None):
        self._lock = threading.Lock()
        self._data: Dict[str, URLInfo] = dict(initial or {})
        self.closed = False

    def get(self, key: str) -> Optional[URLInfo]:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, verdict: URLInfo) -> None:
        with self._lock:
            self._data[key] = verdict

    def close(self) -> None:
        if not self.closed:
            _LOG.debug('memory store closed entries=%d', len(self))
        self.closed = True

    def ping(self) -> bool:
        return True

    def keys(self):
        with self._lock:
            return list(self._data.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

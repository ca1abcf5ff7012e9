"""URL verdict lookup.

The scanner owns one storage backend for its whole life. Lookups go
normalize -> storage get -> (miss) default verdict + best-effort put.
"""

import logging

from . import metrics
from .exceptions import MalformedURLError, StorageUnavailableError
from .logging_utils import log_suppressed
from .models import URLInfo
from .normalizer import normalize
from .storage import Database

_LOG = logging.getLogger('zapit.scanner')

# Never-seen URLs are presumed safe. There is no threat feed behind the
# scanner, so a URL is only reported malicious when the store says so.
DEFAULT_PRESUME_MALICIOUS = False


class Scanner:
    def __init__(self, database: Database, presume_malicious: bool = DEFAULT_PRESUME_MALICIOUS):
        self._db = database
        self.presume_malicious = presume_malicious

    @property
    def database(self) -> Database:
        return self._db

    def evaluate(self, raw_url: str) -> URLInfo:
        """Return the verdict for ``raw_url``.

        Raises MalformedURLError before touching storage when the input does
        not normalize, and StorageUnavailableError when the lookup fails. A
        failed write of a freshly computed verdict is only logged.
        """
        with metrics.track_evaluation() as timer:
            try:
                canonical = normalize(raw_url)
            except MalformedURLError:
                metrics.record_evaluation('malformed', timer.duration)
                raise

            try:
                stored = self._db.get(canonical)
            except StorageUnavailableError:
                metrics.record_storage_error('get')
                metrics.record_evaluation('storage_error', timer.duration)
                raise

            if stored is not None:
                metrics.CACHE_HITS.inc()
                _LOG.debug('cache_hit url=%s malicious=%s', canonical, stored.malicious)
                # stored data is trusted for the classification only
                verdict = stored.with_url(canonical)
            else:
                metrics.CACHE_MISSES.inc()
                verdict = URLInfo(url=canonical, malicious=self.presume_malicious)
                self._populate(canonical, verdict)

            metrics.record_evaluation('malicious' if verdict.malicious else 'safe', timer.duration)
            return verdict

    def _populate(self, key: str, verdict: URLInfo) -> None:
        try:
            self._db.put(key, verdict)
        except StorageUnavailableError as e:
            metrics.record_storage_error('put')
            log_suppressed(_LOG, e, 'verdict_put_failed', level=logging.WARNING)
        else:
            _LOG.debug('cache_set url=%s malicious=%s', key, verdict.malicious)

    def close(self) -> None:
        """Release the bound storage backend."""
        try:
            self._db.close()
        except StorageUnavailableError:
            metrics.record_storage_error('close')
            raise

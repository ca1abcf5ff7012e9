"""Verdict storage backends and the selector used at startup."""

import logging

from .base import Database
from .memory import MemoryDatabase
from .redis_store import RedisDatabase
from ..exceptions import ConfigurationError

__all__ = ['Database', 'MemoryDatabase', 'RedisDatabase', 'open_database']


def open_database(settings) -> Database:
    """Construct the backend named by ``settings.storage``.

    Redis construction blocks for at most ``settings.db_timeout`` seconds and
    raises StorageUnavailableError when the server cannot be reached.
    """
    log = logging.getLogger('zapit.storage')
    if settings.storage == 'memory':
        log.warning('ZAPIT_STORAGE=memory -> verdicts are NOT shared or persisted')
        return MemoryDatabase()
    if settings.storage == 'redis':
        log.info('Connecting to database at %s', settings.db_address)
        return RedisDatabase(
            settings.db_address,
            protocol=settings.db_protocol,
            timeout=settings.db_timeout,
            key_prefix=settings.redis_key_prefix,
        )
    raise ConfigurationError('ZAPIT_STORAGE', f'unknown backend {settings.storage!r}')

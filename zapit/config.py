"""Environment-driven configuration.

Variable names for the listener and the database match the container
deployment (``HOSTNAME``, ``PORT``, ``DB_SERVICE``, ``DB_PORT``); everything
else is ``ZAPIT_`` prefixed.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .exceptions import ConfigurationError

ENDPOINT = '/urlinfo/1/'
CONTENT_TYPE = 'application/json; charset=utf-8'

DEFAULT_PORT = '8080'
DEFAULT_DB_SERVICE = 'db'
DEFAULT_DB_PORT = '6379'

ENV_HOSTNAME = 'HOSTNAME'
ENV_PORT = 'PORT'
ENV_DB_SERVICE = 'DB_SERVICE'
ENV_DB_PORT = 'DB_PORT'

DB_PROTOCOL = 'tcp'
DB_TIMEOUT = 2.0  # seconds

VERSION = '0.1.0'


@dataclass(frozen=True)
class Settings:
    host: str = ''
    port: int = int(DEFAULT_PORT)
    db_service: str = DEFAULT_DB_SERVICE
    db_port: int = int(DEFAULT_DB_PORT)
    db_protocol: str = DB_PROTOCOL
    db_timeout: float = DB_TIMEOUT
    storage: str = 'redis'
    redis_key_prefix: str = 'zapit:urlinfo:'
    presume_malicious: bool = False
    log_level: str = 'INFO'
    log_file: Optional[str] = None

    @property
    def db_address(self) -> str:
        if self.db_protocol == 'unix':
            return self.db_service
        return f'{self.db_service}:{self.db_port}'

    @property
    def listen_address(self) -> str:
        return f'{self.host}:{self.port}'


def _int(env: Mapping[str, str], name: str, default: str) -> int:
    raw = env.get(name, default)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ConfigurationError(name, f'expected an integer, got {raw!r}') from None
    if not 0 <= value <= 65535:
        raise ConfigurationError(name, f'port out of range: {value}')
    return value


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Resolve :class:`Settings` from ``environ`` (defaults to ``os.environ``)."""
    env = os.environ if environ is None else environ
    storage = env.get('ZAPIT_STORAGE', 'redis').strip().lower()
    if storage not in ('redis', 'memory'):
        raise ConfigurationError('ZAPIT_STORAGE', f'expected redis or memory, got {storage!r}')
    return Settings(
        host=env.get(ENV_HOSTNAME, ''),
        port=_int(env, ENV_PORT, DEFAULT_PORT),
        db_service=env.get(ENV_DB_SERVICE, DEFAULT_DB_SERVICE),
        db_port=_int(env, ENV_DB_PORT, DEFAULT_DB_PORT),
        storage=storage,
        redis_key_prefix=env.get('ZAPIT_REDIS_KEY_PREFIX', 'zapit:urlinfo:'),
        presume_malicious=env.get('ZAPIT_PRESUME_MALICIOUS', '0') == '1',
        log_level=env.get('ZAPIT_LOG_LEVEL', 'INFO').upper(),
        log_file=env.get('ZAPIT_LOG_FILE') or None,
    )

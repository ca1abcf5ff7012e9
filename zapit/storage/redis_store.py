"""Redis-backed verdict store.

Verdicts are stored as JSON strings under ``<key_prefix><canonical url>``.
The client is created eagerly and pinged so an unreachable server fails
process startup within the connect timeout instead of on the first request.
"""

import logging
from typing import Optional

import redis

from ..exceptions import ConfigurationError, StorageUnavailableError
from ..models import URLInfo

_LOG = logging.getLogger('zapit.storage.redis')

DEFAULT_KEY_PREFIX = 'zapit:urlinfo:'
SUPPORTED_PROTOCOLS = ('tcp', 'unix')


def _split_address(address: str):
    host, sep, port = address.rpartition(':')
    if not sep or not host:
        raise ConfigurationError('address', f'expected host:port, got {address!r}')
    try:
        return host, int(port)
    except ValueError:
        raise ConfigurationError('address', f'invalid port in {address!r}') from None


class RedisDatabase:
    """Verdict store on a Redis server reached over TCP or a unix socket.

    Args:
        address: ``host:port`` for ``tcp``; the socket path for ``unix``
        protocol: ``tcp`` or ``unix``
        timeout: connection-establishment timeout in seconds
        key_prefix: namespace prepended to every key
    """

    def __init__(self, address: str, protocol: str = 'tcp', timeout: float = 2.0,
                 key_prefix: str = DEFAULT_KEY_PREFIX, client: Optional[redis.Redis] = None):
        if protocol not in SUPPORTED_PROTOCOLS:
            raise ConfigurationError('protocol', f'unsupported protocol {protocol!r}')
        self.address = address
        self.protocol = protocol
        self.timeout = timeout
        self.key_prefix = key_prefix
        self._closed = False
        if client is None:
            if protocol == 'unix':
                client = redis.Redis(unix_socket_path=address, socket_connect_timeout=timeout)
            else:
                host, port = _split_address(address)
                client = redis.Redis(host=host, port=port, socket_connect_timeout=timeout)
        self._client = client
        try:
            self._client.ping()
        except redis.exceptions.RedisError as e:
            _LOG.error('redis connect failed address=%s protocol=%s timeout=%.1fs err=%s',
                       address, protocol, timeout, e)
            raise StorageUnavailableError('connect', str(e)) from e
        _LOG.info('redis store connected address=%s protocol=%s', address, protocol)

    def _key(self, key: str) -> str:
        return f'{self.key_prefix}{key}'

    def get(self, key: str) -> Optional[URLInfo]:
        try:
            data = self._client.get(self._key(key))
        except redis.exceptions.RedisError as e:
            raise StorageUnavailableError('get', str(e)) from e
        if data is None:
            return None
        return URLInfo.from_json(data)

    def put(self, key: str, verdict: URLInfo) -> None:
        payload = verdict.to_json()
        try:
            self._client.set(self._key(key), payload)
        except redis.exceptions.RedisError as e:
            raise StorageUnavailableError('put', str(e)) from e

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.exceptions.RedisError as e:
            _LOG.debug('redis ping failed err=%s', e)
            return False

    def close(self) -> None:
        if self._closed:
            return
        try:
            self._client.close()
        except redis.exceptions.RedisError as e:
            raise StorageUnavailableError('close', str(e)) from e
        self._closed = True
        _LOG.info('redis store closed address=%s', self.address)

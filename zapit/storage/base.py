from typing import Optional, Protocol

from ..models import URLInfo


class Database(Protocol):
    """Capability contract every verdict store satisfies.

    ``get`` returns ``None`` when the key is unknown; that is a normal result,
    never an error. Communication failures on any operation raise
    :class:`~zapit.exceptions.StorageUnavailableError`. ``close`` must not be
    called concurrently with in-flight ``get``/``put`` calls.
    """

    def get(self, key: str) -> Optional[URLInfo]: ...

    def put(self, key: str, verdict: URLInfo) -> None: ...

    def close(self) -> None: ...

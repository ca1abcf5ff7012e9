import sys
import pathlib
import threading

import pytest

# Ensure project root is on sys.path so 'import zapit' works when pytest runs from
# different working directories or when running individual tests.
_ROOT = pathlib.Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from zapit import create_app
from zapit.config import Settings
from zapit.exceptions import StorageUnavailableError
from zapit.logging_utils import reset_suppressed_state
from zapit.scanner import Scanner
from zapit.storage import MemoryDatabase


class SpyDatabase(MemoryDatabase):
    """MemoryDatabase that records every call and can be told to fail."""

    def __init__(self, initial=None, fail_get=False, fail_put=False, fail_close=False):
        super().__init__(initial)
        self.calls = []
        self._calls_lock = threading.Lock()
        self.fail_get = fail_get
        self.fail_put = fail_put
        self.fail_close = fail_close

    def _record(self, *call):
        with self._calls_lock:
            self.calls.append(call)

    def get(self, key):
        self._record('get', key)
        if self.fail_get:
            raise StorageUnavailableError('get', 'connection refused')
        return super().get(key)

    def put(self, key, verdict):
        self._record('put', key, verdict)
        if self.fail_put:
            raise StorageUnavailableError('put', 'connection reset')
        super().put(key, verdict)

    def close(self):
        self._record('close',)
        if self.fail_close:
            raise StorageUnavailableError('close', 'broken pipe')
        super().close()

    def count(self, op):
        with self._calls_lock:
            return sum(1 for c in self.calls if c[0] == op)


@pytest.fixture(autouse=True)
def _clean_suppression():
    reset_suppressed_state()
    yield
    reset_suppressed_state()


@pytest.fixture
def db():
    return SpyDatabase()


@pytest.fixture
def scanner(db):
    return Scanner(db)


@pytest.fixture
def app(scanner):
    app = create_app(scanner, Settings(storage='memory'))
    app.testing = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()

"""Construct-once and shutdown handling for the process-wide scanner.

State machine::

    UNINITIALIZED -> CONSTRUCTING -> READY -> SHUTTING_DOWN -> TERMINATED

CONSTRUCTING is only visible while the guard lock is held; callers racing
the first construction block on the lock and then observe READY. There is
no way back to UNINITIALIZED once construction has succeeded.
"""

import enum
import logging
import signal
import threading
from typing import Callable, Iterable, Optional

from .exceptions import LifecycleError, StorageUnavailableError, ZapitException
from .scanner import Scanner
from .storage import Database

_LOG = logging.getLogger('zapit.lifecycle')


class LifecycleState(enum.Enum):
    UNINITIALIZED = 'uninitialized'
    CONSTRUCTING = 'constructing'
    READY = 'ready'
    SHUTTING_DOWN = 'shutting_down'
    TERMINATED = 'terminated'


class LifecycleGuard:
    """Builds the scanner exactly once and releases its storage at shutdown."""

    def __init__(self, factory: Callable[[Database], Scanner] = Scanner):
        self._factory = factory
        self._lock = threading.Lock()
        self._state = LifecycleState.UNINITIALIZED
        self._scanner: Optional[Scanner] = None
        self._close_failed = False

    @property
    def state(self) -> LifecycleState:
        return self._state

    def obtain_scanner(self, db: Database) -> Scanner:
        """Return the process scanner, constructing it on first use.

        ``db`` is only consulted by the call that performs construction. If
        the factory raises, the guard stays UNINITIALIZED and the error
        propagates to the caller.
        """
        scanner = self._scanner
        if scanner is not None:
            return scanner
        with self._lock:
            if self._scanner is None:
                if self._state is not LifecycleState.UNINITIALIZED:
                    raise LifecycleError(f'cannot construct scanner in state {self._state.value}')
                self._state = LifecycleState.CONSTRUCTING
                try:
                    scanner = self._factory(db)
                except Exception:
                    self._state = LifecycleState.UNINITIALIZED
                    raise
                self._scanner = scanner
                self._state = LifecycleState.READY
                _LOG.info('scanner constructed backend=%s', type(db).__name__)
            return self._scanner

    def shutdown(self) -> None:
        """Close the scanner's storage. Only valid once READY.

        A repeated call after TERMINATED is a no-op. Raises
        StorageUnavailableError when the backend fails to close.
        """
        with self._lock:
            if self._state is LifecycleState.TERMINATED:
                _LOG.debug('shutdown already completed')
                return
            if self._state is not LifecycleState.READY:
                raise LifecycleError(f'cannot shut down in state {self._state.value}')
            self._state = LifecycleState.SHUTTING_DOWN
            scanner = self._scanner
        try:
            scanner.close()
        except StorageUnavailableError:
            self._close_failed = True
            raise
        finally:
            with self._lock:
                self._state = LifecycleState.TERMINATED

    def exit_code(self) -> int:
        """0 unless the storage backend failed to close."""
        return 1 if self._close_failed else 0


class ShutdownSupervisor(threading.Thread):
    """Waits for a termination request, shuts the guard down, then stops the server."""

    def __init__(self, guard: LifecycleGuard, on_terminate: Optional[Callable[[], None]] = None):
        super().__init__(name='zapit-shutdown', daemon=True)
        self._guard = guard
        self._on_terminate = on_terminate
        self._requested = threading.Event()
        self.finished = threading.Event()
        self.exit_code: Optional[int] = None

    def request_shutdown(self, signum=None, frame=None) -> None:
        # Runs inside the signal handler: only flip the event.
        self._requested.set()

    def run(self) -> None:
        self._requested.wait()
        _LOG.info('Shutting down server...')
        try:
            self._guard.shutdown()
            self.exit_code = self._guard.exit_code()
        except ZapitException as e:
            _LOG.error('shutdown failed: %s', e)
            self.exit_code = 1
        except Exception:
            _LOG.exception('unexpected error during shutdown')
            self.exit_code = 1
        finally:
            # the serving thread only returns once on_terminate has run
            self.finished.set()
            if self._on_terminate is not None:
                self._on_terminate()


def install_signal_handlers(supervisor: ShutdownSupervisor,
                            signals: Iterable[int] = (signal.SIGINT, signal.SIGTERM)) -> None:
    """Route termination signals to ``supervisor``. Must run on the main thread."""
    for sig in signals:
        signal.signal(sig, supervisor.request_shutdown)

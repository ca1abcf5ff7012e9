import os
import signal
import threading
import time

import pytest

from conftest import SpyDatabase
from zapit.exceptions import LifecycleError, StorageUnavailableError
from zapit.lifecycle import LifecycleGuard, LifecycleState, ShutdownSupervisor, install_signal_handlers
from zapit.scanner import Scanner


def _ready_guard(db=None):
    guard = LifecycleGuard()
    guard.obtain_scanner(db if db is not None else SpyDatabase())
    return guard


class TestConstruction:

    def test_concurrent_first_use_constructs_once(self):
        calls = []
        calls_lock = threading.Lock()

        def factory(db):
            with calls_lock:
                calls.append(db)
            time.sleep(0.05)  # widen the race window
            return Scanner(db)

        guard = LifecycleGuard(factory)
        db = SpyDatabase()
        n = 20
        barrier = threading.Barrier(n)
        got = []

        def worker():
            barrier.wait()
            got.append(guard.obtain_scanner(db))

        threads = [threading.Thread(target=worker) for _ in range(n)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(calls) == 1
        assert len(got) == n
        assert all(s is got[0] for s in got)
        assert guard.state is LifecycleState.READY

    def test_later_calls_ignore_other_databases(self):
        first, other = SpyDatabase(), SpyDatabase()
        guard = LifecycleGuard()
        s1 = guard.obtain_scanner(first)
        s2 = guard.obtain_scanner(other)
        assert s1 is s2
        assert s2.database is first

    def test_failed_construction_can_be_retried(self):
        attempts = []

        def factory(db):
            attempts.append(db)
            if len(attempts) == 1:
                raise StorageUnavailableError("connect", "refused")
            return Scanner(db)

        guard = LifecycleGuard(factory)
        with pytest.raises(StorageUnavailableError):
            guard.obtain_scanner(SpyDatabase())
        assert guard.state is LifecycleState.UNINITIALIZED
        assert guard.obtain_scanner(SpyDatabase()) is not None
        assert guard.state is LifecycleState.READY


class TestShutdown:

    def test_shutdown_closes_storage_once(self):
        db = SpyDatabase()
        guard = _ready_guard(db)
        guard.shutdown()
        assert db.count("close") == 1
        assert guard.state is LifecycleState.TERMINATED
        assert guard.exit_code() == 0
        guard.shutdown()
        assert db.count("close") == 1

    def test_close_failure_sets_nonzero_exit(self):
        guard = _ready_guard(SpyDatabase(fail_close=True))
        with pytest.raises(StorageUnavailableError):
            guard.shutdown()
        assert guard.state is LifecycleState.TERMINATED
        assert guard.exit_code() == 1

    def test_shutdown_before_ready_rejected(self):
        guard = LifecycleGuard()
        with pytest.raises(LifecycleError):
            guard.shutdown()
        assert guard.state is LifecycleState.UNINITIALIZED

    def test_no_construction_after_termination(self):
        guard = _ready_guard()
        scanner = guard.obtain_scanner(SpyDatabase())
        guard.shutdown()
        # the handle stays the same; there is no transition back
        assert guard.obtain_scanner(SpyDatabase()) is scanner
        assert guard.state is LifecycleState.TERMINATED


class TestSupervisor:

    def test_shutdown_request_closes_and_terminates(self):
        db = SpyDatabase()
        guard = _ready_guard(db)
        terminated = threading.Event()
        sup = ShutdownSupervisor(guard, on_terminate=terminated.set)
        sup.start()
        assert not sup.finished.is_set()
        sup.request_shutdown()
        assert terminated.wait(2.0)
        assert sup.exit_code == 0
        assert db.closed is True

    def test_close_failure_exit_code(self):
        guard = _ready_guard(SpyDatabase(fail_close=True))
        sup = ShutdownSupervisor(guard)
        sup.start()
        sup.request_shutdown()
        assert sup.finished.wait(2.0)
        assert sup.exit_code == 1

    def test_unexpected_close_error_still_stops_server(self):
        class BrokenDatabase(SpyDatabase):
            def close(self):
                raise RuntimeError("socket already gone")

        guard = _ready_guard(BrokenDatabase())
        terminated = threading.Event()
        sup = ShutdownSupervisor(guard, on_terminate=terminated.set)
        sup.start()
        sup.request_shutdown()
        assert terminated.wait(2.0)
        assert sup.finished.is_set()
        assert sup.exit_code == 1
        assert guard.state is LifecycleState.TERMINATED

    @pytest.mark.skipif(not hasattr(signal, "SIGUSR1"), reason="POSIX signals required")
    def test_signal_triggers_supervisor(self):
        db = SpyDatabase()
        guard = _ready_guard(db)
        sup = ShutdownSupervisor(guard)
        sup.start()
        previous = signal.getsignal(signal.SIGUSR1)
        try:
            install_signal_handlers(sup, signals=(signal.SIGUSR1,))
            os.kill(os.getpid(), signal.SIGUSR1)
            assert sup.finished.wait(2.0)
        finally:
            signal.signal(signal.SIGUSR1, previous)
        assert sup.exit_code == 0
        assert db.count("close") == 1

"""Process bootstrap: config, storage, scanner, signals, WSGI server.

Exit codes: 0 after a clean shutdown, 1 when storage cannot be reached at
startup or fails to close at shutdown.
"""

import functools
import logging
import sys

from werkzeug.serving import make_server

from . import create_app
from .config import load_settings
from .exceptions import ZapitException
from .lifecycle import LifecycleGuard, ShutdownSupervisor, install_signal_handlers
from .logging_utils import configure_logging
from .scanner import Scanner
from .storage import open_database

_LOG = logging.getLogger('zapit.server')


def main() -> int:
    try:
        settings = load_settings()
    except ZapitException as e:
        configure_logging()
        _LOG.critical('invalid configuration: %s', e)
        return 1
    configure_logging(settings.log_level, settings.log_file)

    try:
        db = open_database(settings)
    except ZapitException as e:
        _LOG.critical("Can't connect to db: %s", e)
        return 1

    guard = LifecycleGuard(functools.partial(Scanner, presume_malicious=settings.presume_malicious))
    scanner = guard.obtain_scanner(db)
    app = create_app(scanner, settings)

    try:
        server = make_server(settings.host, settings.port, app, threaded=True)
    except OSError as e:
        _LOG.critical('Fail to start up server at %s. Cause: %s', settings.listen_address, e)
        try:
            guard.shutdown()
        except ZapitException as close_err:
            _LOG.error('storage close failed: %s', close_err)
        return 1

    supervisor = ShutdownSupervisor(guard, on_terminate=server.shutdown)
    supervisor.start()
    install_signal_handlers(supervisor)

    _LOG.info('Listening at %s', settings.listen_address)
    server.serve_forever()
    supervisor.finished.wait()
    server.server_close()
    return supervisor.exit_code or 0


if __name__ == '__main__':
    sys.exit(main())

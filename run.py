import sys

from zapit.server import main

if __name__ == '__main__':
    # Listener and database come from HOSTNAME/PORT/DB_SERVICE/DB_PORT; see zapit/config.py.
    sys.exit(main())

#!/usr/bin/env python
"""Seed URL verdicts into the configured store.
Usage:
  DB_SERVICE=127.0.0.1 python scripts/seed_verdicts.py verdicts.csv
  echo "evil.example.com/login,1" | python scripts/seed_verdicts.py
Storage selection follows the server's environment variables (ZAPIT_STORAGE, DB_SERVICE, DB_PORT).
"""

import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from zapit.seed import main

if __name__ == '__main__':
    sys.exit(main())
